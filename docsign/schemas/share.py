from pydantic import BaseModel
from typing import Optional

from docsign.schemas.document import SharedDocumentResponse
from docsign.schemas.signature import SignatureResponse
from docsign.schemas.types import EnumStr, UTCDateTime


class SharedLinkView(BaseModel):
    """Link state as shown to the recipient holding it."""

    recipient_email: str
    status: EnumStr
    expires_at: Optional[UTCDateTime] = None
    viewed_at: Optional[UTCDateTime] = None
    signed_by: Optional[str] = None
    signed_at: Optional[UTCDateTime] = None

    class Config:
        from_attributes = True


class ShareResolveResponse(BaseModel):
    document: SharedDocumentResponse
    link: SharedLinkView
    signatures: list[SignatureResponse]


class SigningOutcomeResponse(BaseModel):
    message: str
    link: SharedLinkView
    signature: SignatureResponse
