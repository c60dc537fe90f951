from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional
import uuid

from docsign.schemas.types import EnumStr, UUIDStr, UTCDateTime


class SignatureCreate(BaseModel):
    """Place a signature or initial on a document.

    Range checks on coordinates happen in the signature store so they report
    the same error shape as every other placement failure.
    """

    document_id: uuid.UUID
    x: float
    y: float
    page: int = 1
    placement_type: str = "signature"
    render_kind: str = "image"
    value: str
    signer_email: Optional[str] = None


class SignatureStatusUpdate(BaseModel):
    """Owner request to mark a signature signed or rejected."""

    status: EnumStr
    signed_by: Optional[str] = None


class ExternalSignatureUpload(BaseModel):
    """Rendered signature submitted by a share link recipient."""

    token: str = Field(..., min_length=1)
    signature_value: str = Field(..., min_length=1)


class SignatureResponse(BaseModel):
    id: UUIDStr
    document_id: UUIDStr
    user_id: Optional[int] = None
    x: float
    y: float
    page: int
    placement_type: EnumStr
    render_kind: EnumStr
    value: Optional[str] = None
    status: EnumStr
    signer_email: Optional[str] = None
    signed_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime

    class Config:
        from_attributes = True


class ShareSignatureStatusUpdate(BaseModel):
    """Recipient decision on a placement. Signing carries the rendered value."""

    status: Literal["signed", "declined"]
    signed_by: Optional[str] = None
    signature_value: Optional[str] = None

    @model_validator(mode="after")
    def require_value_when_signing(self) -> "ShareSignatureStatusUpdate":
        if self.status == "signed" and not (self.signature_value or "").strip():
            raise ValueError("signature_value is required when status is 'signed'")
        return self
