from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from docsign.schemas.types import EnumStr, UUIDStr, UTCDateTime


class DocumentResponse(BaseModel):
    """Document metadata. The file itself is served separately."""

    id: UUIDStr
    owner_id: int
    original_name: str
    file_name: str
    file_path: str
    mime_type: str
    size: int
    is_finalized: bool
    finalized_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: Optional[UTCDateTime] = None

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    items: list[DocumentResponse]
    total: int


class SharedDocumentResponse(BaseModel):
    """What an anonymous recipient sees of a document."""

    id: UUIDStr
    original_name: str
    mime_type: str
    size: int
    is_finalized: bool

    class Config:
        from_attributes = True


class ShareLinkCreate(BaseModel):
    """Request to share a document with a recipient."""

    recipient_email: EmailStr
    expires_at: Optional[UTCDateTime] = Field(
        None, description="Omit for the default lifetime"
    )
    no_expiry: bool = False


class ShareLinkResponse(BaseModel):
    """Owner view of a share link."""

    id: UUIDStr
    document_id: UUIDStr
    token: str
    recipient_email: str
    status: EnumStr
    expires_at: Optional[UTCDateTime] = None
    viewed_at: Optional[UTCDateTime] = None
    signed_by: Optional[str] = None
    signed_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime

    class Config:
        from_attributes = True


class DeliveryStatus(BaseModel):
    """Outcome of the share link email."""

    email_sent: bool
    code: Optional[str] = None
    detail: Optional[str] = None


class ShareLinkCreatedResponse(BaseModel):
    token: str
    share_link: str
    link: ShareLinkResponse
    delivery: DeliveryStatus
