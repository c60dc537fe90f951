from docsign.schemas.auth import (
    UserCreate,
    UserResponse,
    AuthMeResponse,
    Token,
    TokenData,
    LoginRequest,
)
from docsign.schemas.document import (
    DocumentResponse,
    DocumentListResponse,
    SharedDocumentResponse,
    ShareLinkCreate,
    ShareLinkResponse,
    ShareLinkCreatedResponse,
    DeliveryStatus,
)
from docsign.schemas.signature import (
    SignatureCreate,
    SignatureStatusUpdate,
    ExternalSignatureUpload,
    SignatureResponse,
    ShareSignatureStatusUpdate,
)
from docsign.schemas.share import ShareResolveResponse, SharedLinkView, SigningOutcomeResponse
from docsign.schemas.audit import AuditLogResponse, AuditLogListResponse

__all__ = [
    "UserCreate",
    "UserResponse",
    "AuthMeResponse",
    "Token",
    "TokenData",
    "LoginRequest",
    "DocumentResponse",
    "DocumentListResponse",
    "SharedDocumentResponse",
    "ShareLinkCreate",
    "ShareLinkResponse",
    "ShareLinkCreatedResponse",
    "DeliveryStatus",
    "SignatureCreate",
    "SignatureStatusUpdate",
    "ExternalSignatureUpload",
    "SignatureResponse",
    "ShareSignatureStatusUpdate",
    "ShareResolveResponse",
    "SharedLinkView",
    "SigningOutcomeResponse",
    "AuditLogResponse",
    "AuditLogListResponse",
]
