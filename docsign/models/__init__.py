from docsign.models.user import User
from docsign.models.document import Document, ShareLink
from docsign.models.signature import Signature
from docsign.models.audit_log import AuditLog, AuditAction
from docsign.models.status import (
    LinkStatus,
    SignatureStatus,
    LinkEvent,
    PlacementType,
    RenderKind,
)

__all__ = [
    "User",
    "Document",
    "ShareLink",
    "Signature",
    "AuditLog",
    "AuditAction",
    "LinkStatus",
    "SignatureStatus",
    "LinkEvent",
    "PlacementType",
    "RenderKind",
]
