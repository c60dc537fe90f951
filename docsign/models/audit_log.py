"""
Audit log: one row per security-relevant action.

Each row captures: who acted (null for external signers), on which document,
and a small JSON blob of context. Share tokens are never stored here.
"""
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
import enum
import uuid

from docsign.database import Base
from docsign.utils.clock import utcnow


class AuditAction(str, enum.Enum):
    user_registered = "USER_REGISTERED"
    user_logged_in = "USER_LOGGED_IN"
    document_uploaded = "DOCUMENT_UPLOADED"
    document_shared = "DOCUMENT_SHARED"
    document_accessed_via_share_link = "DOCUMENT_ACCESSED_VIA_SHARE_LINK"
    signature_placed = "SIGNATURE_PLACED"
    signature_status_updated = "SIGNATURE_STATUS_UPDATED"
    signature_signed_via_share_link = "SIGNATURE_SIGNED_VIA_SHARE_LINK"
    signature_declined_via_share_link = "SIGNATURE_DECLINED_VIA_SHARE_LINK"
    document_finalized = "DOCUMENT_FINALIZED"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    document_id = Column(UUID(as_uuid=True), nullable=True, index=True)

    action = Column(String(50), nullable=False, index=True)
    details = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} on {self.document_id}>"
