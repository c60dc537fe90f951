"""Uploaded documents and the share links issued for them."""
from sqlalchemy import (
    Column, String, DateTime, Integer, Boolean, ForeignKey, CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid

from docsign.database import Base
from docsign.models.status import LinkStatus, enum_column
from docsign.utils.clock import utcnow, is_past


class Document(Base):
    """PDF uploaded by its owner. Finalization is one-way."""

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint("size > 0", name="ck_documents_size_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Content (the bytes live in content storage; only the locator is kept)
    original_name = Column(String(255), nullable=False)
    file_name = Column(String(255), unique=True, nullable=False)
    file_path = Column(String(500), unique=True, nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)

    # Finalization
    is_finalized = Column(Boolean, default=False, nullable=False)
    finalized_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    share_links = relationship(
        "ShareLink",
        back_populates="document",
        order_by="ShareLink.created_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Document {self.original_name} finalized={self.is_finalized}>"


class ShareLink(Base):
    """Bearer capability letting one recipient view and sign a document."""

    __tablename__ = "share_links"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id = Column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Security: uniqueness is enforced here, never by a lookup before insert
    token = Column(String(64), unique=True, nullable=False, index=True)
    recipient_email = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    # Status tracking
    status = Column(enum_column(LinkStatus), default=LinkStatus.pending, nullable=False, index=True)
    viewed_at = Column(DateTime(timezone=True), nullable=True)
    signed_by = Column(String(255), nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    document = relationship("Document", back_populates="share_links", lazy="joined")

    @property
    def is_terminal(self) -> bool:
        return LinkStatus(self.status).is_terminal

    def is_expired(self, now=None) -> bool:
        return is_past(self.expires_at, now)

    def __repr__(self):
        return f"<ShareLink {self.token[:8]}… {self.recipient_email} - {self.status}>"
