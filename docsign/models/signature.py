"""Signature placements on documents."""
from sqlalchemy import Column, String, DateTime, Text, Integer, Float, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
import uuid

from docsign.database import Base
from docsign.models.status import SignatureStatus, PlacementType, RenderKind, enum_column
from docsign.utils.clock import utcnow


class Signature(Base):
    """A signature or initial placed on one page of one document.

    Authenticated placements carry user_id. When an external recipient signs
    through a share link, share_token records which link did it so the two
    records can be reconciled later.
    """

    __tablename__ = "signatures"
    __table_args__ = (
        CheckConstraint("x >= 0", name="ck_signatures_x_non_negative"),
        CheckConstraint("y >= 0", name="ck_signatures_y_non_negative"),
        CheckConstraint("page >= 1", name="ck_signatures_page_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    document_id = Column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Origin
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    share_token = Column(String(64), nullable=True, index=True)

    # Placement
    x = Column(Float, nullable=False)
    y = Column(Float, nullable=False)
    page = Column(Integer, nullable=False, default=1)
    placement_type = Column(enum_column(PlacementType), nullable=False)

    # Rendered mark (base64 image data URL or typed text)
    render_kind = Column(enum_column(RenderKind), nullable=False, default=RenderKind.image)
    value = Column(Text, nullable=True)

    # Status tracking
    status = Column(enum_column(SignatureStatus), nullable=False, default=SignatureStatus.pending, index=True)
    signer_email = Column(String(255), nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Signature {self.id} {self.placement_type} p{self.page} - {self.status}>"
