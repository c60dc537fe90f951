"""Document upload, lookup and the ownership guard used by every owner operation."""

import logging
import uuid
from pathlib import Path
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docsign.config import settings
from docsign.exceptions import (
    ConflictError,
    DocumentFinalizedError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from docsign.models.audit_log import AuditAction
from docsign.models.document import Document
from docsign.services import audit_service
from docsign.services.storage_service import LocalContentStorage
from docsign.utils.clock import utcnow

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
PDF_EXTENSION = ".pdf"


async def get_document(db: AsyncSession, document_id: uuid.UUID) -> Optional[Document]:
    """Fresh read of a document, bypassing whatever the session has cached."""
    result = await db.execute(
        select(Document)
        .where(Document.id == document_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_owned_document(db: AsyncSession, document_id: uuid.UUID, owner_id: int) -> Document:
    """Load a document the caller owns.

    Raises:
        NotFoundError: no such document
        ForbiddenError: the document belongs to somebody else
    """
    document = await get_document(db, document_id)
    if document is None:
        raise NotFoundError("Document", document_id)
    if document.owner_id != owner_id:
        logger.warning(
            "Document access denied",
            extra={"document_id": str(document_id), "user_id": owner_id},
        )
        raise ForbiddenError()
    return document


def ensure_not_finalized(document: Document) -> None:
    if document.is_finalized:
        raise DocumentFinalizedError(document.id)


async def lock_unfinalized_document(db: AsyncSession, document_id: uuid.UUID) -> None:
    """Claim the document row for the current transaction.

    The conditional touch takes the row lock, so a concurrent finalize either
    waits for this transaction or has already won and this raises.
    """
    result = await db.execute(
        update(Document)
        .where(Document.id == document_id, Document.is_finalized.is_(False))
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise DocumentFinalizedError(document_id)


def validate_upload(filename: Optional[str], content_type: Optional[str], data: bytes) -> None:
    """PDF only, non-empty, within the size limit."""
    errors = []
    if not filename:
        errors.append({"field": "document", "message": "File name is required"})
    elif Path(filename).suffix.lower() != PDF_EXTENSION:
        errors.append({"field": "document", "message": "Only PDF files are allowed"})
    if content_type != PDF_MIME_TYPE:
        errors.append({"field": "document", "message": f"Unsupported content type: {content_type}"})
    if not data:
        errors.append({"field": "document", "message": "File is empty"})
    elif len(data) > settings.MAX_UPLOAD_BYTES:
        errors.append(
            {"field": "document", "message": f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes"}
        )

    if errors:
        raise ValidationError("Invalid document upload", errors=errors)


async def upload_document(
    db: AsyncSession,
    owner_id: int,
    filename: Optional[str],
    content_type: Optional[str],
    data: bytes,
    storage: LocalContentStorage,
) -> Document:
    """Store an uploaded PDF and record it for its owner."""
    validate_upload(filename, content_type, data)

    stored = await storage.save(filename, data)
    document = Document(
        id=uuid.uuid4(),
        owner_id=owner_id,
        original_name=filename,
        file_name=stored.file_name,
        file_path=stored.locator,
        mime_type=content_type,
        size=stored.size,
    )
    db.add(document)
    audit_service.record(
        db,
        AuditAction.document_uploaded,
        user_id=owner_id,
        document_id=document.id,
        details={"original_name": filename, "size": stored.size},
    )

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        await storage.delete(stored.locator)
        raise ConflictError("Document content locator is already in use")

    await db.refresh(document)
    logger.info(
        "Document uploaded",
        extra={"document_id": str(document.id), "user_id": owner_id, "size": stored.size},
    )
    return document


async def list_documents(db: AsyncSession, owner_id: int) -> List[Document]:
    result = await db.execute(
        select(Document)
        .where(Document.owner_id == owner_id)
        .order_by(Document.created_at.desc())
    )
    return list(result.scalars().all())
