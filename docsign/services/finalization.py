"""Finalization gate.

Finalizing is one-way. It is a conditional update on the document row, the
same row every other mutation locks first, so a finalize and a concurrent
sign or placement are serialized by the database.
"""

import logging
import uuid

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from docsign.database import atomic
from docsign.exceptions import AlreadyFinalizedError
from docsign.models.audit_log import AuditAction
from docsign.models.document import Document
from docsign.services import audit_service
from docsign.services.document_service import get_document, get_owned_document
from docsign.utils.clock import utcnow

logger = logging.getLogger(__name__)


async def finalize(db: AsyncSession, document_id: uuid.UUID, owner_id: int) -> Document:
    """Lock a document against further changes.

    Raises:
        NotFoundError / ForbiddenError: ownership
        AlreadyFinalizedError: the document was finalized before
    """
    document = await get_owned_document(db, document_id, owner_id)
    if document.is_finalized:
        raise AlreadyFinalizedError(document_id)

    now = utcnow()
    async with atomic(db):
        result = await db.execute(
            update(Document)
            .where(Document.id == document_id, Document.is_finalized.is_(False))
            .values(is_finalized=True, finalized_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyFinalizedError(document_id)
        audit_service.record(
            db,
            AuditAction.document_finalized,
            user_id=owner_id,
            document_id=document_id,
        )

    logger.info("Document finalized", extra={"document_id": str(document_id), "user_id": owner_id})
    return await get_document(db, document_id)
