"""Audit trail recording.

record() only adds the row to the caller's session so the entry commits or
rolls back together with the action it describes.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docsign.models.audit_log import AuditLog, AuditAction

logger = logging.getLogger(__name__)


def record(
    db: AsyncSession,
    action: AuditAction,
    user_id: Optional[int] = None,
    document_id: Optional[uuid.UUID] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Stage an audit entry in the current transaction."""
    entry = AuditLog(
        user_id=user_id,
        action=action.value,
        document_id=document_id,
        details=details or {},
    )
    db.add(entry)
    logger.debug(
        "Audit entry staged",
        extra={"action": action.value, "user_id": user_id, "document_id": str(document_id) if document_id else None},
    )
    return entry


async def list_for_user(db: AsyncSession, user_id: int, limit: int = 100) -> List[AuditLog]:
    """Most recent entries for a user's own actions and documents."""
    from docsign.models.document import Document

    owned = select(Document.id).where(Document.owner_id == user_id)
    result = await db.execute(
        select(AuditLog)
        .where((AuditLog.user_id == user_id) | (AuditLog.document_id.in_(owned)))
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
