"""Repair of torn link/signature pairs.

A signature signed through a share link carries that link's token. Both
records are normally written in one transaction; this pass catches rows that
still disagree (older data, manual edits) and moves the lagging record
forward to match the terminal one. Finalized documents are left untouched.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docsign.database import atomic
from docsign.exceptions import DocumentFinalizedError
from docsign.models.document import ShareLink
from docsign.models.signature import Signature
from docsign.models.status import ACTIVE_LINK_STATUSES, LinkStatus, SignatureStatus
from docsign.services.document_service import lock_unfinalized_document
from docsign.services.transitions import link_status_for, signature_status_for
from docsign.utils.clock import utcnow

logger = logging.getLogger(__name__)


async def reconcile_document(db: AsyncSession, document_id: uuid.UUID) -> int:
    """Bring every link/signature pair of a document into agreement.

    Returns the number of records repaired.
    """
    result = await db.execute(
        select(
            ShareLink.id,
            ShareLink.status,
            ShareLink.signed_by,
            ShareLink.signed_at,
            Signature.id,
            Signature.status,
            Signature.signer_email,
            Signature.signed_at,
        )
        .join(Signature, Signature.share_token == ShareLink.token)
        .where(ShareLink.document_id == document_id, Signature.document_id == document_id)
    )
    rows = result.all()
    if not rows:
        return 0

    now = utcnow()
    repairs = []
    for link_id, link_status, signed_by, link_signed_at, signature_id, signature_status, signer_email, signature_signed_at in rows:
        link_status = LinkStatus(link_status)
        signature_status = SignatureStatus(signature_status)
        expected = signature_status_for(link_status)
        if expected is signature_status:
            continue

        if link_status.is_terminal and signature_status.is_terminal:
            logger.error(
                "Share link and signature disagree on a finished signing event",
                extra={
                    "share_link_id": str(link_id),
                    "signature_id": str(signature_id),
                    "link_status": link_status.value,
                    "signature_status": signature_status.value,
                },
            )
            continue

        if link_status.is_terminal:
            repairs.append(
                update(Signature)
                .where(Signature.id == signature_id, Signature.status == SignatureStatus.pending)
                .values(
                    status=expected,
                    signer_email=signer_email or signed_by,
                    signed_at=link_signed_at or now,
                    updated_at=now,
                )
            )
        else:
            repairs.append(
                update(ShareLink)
                .where(ShareLink.id == link_id, ShareLink.status.in_(ACTIVE_LINK_STATUSES))
                .values(
                    status=link_status_for(signature_status),
                    signed_by=signed_by or signer_email,
                    signed_at=signature_signed_at or now,
                    updated_at=now,
                )
            )

    if not repairs:
        return 0

    repaired = 0
    try:
        async with atomic(db):
            await lock_unfinalized_document(db, document_id)
            for statement in repairs:
                outcome = await db.execute(statement.execution_options(synchronize_session=False))
                repaired += outcome.rowcount
    except DocumentFinalizedError:
        return 0

    if repaired:
        logger.warning(
            "Reconciled share link and signature records",
            extra={"document_id": str(document_id), "repaired": repaired},
        )
    return repaired
