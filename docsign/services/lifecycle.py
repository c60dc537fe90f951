"""Lifecycle engine for signing through a share link.

Signing or declining a placement finishes one signing event, which two
records observe: the recipient's share link and the signature. Both change
in a single transaction made of three conditional updates:

    1. the document is still not finalized (also takes the row lock)
    2. the link is still active and unexpired
    3. the signature is still pending

If any of them matches no row the whole transaction rolls back, so of two
concurrent attempts on the same link exactly one succeeds.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from docsign.database import atomic
from docsign.exceptions import (
    DocumentFinalizedError,
    DocumentMismatchError,
    ForbiddenError,
    InvalidOrExpiredLinkError,
    InvalidTransitionError,
    NotFoundError,
)
from docsign.models.audit_log import AuditAction
from docsign.models.document import ShareLink
from docsign.models.signature import Signature
from docsign.models.status import LinkEvent, LinkStatus
from docsign.services import audit_service
from docsign.services.document_service import lock_unfinalized_document
from docsign.services.reconciliation import reconcile_document
from docsign.services.share_link_service import (
    expire_link,
    get_link_by_token,
    token_prefix,
    transition_link,
)
from docsign.services.signature_service import apply_signature_event, load_signature
from docsign.services.transitions import next_signature_status
from docsign.utils.clock import utcnow

logger = logging.getLogger(__name__)

_AUDIT_ACTIONS = {
    LinkEvent.sign: AuditAction.signature_signed_via_share_link,
    LinkEvent.decline: AuditAction.signature_declined_via_share_link,
}


@dataclass
class SigningOutcome:
    document_id: uuid.UUID
    link: ShareLink
    signature: Signature


async def sign_via_share_token(
    db: AsyncSession,
    token: str,
    signature_id: uuid.UUID,
    signed_by: str,
    signature_value: Optional[str] = None,
) -> SigningOutcome:
    """Sign a placement as the holder of a share link."""
    return await _complete_signing_event(
        db, token, signature_id, LinkEvent.sign, signed_by, signature_value
    )


async def decline_via_share_token(
    db: AsyncSession,
    token: str,
    signature_id: uuid.UUID,
    signed_by: Optional[str] = None,
) -> SigningOutcome:
    """Refuse to sign. The link ends declined and the signature rejected."""
    return await _complete_signing_event(db, token, signature_id, LinkEvent.decline, signed_by)


async def _complete_signing_event(
    db: AsyncSession,
    token: str,
    signature_id: uuid.UUID,
    event: LinkEvent,
    signed_by: Optional[str],
    signature_value: Optional[str] = None,
) -> SigningOutcome:
    link = await get_link_by_token(db, token)
    if link is None:
        logger.info("Signing with unknown share token", extra={"token_prefix": token_prefix(token)})
        raise InvalidOrExpiredLinkError()

    document_id = link.document_id
    if link.document.is_finalized:
        raise DocumentFinalizedError(document_id)

    now = utcnow()
    if link.is_expired(now):
        if not link.is_terminal:
            await expire_link(db, link.id, now)
        raise InvalidOrExpiredLinkError()
    if link.is_terminal:
        raise InvalidTransitionError(f"Share link is already {LinkStatus(link.status).value}")

    signature = await load_signature(db, signature_id)
    if signature is None:
        raise NotFoundError("Signature", signature_id)
    if signature.document_id != document_id:
        logger.warning(
            "Signature does not belong to the shared document",
            extra={"signature_id": str(signature_id), "document_id": str(document_id)},
        )
        raise DocumentMismatchError()
    if signature.signer_email and signature.signer_email.lower() != link.recipient_email.lower():
        logger.warning(
            "Signature is assigned to a different recipient",
            extra={"signature_id": str(signature_id), "share_link_id": str(link.id)},
        )
        raise ForbiddenError("Signature is assigned to a different recipient")
    next_signature_status(signature.status, event)

    link_id = link.id
    signer = (signed_by or "").strip() or link.recipient_email

    async with atomic(db):
        await lock_unfinalized_document(db, document_id)
        link_status = await transition_link(db, link, event, now, signed_by=signer)
        signature_status = await apply_signature_event(
            db,
            signature,
            event,
            now,
            signer_email=signer,
            share_token=token,
            value=signature_value,
        )
        audit_service.record(
            db,
            _AUDIT_ACTIONS[event],
            document_id=document_id,
            details={
                "share_link_id": str(link_id),
                "signature_id": str(signature_id),
                "signed_by": signer,
                "status": signature_status.value,
            },
        )

    logger.info(
        "Signing event completed via share link",
        extra={
            "document_id": str(document_id),
            "share_link_id": str(link_id),
            "signature_id": str(signature_id),
            "link_status": link_status.value,
            "signature_status": signature_status.value,
        },
    )
    return SigningOutcome(
        document_id=document_id,
        link=await get_link_by_token(db, token),
        signature=await load_signature(db, signature_id),
    )


__all__ = [
    "SigningOutcome",
    "sign_via_share_token",
    "decline_via_share_token",
    "reconcile_document",
]
