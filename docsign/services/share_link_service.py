"""Share-link store.

Links are child rows of their document. Every status write is a conditional
UPDATE whose WHERE clause restates the precondition (link still active,
still unexpired, document still open), so the database decides races and
the caller only checks rowcount.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docsign.config import settings
from docsign.database import atomic
from docsign.exceptions import (
    DeliveryFailureError,
    DocumentFinalizedError,
    ExpiredLinkError,
    InvalidTransitionError,
    ShareLinkNotFoundError,
    ShareTokenCollisionError,
    ValidationError,
)
from docsign.models.audit_log import AuditAction
from docsign.models.document import Document, ShareLink
from docsign.models.status import ACTIVE_LINK_STATUSES, LinkEvent, LinkStatus
from docsign.services import audit_service, token_issuer
from docsign.services.document_service import (
    ensure_not_finalized,
    get_owned_document,
    lock_unfinalized_document,
)
from docsign.services.reconciliation import reconcile_document
from docsign.services.transitions import next_link_status
from docsign.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ShareResult:
    """Outcome of sharing a document: the persisted link plus delivery status."""

    link: ShareLink
    share_url: str
    delivery_error: Optional[DeliveryFailureError] = None

    @property
    def email_sent(self) -> bool:
        return self.delivery_error is None


def token_prefix(token: Optional[str]) -> str:
    """Loggable form of a token."""
    return (token or "")[:8]


def normalize_email(value: Optional[str]) -> str:
    email = (value or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError(
            "Recipient email is required",
            errors=[{"field": "recipient_email", "message": "A valid email address is required"}],
        )
    return email


def build_share_url(token: str) -> str:
    return f"{settings.share_link_base_url}/share/{token}"


def _document_is_open():
    """Correlated condition: the link's document is not finalized."""
    return ShareLink.document_id.in_(
        select(Document.id).where(Document.is_finalized.is_(False))
    )


def _not_expired(now: datetime):
    return or_(ShareLink.expires_at.is_(None), ShareLink.expires_at > now)


async def get_link_by_token(db: AsyncSession, token: Optional[str]) -> Optional[ShareLink]:
    """Fresh read of a link and its document. Malformed tokens never hit the database."""
    if not token or not token_issuer.looks_like_token(token):
        return None
    result = await db.execute(
        select(ShareLink)
        .where(ShareLink.token == token)
        .execution_options(populate_existing=True)
    )
    return result.unique().scalar_one_or_none()


async def create_link(
    db: AsyncSession,
    document_id: uuid.UUID,
    owner_id: int,
    recipient_email: str,
    expires_at: Optional[datetime] = None,
) -> ShareLink:
    """Append a pending share link to a document the caller owns.

    The token's uniqueness is checked by the share_links.token constraint at
    insert time. A collision rolls the transaction back and the insert is
    retried with a fresh token, up to SHARE_TOKEN_MAX_ATTEMPTS times.

    Raises:
        NotFoundError / ForbiddenError: ownership
        DocumentFinalizedError: the document is finalized
        ValidationError: missing recipient email
        ShareTokenCollisionError: every attempt collided
    """
    email = normalize_email(recipient_email)
    expires_at = ensure_utc(expires_at)
    max_attempts = settings.SHARE_TOKEN_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        document = await get_owned_document(db, document_id, owner_id)
        ensure_not_finalized(document)

        token = token_issuer.issue_token()
        link_id = uuid.uuid4()
        try:
            async with atomic(db):
                await lock_unfinalized_document(db, document_id)
                db.add(
                    ShareLink(
                        id=link_id,
                        document_id=document_id,
                        token=token,
                        recipient_email=email,
                        expires_at=expires_at,
                        status=LinkStatus.pending,
                    )
                )
                audit_service.record(
                    db,
                    AuditAction.document_shared,
                    user_id=owner_id,
                    document_id=document_id,
                    details={"share_link_id": str(link_id), "recipient_email": email},
                )
        except IntegrityError:
            logger.warning(
                "Share token collision, retrying",
                extra={"document_id": str(document_id), "attempt": attempt},
            )
            continue

        logger.info(
            "Share link created",
            extra={
                "document_id": str(document_id),
                "share_link_id": str(link_id),
                "token_prefix": token_prefix(token),
            },
        )
        return await get_link_by_token(db, token)

    logger.error(
        "Share token generation exhausted",
        extra={"document_id": str(document_id), "attempts": max_attempts},
    )
    raise ShareTokenCollisionError(max_attempts)


async def share_document(
    db: AsyncSession,
    document_id: uuid.UUID,
    owner_id: int,
    sender_name: str,
    recipient_email: str,
    expires_at: Optional[datetime],
    notifier,
) -> ShareResult:
    """Create a link and email it. Delivery failure leaves the link in place."""
    link = await create_link(db, document_id, owner_id, recipient_email, expires_at)
    share_url = build_share_url(link.token)

    result = await notifier.send_share_link_email(
        recipient_email=link.recipient_email,
        sender_name=sender_name,
        document_name=link.document.original_name,
        share_link=share_url,
    )
    delivery_error = None
    if not result.get("success"):
        delivery_error = DeliveryFailureError(link.recipient_email, result.get("error") or "unknown error")
        logger.warning(
            "Share link email not delivered",
            extra={"share_link_id": str(link.id), "error": result.get("error")},
        )

    return ShareResult(link=link, share_url=share_url, delivery_error=delivery_error)


async def expire_link(db: AsyncSession, link_id: uuid.UUID, now: Optional[datetime] = None) -> bool:
    """Persist declined on an expired, still active link. Returns whether a row changed."""
    now = now or utcnow()
    result = await db.execute(
        update(ShareLink)
        .where(
            ShareLink.id == link_id,
            ShareLink.status.in_(ACTIVE_LINK_STATUSES),
            _document_is_open(),
        )
        .values(status=next_link_status(LinkStatus.pending, LinkEvent.expire), updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount:
        logger.info("Expired share link declined", extra={"share_link_id": str(link_id)})
    return bool(result.rowcount)


async def mark_viewed(db: AsyncSession, link_id: uuid.UUID, now: datetime) -> bool:
    """pending -> viewed. Duplicate concurrent calls match zero rows and do nothing."""
    result = await db.execute(
        update(ShareLink)
        .where(
            ShareLink.id == link_id,
            ShareLink.status == LinkStatus.pending,
            _not_expired(now),
            _document_is_open(),
        )
        .values(
            status=next_link_status(LinkStatus.pending, LinkEvent.open),
            viewed_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)


async def transition_link(
    db: AsyncSession,
    link: ShareLink,
    event: LinkEvent,
    now: datetime,
    signed_by: Optional[str] = None,
) -> LinkStatus:
    """Apply a sign or decline event to an active, unexpired link.

    Runs inside the caller's transaction.

    Raises:
        InvalidTransitionError: the link was already terminal or expired
            by the time the update ran
    """
    target = next_link_status(link.status, event)
    result = await db.execute(
        update(ShareLink)
        .where(
            ShareLink.id == link.id,
            ShareLink.status.in_(ACTIVE_LINK_STATUSES),
            _not_expired(now),
        )
        .values(status=target, signed_by=signed_by, signed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidTransitionError("Share link is no longer open for signing")
    return target


async def resolve_by_token(db: AsyncSession, token: str) -> Tuple[Document, ShareLink]:
    """Public read of a shared document.

    Expiry is enforced here: an expired active link is persisted as declined
    and the call fails. A pending link becomes viewed on first read. Reads
    of a finalized document never write link state.
    """
    link = await get_link_by_token(db, token)
    if link is None:
        logger.info("Share link lookup failed", extra={"token_prefix": token_prefix(token)})
        raise ShareLinkNotFoundError()

    now = utcnow()
    link_id = link.id
    document_id = link.document_id
    document_finalized = link.document.is_finalized

    if link.is_expired(now):
        if not link.is_terminal and not document_finalized:
            await expire_link(db, link_id, now)
        raise ExpiredLinkError()

    if link.status == LinkStatus.pending and not document_finalized:
        if await mark_viewed(db, link_id, now):
            logger.info("Share link viewed", extra={"share_link_id": str(link_id)})

    audit_service.record(
        db,
        AuditAction.document_accessed_via_share_link,
        document_id=document_id,
        details={"share_link_id": str(link_id), "recipient_email": link.recipient_email},
    )
    await db.commit()

    await reconcile_document(db, document_id)

    link = await get_link_by_token(db, token)
    return link.document, link


async def mark_terminal(
    db: AsyncSession,
    token: str,
    status: LinkStatus | str,
    signed_by: Optional[str] = None,
) -> ShareLink:
    """Move a link to signed or declined without touching any signature.

    Raises:
        ValidationError: status is not terminal
        ShareLinkNotFoundError: unknown token
        DocumentFinalizedError: the document is finalized
        InvalidTransitionError: the link is already terminal
        ExpiredLinkError: the link is past its expiry
    """
    try:
        status = LinkStatus(status)
    except ValueError:
        status = None
    if status is None or not status.is_terminal:
        raise ValidationError("Status must be signed or declined")
    event = LinkEvent.sign if status is LinkStatus.signed else LinkEvent.decline

    link = await get_link_by_token(db, token)
    if link is None:
        raise ShareLinkNotFoundError()
    if link.document.is_finalized:
        raise DocumentFinalizedError(link.document_id)
    if link.is_terminal:
        raise InvalidTransitionError(f"Share link is already {LinkStatus(link.status).value}")

    now = utcnow()
    if link.is_expired(now):
        await expire_link(db, link.id, now)
        raise ExpiredLinkError()

    async with atomic(db):
        await lock_unfinalized_document(db, link.document_id)
        await transition_link(db, link, event, now, signed_by)

    logger.info(
        "Share link marked terminal",
        extra={"share_link_id": str(link.id), "status": status.value},
    )
    return await get_link_by_token(db, token)


async def list_links(db: AsyncSession, document_id: uuid.UUID, owner_id: int) -> List[ShareLink]:
    """Owner view of a document's links in creation order."""
    await get_owned_document(db, document_id, owner_id)
    result = await db.execute(
        select(ShareLink)
        .where(ShareLink.document_id == document_id)
        .order_by(ShareLink.created_at, ShareLink.id)
        .execution_options(populate_existing=True)
    )
    return list(result.unique().scalars().all())
