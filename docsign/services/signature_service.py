"""Signature store: placements on documents and their status."""

import logging
import math
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docsign.database import atomic
from docsign.exceptions import (
    ForbiddenError,
    InvalidOrExpiredLinkError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from docsign.models.audit_log import AuditAction
from docsign.models.signature import Signature
from docsign.models.status import LinkEvent, PlacementType, RenderKind, SignatureStatus
from docsign.services import audit_service
from docsign.services.document_service import (
    ensure_not_finalized,
    get_document,
    get_owned_document,
    lock_unfinalized_document,
)
from docsign.services.reconciliation import reconcile_document
from docsign.services.transitions import event_for_signature_status, next_signature_status
from docsign.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_placement(
    x: Any,
    y: Any,
    page: Any,
    placement_type: Any,
    render_kind: Any,
    value: Optional[str],
) -> Dict[str, Any]:
    """Check a placement and return its normalized fields.

    Raises:
        ValidationError: listing every offending field
    """
    errors = []

    if not _is_number(x) or x < 0:
        errors.append({"field": "x", "message": "x must be a number >= 0"})
    if not _is_number(y) or y < 0:
        errors.append({"field": "y", "message": "y must be a number >= 0"})
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        errors.append({"field": "page", "message": "page must be an integer >= 1"})

    try:
        placement_type = PlacementType(placement_type)
    except ValueError:
        errors.append({"field": "placement_type", "message": "placement_type must be signature or initial"})
    try:
        render_kind = RenderKind(render_kind)
    except ValueError:
        errors.append({"field": "render_kind", "message": "render_kind must be text or image"})

    if not value or not str(value).strip():
        errors.append({"field": "value", "message": "value is required"})

    if errors:
        raise ValidationError("Invalid signature placement", errors=errors)

    return {
        "x": float(x),
        "y": float(y),
        "page": page,
        "placement_type": placement_type,
        "render_kind": render_kind,
        "value": value,
    }


async def load_signature(db: AsyncSession, signature_id: uuid.UUID) -> Optional[Signature]:
    result = await db.execute(
        select(Signature)
        .where(Signature.id == signature_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def place(
    db: AsyncSession,
    document_id: uuid.UUID,
    owner_id: int,
    x: float,
    y: float,
    page: int = 1,
    placement_type: PlacementType | str = PlacementType.signature,
    render_kind: RenderKind | str = RenderKind.image,
    value: Optional[str] = None,
    signer_email: Optional[str] = None,
) -> Signature:
    """Place a pending signature on a document the caller owns."""
    fields = validate_placement(x, y, page, placement_type, render_kind, value)

    document = await get_owned_document(db, document_id, owner_id)
    ensure_not_finalized(document)

    signature_id = uuid.uuid4()
    async with atomic(db):
        await lock_unfinalized_document(db, document_id)
        db.add(
            Signature(
                id=signature_id,
                document_id=document_id,
                user_id=owner_id,
                status=SignatureStatus.pending,
                signer_email=(signer_email or "").strip().lower() or None,
                **fields,
            )
        )
        audit_service.record(
            db,
            AuditAction.signature_placed,
            user_id=owner_id,
            document_id=document_id,
            details={
                "signature_id": str(signature_id),
                "page": fields["page"],
                "placement_type": fields["placement_type"].value,
            },
        )

    logger.info(
        "Signature placed",
        extra={"signature_id": str(signature_id), "document_id": str(document_id)},
    )
    return await load_signature(db, signature_id)


async def find_for_document(db: AsyncSession, document_id: uuid.UUID, owner_id: int) -> List[Signature]:
    """Signatures of an owned document in creation order."""
    await get_owned_document(db, document_id, owner_id)
    await reconcile_document(db, document_id)

    result = await db.execute(
        select(Signature)
        .where(Signature.document_id == document_id)
        .order_by(Signature.created_at, Signature.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_for_recipient(db: AsyncSession, document_id: uuid.UUID, recipient_email: str) -> List[Signature]:
    """Placements a share link recipient may act on: their own and unassigned ones."""
    result = await db.execute(
        select(Signature)
        .where(
            Signature.document_id == document_id,
            or_(Signature.signer_email.is_(None), Signature.signer_email == recipient_email),
        )
        .order_by(Signature.created_at, Signature.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_signature(db: AsyncSession, signature_id: uuid.UUID, owner_id: Optional[int] = None) -> Signature:
    signature = await load_signature(db, signature_id)
    if signature is None:
        raise NotFoundError("Signature", signature_id)
    if owner_id is not None:
        document = await get_document(db, signature.document_id)
        if document is None or document.owner_id != owner_id:
            raise ForbiddenError("Not authorized to access this signature")
    return signature


async def apply_signature_event(
    db: AsyncSession,
    signature: Signature,
    event: LinkEvent,
    now: datetime,
    signer_email: Optional[str] = None,
    share_token: Optional[str] = None,
    value: Optional[str] = None,
) -> SignatureStatus:
    """Conditional pending -> signed/rejected inside the caller's transaction.

    Raises:
        InvalidTransitionError: the signature was no longer pending when the
            update ran
    """
    target = next_signature_status(signature.status, event)
    values = {"status": target, "signed_at": now, "updated_at": now}
    if signer_email:
        values["signer_email"] = signer_email
    if share_token:
        values["share_token"] = share_token
    if value:
        values["value"] = value

    result = await db.execute(
        update(Signature)
        .where(Signature.id == signature.id, Signature.status == SignatureStatus.pending)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidTransitionError("Signature is no longer pending")
    return target


async def update_status(
    db: AsyncSession,
    signature_id: uuid.UUID,
    status: SignatureStatus | str,
    signed_by: Optional[str] = None,
    owner_id: Optional[int] = None,
) -> Signature:
    """Move a pending signature to signed or rejected.

    Raises:
        ValidationError: status is not signed or rejected
        NotFoundError / ForbiddenError: lookup and ownership
        DocumentFinalizedError: the document is finalized
        InvalidTransitionError: the signature is already terminal
    """
    try:
        event = event_for_signature_status(status)
    except ValueError:
        event = None
    if event is None:
        raise ValidationError(
            "Status must be signed or rejected",
            errors=[{"field": "status", "message": f"Unsupported status: {status}"}],
        )

    signature = await get_signature(db, signature_id, owner_id)
    document_id = signature.document_id
    document = await get_document(db, document_id)
    ensure_not_finalized(document)
    next_signature_status(signature.status, event)

    now = utcnow()
    signer_email = (signed_by or "").strip().lower() or None
    async with atomic(db):
        await lock_unfinalized_document(db, document_id)
        new_status = await apply_signature_event(db, signature, event, now, signer_email=signer_email)
        audit_service.record(
            db,
            AuditAction.signature_status_updated,
            user_id=owner_id,
            document_id=document_id,
            details={"signature_id": str(signature_id), "status": new_status.value},
        )

    logger.info(
        "Signature status updated",
        extra={"signature_id": str(signature_id), "status": new_status.value},
    )
    return await load_signature(db, signature_id)


async def attach_external_value(
    db: AsyncSession,
    signature_id: uuid.UUID,
    token: str,
    value: str,
) -> Signature:
    """Attach a recipient's rendered signature through their share link.

    The token is verified again here; holding a valid, unexpired link to the
    signature's document is the only authorization. Signing goes through the
    lifecycle engine so the link turns signed together with the signature.
    """
    from docsign.services import lifecycle
    from docsign.services.share_link_service import get_link_by_token

    if not value or not value.strip():
        raise ValidationError(
            "Signature image data is required",
            errors=[{"field": "signature_value", "message": "value is required"}],
        )

    link = await get_link_by_token(db, token)
    if link is None:
        raise InvalidOrExpiredLinkError()

    outcome = await lifecycle.sign_via_share_token(
        db, token, signature_id, signed_by=link.recipient_email, signature_value=value
    )
    return outcome.signature
