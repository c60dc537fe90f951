"""Tests for the signature store: placement validation, lookup and status updates."""
import math
import uuid

import pytest
from sqlalchemy import select

from docsign.exceptions import (
    DocumentFinalizedError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from docsign.models.audit_log import AuditAction, AuditLog
from docsign.models.status import PlacementType, RenderKind, SignatureStatus
from docsign.services import signature_service
from docsign.services.signature_service import validate_placement
from docsign.utils.clock import utcnow

from tests.factories import DocumentFactory, SignatureFactory, persist


def _fields(errors):
    return {e["field"] for e in errors}


class TestValidatePlacement:

    def test_accepts_a_valid_placement(self):
        fields = validate_placement(10, 20.5, 2, "initial", "text", "JD")
        assert fields["x"] == 10.0
        assert fields["page"] == 2
        assert fields["placement_type"] is PlacementType.initial
        assert fields["render_kind"] is RenderKind.text

    def test_negative_x_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_placement(-1, 0, 1, "signature", "image", "data:image/png;base64,AAAA")
        assert _fields(exc_info.value.errors) == {"x"}

    def test_page_zero_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_placement(0, 0, 0, "signature", "image", "data:image/png;base64,AAAA")
        assert _fields(exc_info.value.errors) == {"page"}

    @pytest.mark.parametrize("bad", [math.nan, math.inf, "10", None, True])
    def test_non_numeric_coordinates(self, bad):
        with pytest.raises(ValidationError) as exc_info:
            validate_placement(bad, 5, 1, "signature", "text", "Bob")
        assert "x" in _fields(exc_info.value.errors)

    def test_reports_every_offending_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_placement(-1, -1, 0, "stamp", "svg", "")
        assert _fields(exc_info.value.errors) == {
            "x", "y", "page", "placement_type", "render_kind", "value",
        }


class TestPlace:

    @pytest.mark.asyncio
    async def test_places_pending_signature(self, test_db, owner, document):
        signature = await signature_service.place(
            test_db, document.id, owner.id, x=100, y=200, page=1,
            placement_type="signature", render_kind="text", value="Olivia Owner",
            signer_email="Bob@Example.com",
        )

        assert signature.status == SignatureStatus.pending
        assert signature.user_id == owner.id
        assert signature.signer_email == "bob@example.com"
        assert signature.signed_at is None

        result = await test_db.execute(
            select(AuditLog).where(AuditLog.action == AuditAction.signature_placed.value)
        )
        assert result.scalar_one().details["signature_id"] == str(signature.id)

    @pytest.mark.asyncio
    async def test_negative_x_fails(self, test_db, owner, document):
        with pytest.raises(ValidationError):
            await signature_service.place(test_db, document.id, owner.id, x=-1, y=0, value="Bob")

    @pytest.mark.asyncio
    async def test_page_zero_fails(self, test_db, owner, document):
        with pytest.raises(ValidationError):
            await signature_service.place(test_db, document.id, owner.id, x=0, y=0, page=0, value="Bob")

    @pytest.mark.asyncio
    async def test_other_users_document(self, test_db, other_user, document):
        with pytest.raises(ForbiddenError):
            await signature_service.place(test_db, document.id, other_user.id, x=1, y=1, value="Ian")

    @pytest.mark.asyncio
    async def test_finalized_document(self, test_db, owner):
        finalized = await persist(
            test_db, DocumentFactory(owner_id=owner.id, is_finalized=True, finalized_at=utcnow())
        )
        with pytest.raises(DocumentFinalizedError):
            await signature_service.place(test_db, finalized.id, owner.id, x=1, y=1, value="Olivia")


class TestLookup:

    @pytest.mark.asyncio
    async def test_find_for_document_in_creation_order(self, test_db, owner, document):
        first = await signature_service.place(test_db, document.id, owner.id, x=1, y=1, value="A")
        second = await signature_service.place(test_db, document.id, owner.id, x=2, y=2, value="B")

        found = await signature_service.find_for_document(test_db, document.id, owner.id)
        assert [s.id for s in found] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_find_for_document_requires_ownership(self, test_db, other_user, document):
        with pytest.raises(ForbiddenError):
            await signature_service.find_for_document(test_db, document.id, other_user.id)

    @pytest.mark.asyncio
    async def test_get_signature_not_found(self, test_db, owner):
        with pytest.raises(NotFoundError):
            await signature_service.get_signature(test_db, uuid.uuid4(), owner_id=owner.id)

    @pytest.mark.asyncio
    async def test_get_signature_forbidden(self, test_db, owner, other_user, document):
        signature = await persist(test_db, SignatureFactory(document_id=document.id, user_id=owner.id))
        with pytest.raises(ForbiddenError):
            await signature_service.get_signature(test_db, signature.id, owner_id=other_user.id)

    @pytest.mark.asyncio
    async def test_recipient_sees_own_and_unassigned(self, test_db, owner, document):
        mine = await persist(
            test_db,
            SignatureFactory(document_id=document.id, user_id=owner.id, signer_email="bob@example.com"),
        )
        unassigned = await persist(test_db, SignatureFactory(document_id=document.id, user_id=owner.id))
        await persist(
            test_db,
            SignatureFactory(document_id=document.id, user_id=owner.id, signer_email="carol@example.com"),
        )

        visible = await signature_service.list_for_recipient(test_db, document.id, "bob@example.com")
        assert {s.id for s in visible} == {mine.id, unassigned.id}


class TestUpdateStatus:

    @pytest.mark.asyncio
    async def test_owner_marks_signed(self, test_db, owner, document):
        signature = await persist(test_db, SignatureFactory(document_id=document.id, user_id=owner.id))

        updated = await signature_service.update_status(
            test_db, signature.id, "signed", signed_by="Bob@Example.com", owner_id=owner.id
        )
        assert updated.status == SignatureStatus.signed
        assert updated.signer_email == "bob@example.com"
        assert updated.signed_at is not None

    @pytest.mark.asyncio
    async def test_owner_marks_rejected(self, test_db, owner, document):
        signature = await persist(test_db, SignatureFactory(document_id=document.id, user_id=owner.id))

        updated = await signature_service.update_status(
            test_db, signature.id, SignatureStatus.rejected, owner_id=owner.id
        )
        assert updated.status == SignatureStatus.rejected

    @pytest.mark.asyncio
    async def test_terminal_signature_cannot_change(self, test_db, owner, document):
        signature = await persist(
            test_db,
            SignatureFactory(document_id=document.id, user_id=owner.id, status=SignatureStatus.signed),
        )
        with pytest.raises(InvalidTransitionError):
            await signature_service.update_status(test_db, signature.id, "rejected", owner_id=owner.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["pending", "declined", "approved"])
    async def test_rejects_unsupported_status(self, test_db, owner, document, status):
        signature = await persist(test_db, SignatureFactory(document_id=document.id, user_id=owner.id))
        with pytest.raises(ValidationError):
            await signature_service.update_status(test_db, signature.id, status, owner_id=owner.id)

    @pytest.mark.asyncio
    async def test_other_user_cannot_update(self, test_db, owner, other_user, document):
        signature = await persist(test_db, SignatureFactory(document_id=document.id, user_id=owner.id))
        with pytest.raises(ForbiddenError):
            await signature_service.update_status(test_db, signature.id, "signed", owner_id=other_user.id)

    @pytest.mark.asyncio
    async def test_unknown_signature(self, test_db, owner):
        with pytest.raises(NotFoundError):
            await signature_service.update_status(test_db, uuid.uuid4(), "signed", owner_id=owner.id)
