"""Tests for document finalization and the mutations it locks out."""
import pytest
from sqlalchemy import select

from docsign.exceptions import (
    AlreadyFinalizedError,
    DocumentFinalizedError,
    ForbiddenError,
)
from docsign.models.audit_log import AuditAction, AuditLog
from docsign.models.status import LinkStatus, SignatureStatus
from docsign.services import finalization, lifecycle, share_link_service, signature_service
from docsign.services.signature_service import load_signature


class TestFinalize:

    @pytest.mark.asyncio
    async def test_finalize_sets_flag_and_timestamp(self, test_db, owner, document):
        finalized = await finalization.finalize(test_db, document.id, owner.id)

        assert finalized.is_finalized is True
        assert finalized.finalized_at is not None

        result = await test_db.execute(
            select(AuditLog).where(AuditLog.action == AuditAction.document_finalized.value)
        )
        assert result.scalar_one().document_id == document.id

    @pytest.mark.asyncio
    async def test_repeat_finalize_is_an_error(self, test_db, owner, document):
        await finalization.finalize(test_db, document.id, owner.id)

        with pytest.raises(AlreadyFinalizedError):
            await finalization.finalize(test_db, document.id, owner.id)

    @pytest.mark.asyncio
    async def test_only_the_owner_can_finalize(self, test_db, other_user, document):
        with pytest.raises(ForbiddenError):
            await finalization.finalize(test_db, document.id, other_user.id)


class TestMutationsAfterFinalize:

    @pytest.mark.asyncio
    async def test_create_link_after_finalize(self, test_db, owner, document):
        await finalization.finalize(test_db, document.id, owner.id)

        with pytest.raises(DocumentFinalizedError):
            await share_link_service.create_link(test_db, document.id, owner.id, "bob@example.com")

    @pytest.mark.asyncio
    async def test_place_after_finalize(self, test_db, owner, document):
        await finalization.finalize(test_db, document.id, owner.id)

        with pytest.raises(DocumentFinalizedError):
            await signature_service.place(test_db, document.id, owner.id, x=1, y=1, value="Olivia")

    @pytest.mark.asyncio
    async def test_update_status_after_finalize(self, test_db, owner, document):
        signature = await signature_service.place(test_db, document.id, owner.id, x=1, y=1, value="Olivia")
        await finalization.finalize(test_db, document.id, owner.id)

        with pytest.raises(DocumentFinalizedError):
            await signature_service.update_status(test_db, signature.id, "signed", owner_id=owner.id)
        assert (await load_signature(test_db, signature.id)).status == SignatureStatus.pending

    @pytest.mark.asyncio
    async def test_sign_and_decline_after_finalize(self, test_db, owner, document):
        link = await share_link_service.create_link(test_db, document.id, owner.id, "bob@example.com")
        signature = await signature_service.place(test_db, document.id, owner.id, x=1, y=1, value="Bob")
        await finalization.finalize(test_db, document.id, owner.id)

        with pytest.raises(DocumentFinalizedError):
            await lifecycle.sign_via_share_token(test_db, link.token, signature.id, "bob@example.com")
        with pytest.raises(DocumentFinalizedError):
            await lifecycle.decline_via_share_token(test_db, link.token, signature.id)
        with pytest.raises(DocumentFinalizedError):
            await share_link_service.mark_terminal(test_db, link.token, "signed")

        current = await share_link_service.get_link_by_token(test_db, link.token)
        assert current.status == LinkStatus.pending

    @pytest.mark.asyncio
    async def test_signed_records_survive_finalize(self, test_db, owner, document):
        link = await share_link_service.create_link(test_db, document.id, owner.id, "bob@example.com")
        signature = await signature_service.place(test_db, document.id, owner.id, x=1, y=1, value="Bob")
        await lifecycle.sign_via_share_token(test_db, link.token, signature.id, "bob@example.com")

        await finalization.finalize(test_db, document.id, owner.id)

        signatures = await signature_service.find_for_document(test_db, document.id, owner.id)
        assert [s.status for s in signatures] == [SignatureStatus.signed]
        _, resolved = await share_link_service.resolve_by_token(test_db, link.token)
        assert resolved.status == LinkStatus.signed
