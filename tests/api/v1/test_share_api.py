"""
Tests for the public share-link endpoints (/api/v1/share) and the full
owner-to-recipient signing flow over HTTP.
"""
from datetime import timedelta

import pytest

from docsign.services.token_issuer import issue_token
from docsign.utils.clock import utcnow

from tests.factories import PDF_BYTES, ShareLinkFactory, persist

SHARE_PREFIX = "/api/v1/share"
INVALID_LINK_DETAIL = "Invalid or expired share link"


async def _share_and_place(client, document_id):
    """Owner places a signature and shares the document with bob."""
    placed = await client.post(
        "/api/v1/signatures",
        json={
            "document_id": str(document_id),
            "x": 120,
            "y": 640,
            "page": 1,
            "placement_type": "signature",
            "render_kind": "text",
            "value": "Bob Recipient",
        },
    )
    assert placed.status_code == 201
    shared = await client.post(
        f"/api/v1/documents/{document_id}/share",
        json={"recipient_email": "bob@example.com", "no_expiry": True},
    )
    assert shared.status_code == 201
    return shared.json()["token"], placed.json()["id"]


class TestResolve:

    @pytest.mark.asyncio
    async def test_resolve_marks_viewed(self, authenticated_client, document):
        token, signature_id = await _share_and_place(authenticated_client, document.id)
        authenticated_client.headers.pop("Authorization")

        response = await authenticated_client.get(f"{SHARE_PREFIX}/{token}")

        assert response.status_code == 200
        data = response.json()
        assert data["document"]["id"] == str(document.id)
        assert data["link"]["status"] == "viewed"
        assert data["link"]["recipient_email"] == "bob@example.com"
        assert [s["id"] for s in data["signatures"]] == [signature_id]
        assert "token" not in data["link"]

        again = await authenticated_client.get(f"{SHARE_PREFIX}/{token}")
        assert again.json()["link"]["status"] == "viewed"

    @pytest.mark.asyncio
    async def test_unknown_token(self, client):
        response = await client.get(f"{SHARE_PREFIX}/{issue_token()}")

        assert response.status_code == 410
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["code"] == "LNK_003"
        assert response.json()["detail"] == INVALID_LINK_DETAIL

    @pytest.mark.asyncio
    async def test_expired_link(self, client, test_db, document):
        link = await persist(
            test_db,
            ShareLinkFactory(document_id=document.id, expires_at=utcnow() - timedelta(seconds=1)),
        )

        response = await client.get(f"{SHARE_PREFIX}/{link.token}")

        assert response.status_code == 410
        assert response.json()["code"] == "LNK_003"
        assert response.json()["detail"] == INVALID_LINK_DETAIL

    @pytest.mark.asyncio
    async def test_unknown_and_expired_tokens_look_the_same(self, client, test_db, document):
        link = await persist(
            test_db,
            ShareLinkFactory(document_id=document.id, expires_at=utcnow() - timedelta(seconds=1)),
        )

        responses = [
            await client.get(f"{SHARE_PREFIX}/{issue_token()}"),
            await client.get(f"{SHARE_PREFIX}/{link.token}"),
            await client.get(f"{SHARE_PREFIX}/not-a-token"),
            await client.get(f"{SHARE_PREFIX}/{link.token}/content"),
        ]

        shapes = {
            (r.status_code, r.json()["code"], r.json()["title"], r.json()["detail"]) for r in responses
        }
        assert shapes == {(410, "LNK_003", "Gone", INVALID_LINK_DETAIL)}

    @pytest.mark.asyncio
    async def test_download_shared_content(self, authenticated_client, document):
        token, _ = await _share_and_place(authenticated_client, document.id)
        authenticated_client.headers.pop("Authorization")

        response = await authenticated_client.get(f"{SHARE_PREFIX}/{token}/content")

        assert response.status_code == 200
        assert response.content == PDF_BYTES


class TestSigningFlow:

    @pytest.mark.asyncio
    async def test_recipient_signs(self, authenticated_client, document):
        token, signature_id = await _share_and_place(authenticated_client, document.id)
        authenticated_client.headers.pop("Authorization")
        await authenticated_client.get(f"{SHARE_PREFIX}/{token}")

        response = await authenticated_client.put(
            f"{SHARE_PREFIX}/{token}/signatures/{signature_id}/status",
            json={"status": "signed", "signed_by": "bob@example.com", "signature_value": "Bob Recipient"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Signature status updated to signed."
        assert data["link"]["status"] == "signed"
        assert data["link"]["signed_by"] == "bob@example.com"
        assert data["signature"]["status"] == "signed"
        assert data["signature"]["signer_email"] == "bob@example.com"

        resolved = await authenticated_client.get(f"{SHARE_PREFIX}/{token}")
        assert resolved.json()["link"]["status"] == "signed"
        assert resolved.json()["signatures"][0]["status"] == "signed"

    @pytest.mark.asyncio
    async def test_signing_requires_signature_value(self, authenticated_client, document):
        token, signature_id = await _share_and_place(authenticated_client, document.id)
        authenticated_client.headers.pop("Authorization")

        response = await authenticated_client.put(
            f"{SHARE_PREFIX}/{token}/signatures/{signature_id}/status",
            json={"status": "signed", "signed_by": "bob@example.com", "signature_value": "  "},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VAL_001"
        resolved = await authenticated_client.get(f"{SHARE_PREFIX}/{token}")
        assert resolved.json()["link"]["status"] == "viewed"
        assert resolved.json()["signatures"][0]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_recipient_declines(self, authenticated_client, document):
        token, signature_id = await _share_and_place(authenticated_client, document.id)
        authenticated_client.headers.pop("Authorization")

        response = await authenticated_client.put(
            f"{SHARE_PREFIX}/{token}/signatures/{signature_id}/status",
            json={"status": "declined"},
        )

        assert response.status_code == 200
        assert response.json()["link"]["status"] == "declined"
        assert response.json()["signature"]["status"] == "rejected"

    @pytest.mark.asyncio
    async def test_second_submission_conflicts(self, authenticated_client, document):
        token, signature_id = await _share_and_place(authenticated_client, document.id)
        url = f"{SHARE_PREFIX}/{token}/signatures/{signature_id}/status"

        await authenticated_client.put(url, json={"status": "signed", "signature_value": "Bob Recipient"})
        response = await authenticated_client.put(url, json={"status": "declined"})

        assert response.status_code == 409
        assert response.json()["code"] == "BIZ_001"

    @pytest.mark.asyncio
    async def test_unsupported_status(self, authenticated_client, document):
        token, signature_id = await _share_and_place(authenticated_client, document.id)

        response = await authenticated_client.put(
            f"{SHARE_PREFIX}/{token}/signatures/{signature_id}/status",
            json={"status": "viewed"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.put(
            f"{SHARE_PREFIX}/{issue_token()}/signatures/00000000-0000-0000-0000-000000000000/status",
            json={"status": "signed", "signature_value": "Bob Recipient"},
        )

        assert response.status_code == 410
        assert response.json()["code"] == "LNK_003"
        assert response.json()["detail"] == INVALID_LINK_DETAIL

    @pytest.mark.asyncio
    async def test_finalized_document_rejects_signing(self, authenticated_client, document):
        token, signature_id = await _share_and_place(authenticated_client, document.id)
        await authenticated_client.post(f"/api/v1/documents/{document.id}/finalize")

        response = await authenticated_client.put(
            f"{SHARE_PREFIX}/{token}/signatures/{signature_id}/status",
            json={"status": "signed", "signature_value": "Bob Recipient"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "BIZ_002"

    @pytest.mark.asyncio
    async def test_external_upload_signs_through_link(self, authenticated_client, document):
        token, signature_id = await _share_and_place(authenticated_client, document.id)
        authenticated_client.headers.pop("Authorization")

        response = await authenticated_client.post(
            f"/api/v1/signatures/{signature_id}/external",
            json={"token": token, "signature_value": "data:image/png;base64,AAAA"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "signed"
        assert response.json()["value"] == "data:image/png;base64,AAAA"

        resolved = await authenticated_client.get(f"{SHARE_PREFIX}/{token}")
        assert resolved.json()["link"]["status"] == "signed"
