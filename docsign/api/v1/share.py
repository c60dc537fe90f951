"""
Public share-link routes.

No authentication: possession of the token in the path is the authorization.
Every link failure here carries the same status, code and detail so
responses do not reveal whether a token never existed or has merely
expired.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse
import uuid

from docsign.api.deps import DbSession, Storage
from docsign.exceptions import NotFoundError
from docsign.schemas.document import SharedDocumentResponse
from docsign.schemas.share import ShareResolveResponse, SharedLinkView, SigningOutcomeResponse
from docsign.schemas.signature import ShareSignatureStatusUpdate, SignatureResponse
from docsign.services import lifecycle, share_link_service, signature_service

router = APIRouter()


@router.get("/{token}", response_model=ShareResolveResponse)
async def resolve_share_link(token: str, db: DbSession):
    """Open a shared document. The first successful read marks the link viewed."""
    document, link = await share_link_service.resolve_by_token(db, token)
    signatures = await signature_service.list_for_recipient(db, document.id, link.recipient_email)
    return ShareResolveResponse(
        document=SharedDocumentResponse.model_validate(document),
        link=SharedLinkView.model_validate(link),
        signatures=[SignatureResponse.model_validate(s) for s in signatures],
    )


@router.get("/{token}/content")
async def get_shared_content(token: str, db: DbSession, storage: Storage):
    """Download the shared PDF."""
    document, _ = await share_link_service.resolve_by_token(db, token)
    path = storage.path_for(document.file_path)
    if not path.is_file():
        raise NotFoundError("Document content", document.id)
    return FileResponse(path, media_type=document.mime_type, filename=document.original_name)


@router.put("/{token}/signatures/{signature_id}/status", response_model=SigningOutcomeResponse)
async def update_signature_status_by_share_token(
    token: str,
    signature_id: uuid.UUID,
    request: ShareSignatureStatusUpdate,
    db: DbSession,
):
    """Sign or decline a placement as the link's recipient."""
    if request.status == "signed":
        outcome = await lifecycle.sign_via_share_token(
            db, token, signature_id, request.signed_by, request.signature_value
        )
    else:
        outcome = await lifecycle.decline_via_share_token(db, token, signature_id, request.signed_by)

    return SigningOutcomeResponse(
        message=f"Signature status updated to {request.status}.",
        link=SharedLinkView.model_validate(outcome.link),
        signature=SignatureResponse.model_validate(outcome.signature),
    )
