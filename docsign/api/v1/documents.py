"""Owner document routes: upload, read, share, finalize."""

from fastapi import APIRouter, File, Query, UploadFile, status
from fastapi.responses import FileResponse
import logging
import uuid

from docsign.api.deps import CurrentUser, DbSession, Notifier, Storage
from docsign.exceptions import NotFoundError, ValidationError
from docsign.schemas.document import (
    DeliveryStatus,
    DocumentListResponse,
    DocumentResponse,
    ShareLinkCreate,
    ShareLinkCreatedResponse,
    ShareLinkResponse,
)
from docsign.services import document_service, finalization, share_link_service
from docsign.services.token_issuer import default_expiry
from docsign.utils.clock import is_past

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    db: DbSession,
    current_user: CurrentUser,
    storage: Storage,
    document: UploadFile = File(...),
):
    """Upload a PDF."""
    data = await document.read()
    created = await document_service.upload_document(
        db,
        owner_id=current_user.id,
        filename=document.filename,
        content_type=document.content_type,
        data=data,
        storage=storage,
    )
    return created


@router.get("", response_model=DocumentListResponse)
async def list_documents(db: DbSession, current_user: CurrentUser):
    """List the caller's documents, newest first."""
    documents = await document_service.list_documents(db, current_user.id)
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(d) for d in documents],
        total=len(documents),
    )


@router.get("/{document_id}")
async def get_document(
    document_id: uuid.UUID,
    db: DbSession,
    current_user: CurrentUser,
    storage: Storage,
    metadata: bool = Query(False, description="Return JSON metadata instead of the file"),
):
    """Serve the stored PDF, or its metadata with ?metadata=true."""
    document = await document_service.get_owned_document(db, document_id, current_user.id)
    if metadata:
        return DocumentResponse.model_validate(document)

    path = storage.path_for(document.file_path)
    if not path.is_file():
        logger.error("Stored document content missing", extra={"document_id": str(document_id)})
        raise NotFoundError("Document content", document_id)
    return FileResponse(path, media_type=document.mime_type, filename=document.original_name)


@router.post(
    "/{document_id}/share",
    response_model=ShareLinkCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def share_document(
    document_id: uuid.UUID,
    request: ShareLinkCreate,
    db: DbSession,
    current_user: CurrentUser,
    notifier: Notifier,
):
    """Create a share link for a recipient and email it.

    The link is created even when the email cannot be delivered; the
    delivery block of the response says what happened.
    """
    if request.no_expiry:
        expires_at = None
    elif request.expires_at is None:
        expires_at = default_expiry()
    elif is_past(request.expires_at):
        raise ValidationError(
            "expires_at must be in the future",
            errors=[{"field": "expires_at", "message": "must be in the future"}],
        )
    else:
        expires_at = request.expires_at

    result = await share_link_service.share_document(
        db,
        document_id=document_id,
        owner_id=current_user.id,
        sender_name=current_user.name,
        recipient_email=request.recipient_email,
        expires_at=expires_at,
        notifier=notifier,
    )

    delivery = DeliveryStatus(email_sent=result.email_sent)
    if result.delivery_error is not None:
        delivery.code = result.delivery_error.code.value
        delivery.detail = result.delivery_error.detail

    return ShareLinkCreatedResponse(
        token=result.link.token,
        share_link=result.share_url,
        link=ShareLinkResponse.model_validate(result.link),
        delivery=delivery,
    )


@router.get("/{document_id}/share-links", response_model=list[ShareLinkResponse])
async def list_share_links(document_id: uuid.UUID, db: DbSession, current_user: CurrentUser):
    """Owner view of every link issued for a document."""
    return await share_link_service.list_links(db, document_id, current_user.id)


@router.post("/{document_id}/finalize", response_model=DocumentResponse)
async def finalize_document(document_id: uuid.UUID, db: DbSession, current_user: CurrentUser):
    """Finalize a document. No links, placements or status changes afterwards."""
    return await finalization.finalize(db, document_id, current_user.id)
