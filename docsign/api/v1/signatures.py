from fastapi import APIRouter, status
import uuid

from docsign.api.deps import CurrentUser, DbSession
from docsign.schemas.signature import (
    ExternalSignatureUpload,
    SignatureCreate,
    SignatureResponse,
    SignatureStatusUpdate,
)
from docsign.services import signature_service

router = APIRouter()


@router.post("", response_model=SignatureResponse, status_code=status.HTTP_201_CREATED)
async def place_signature(request: SignatureCreate, db: DbSession, current_user: CurrentUser):
    """Place a signature or initial on one of the caller's documents."""
    return await signature_service.place(
        db,
        document_id=request.document_id,
        owner_id=current_user.id,
        x=request.x,
        y=request.y,
        page=request.page,
        placement_type=request.placement_type,
        render_kind=request.render_kind,
        value=request.value,
        signer_email=request.signer_email,
    )


@router.get("/document/{document_id}", response_model=list[SignatureResponse])
async def list_document_signatures(document_id: uuid.UUID, db: DbSession, current_user: CurrentUser):
    """All placements of a document in creation order."""
    return await signature_service.find_for_document(db, document_id, current_user.id)


@router.get("/{signature_id}", response_model=SignatureResponse)
async def get_signature(signature_id: uuid.UUID, db: DbSession, current_user: CurrentUser):
    return await signature_service.get_signature(db, signature_id, owner_id=current_user.id)


@router.put("/{signature_id}/status", response_model=SignatureResponse)
async def update_signature_status(
    signature_id: uuid.UUID,
    request: SignatureStatusUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Mark a pending placement signed or rejected."""
    return await signature_service.update_status(
        db,
        signature_id,
        request.status,
        signed_by=request.signed_by,
        owner_id=current_user.id,
    )


@router.post("/{signature_id}/external", response_model=SignatureResponse)
async def upload_external_signature(
    signature_id: uuid.UUID,
    request: ExternalSignatureUpload,
    db: DbSession,
):
    """Public: attach a recipient's rendered signature using their share token."""
    return await signature_service.attach_external_value(
        db, signature_id, request.token, request.signature_value
    )
