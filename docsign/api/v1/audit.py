from fastapi import APIRouter, Query

from docsign.api.deps import CurrentUser, DbSession
from docsign.schemas.audit import AuditLogListResponse, AuditLogResponse
from docsign.services import audit_service

router = APIRouter()


@router.get("", response_model=AuditLogListResponse)
async def get_audit_logs(
    db: DbSession,
    current_user: CurrentUser,
    limit: int = Query(100, ge=1, le=500),
):
    """Audit entries for the caller and the caller's documents."""
    entries = await audit_service.list_for_user(db, current_user.id, limit=limit)
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(e) for e in entries],
        total=len(entries),
    )
