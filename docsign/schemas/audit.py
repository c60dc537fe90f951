from pydantic import BaseModel
from typing import Any, Dict, Optional

from docsign.schemas.types import UUIDStr, UTCDateTime


class AuditLogResponse(BaseModel):
    id: UUIDStr
    user_id: Optional[int] = None
    document_id: Optional[UUIDStr] = None
    action: str
    details: Optional[Dict[str, Any]] = None
    created_at: UTCDateTime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    items: list[AuditLogResponse]
    total: int
