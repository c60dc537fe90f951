"""
RFC 7807 Problem Details exception handling.

Every failure the service can report is a DocSignException subclass carrying
a machine-readable code and a human-readable detail. Services raise them
directly; the handlers below render them as application/problem+json.

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import traceback
import uuid
from datetime import datetime, timezone

from docsign.middleware.correlation import get_request_id

logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://docsign.dev/problems"

# Shared by every anonymous-flow failure so responses do not reveal whether
# a token never existed, expired, or was already used.
INVALID_LINK_DETAIL = "Invalid or expired share link"


def _get_trace_id() -> str:
    """Get trace ID from correlation context or generate a new one."""
    request_id = get_request_id()
    if request_id and request_id != "unknown":
        return request_id
    return str(uuid.uuid4())[:12]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ErrorCode(str, Enum):
    """Standardized error codes for the DocSign API."""

    # Authentication & Authorization
    UNAUTHORIZED = "AUTH_001"
    FORBIDDEN = "AUTH_002"

    # Validation
    VALIDATION_ERROR = "VAL_001"

    # Resource
    NOT_FOUND = "RES_001"
    CONFLICT = "RES_003"

    # Share links
    LINK_INVALID = "LNK_003"

    # Lifecycle rules
    INVALID_TRANSITION = "BIZ_001"
    DOCUMENT_FINALIZED = "BIZ_002"
    ALREADY_FINALIZED = "BIZ_003"
    DOCUMENT_MISMATCH = "BIZ_004"

    # External Services
    DELIVERY_FAILURE = "EXT_001"
    DATABASE_ERROR = "EXT_004"

    # Server
    INTERNAL_ERROR = "SRV_001"
    SERVICE_UNAVAILABLE = "SRV_002"


class ProblemDetail(BaseModel):
    """
    RFC 7807 Problem Details response schema.

    Attributes:
        type: URI reference identifying the problem type
        title: Short, human-readable summary
        status: HTTP status code
        detail: Human-readable explanation specific to this occurrence
        instance: URI reference identifying this specific occurrence
        code: Machine-readable error code for client handling
        timestamp: ISO 8601 timestamp of when the error occurred
        trace_id: Unique identifier for tracing in logs/Sentry
        errors: List of field-level validation errors (for 422)
    """

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    code: str
    timestamp: str
    trace_id: str
    errors: Optional[List[Dict[str, Any]]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "https://docsign.dev/problems/biz-002",
                "title": "Conflict",
                "status": 409,
                "detail": "Document has been finalized and can no longer be modified",
                "instance": "/api/v1/signatures",
                "code": "BIZ_002",
                "timestamp": "2026-01-29T10:30:00Z",
                "trace_id": "abc123def456",
            }
        }
    }


def _problem_type(code: ErrorCode) -> str:
    return f"{PROBLEM_BASE_URL}/{code.value.lower().replace('_', '-')}"


class DocSignException(HTTPException):
    """
    Base exception for the DocSign API with RFC 7807 support.

    Usage:
        raise DocSignException(
            status_code=409,
            code=ErrorCode.INVALID_TRANSITION,
            detail="Share link is already signed",
        )
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        title: Optional[str] = None,
        instance: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.errors = errors
        self.trace_id = _get_trace_id()
        self.timestamp = _utc_timestamp()

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.detail}"

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title based on status code."""
        titles = {
            400: "Bad Request",
            401: "Unauthorized",
            403: "Forbidden",
            404: "Not Found",
            409: "Conflict",
            410: "Gone",
            422: "Validation Error",
            500: "Internal Server Error",
            502: "Bad Gateway",
            503: "Service Unavailable",
        }
        return titles.get(status_code, "Error")

    def to_problem_detail(self) -> ProblemDetail:
        """Convert to RFC 7807 ProblemDetail."""
        return ProblemDetail(
            type=_problem_type(self.code),
            title=self.title,
            status=self.status_code,
            detail=self.detail,
            instance=self.instance,
            code=self.code.value,
            timestamp=self.timestamp,
            trace_id=self.trace_id,
            errors=self.errors,
        )


# Convenience exception classes

class NotFoundError(DocSignException):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail=f"{resource} with ID {resource_id} was not found",
        )


class ValidationError(DocSignException):
    """Validation error (422)."""

    def __init__(
        self,
        detail: str,
        errors: Optional[List[Dict[str, Any]]] = None
    ):
        super().__init__(
            status_code=422,
            code=ErrorCode.VALIDATION_ERROR,
            detail=detail,
            errors=errors,
        )


class UnauthorizedError(DocSignException):
    """Authentication required (401)."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=401,
            code=ErrorCode.UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(DocSignException):
    """Caller is authenticated but does not own the resource (403)."""

    def __init__(self, detail: str = "Not authorized to access this document"):
        super().__init__(
            status_code=403,
            code=ErrorCode.FORBIDDEN,
            detail=detail,
        )


class ConflictError(DocSignException):
    """Resource conflict (409)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=409,
            code=ErrorCode.CONFLICT,
            detail=detail,
        )


class ShareTokenCollisionError(ConflictError):
    """Token generation kept colliding with existing share links."""

    def __init__(self, attempts: int):
        super().__init__(detail=f"Could not generate a unique share token after {attempts} attempts")
        self.attempts = attempts


class ShareLinkError(DocSignException):
    """
    Anonymous share-link failure (410).

    Subclasses stay distinct for service callers, but all of them render the
    same status, code and detail so a caller cannot tell a token that never
    existed from one that expired.
    """

    def __init__(self):
        super().__init__(
            status_code=410,
            code=ErrorCode.LINK_INVALID,
            detail=INVALID_LINK_DETAIL,
        )


class ShareLinkNotFoundError(ShareLinkError):
    """No document carries a share link with the given token."""


class ExpiredLinkError(ShareLinkError):
    """Share link is past its expiry."""


class InvalidOrExpiredLinkError(ShareLinkError):
    """Signing attempted with an unknown or expired share link."""


class InvalidTransitionError(DocSignException):
    """Mutation attempted on a record already in a terminal state (409)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=409,
            code=ErrorCode.INVALID_TRANSITION,
            detail=detail,
        )


class DocumentFinalizedError(DocSignException):
    """Mutation attempted after the document was finalized (409)."""

    def __init__(self, document_id: Any = None):
        super().__init__(
            status_code=409,
            code=ErrorCode.DOCUMENT_FINALIZED,
            detail="Document has been finalized and can no longer be modified",
        )
        self.document_id = document_id


class AlreadyFinalizedError(DocSignException):
    """Finalize called on a document that is already finalized (409)."""

    def __init__(self, document_id: Any = None):
        super().__init__(
            status_code=409,
            code=ErrorCode.ALREADY_FINALIZED,
            detail="Document is already finalized",
        )
        self.document_id = document_id


class DocumentMismatchError(DocSignException):
    """Signature and share link reference different documents (400)."""

    def __init__(self):
        super().__init__(
            status_code=400,
            code=ErrorCode.DOCUMENT_MISMATCH,
            detail="Signature does not belong to the shared document",
        )


class DeliveryFailureError(DocSignException):
    """Notification could not be delivered (502). Never rolls back the link."""

    def __init__(self, recipient: str, detail: str):
        super().__init__(
            status_code=502,
            code=ErrorCode.DELIVERY_FAILURE,
            detail=f"Failed to send email to {recipient}: {detail}",
        )
        self.recipient = recipient


class DatabaseError(DocSignException):
    """Storage failure translated at the boundary (503)."""

    def __init__(self, detail: str = "Storage is temporarily unavailable"):
        super().__init__(
            status_code=503,
            code=ErrorCode.DATABASE_ERROR,
            detail=detail,
        )


# Exception handlers for FastAPI

def create_problem_response(
    status_code: int,
    code: ErrorCode,
    detail: str,
    request: Request,
    errors: Optional[List[Dict[str, Any]]] = None,
    trace_id: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create a RFC 7807 compliant JSON response."""
    problem = ProblemDetail(
        type=_problem_type(code),
        title=DocSignException._default_title(status_code),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        code=code.value,
        timestamp=_utc_timestamp(),
        trace_id=trace_id or _get_trace_id(),
        errors=errors,
    )

    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )


async def docsign_exception_handler(request: Request, exc: DocSignException) -> JSONResponse:
    """Handle DocSignException with RFC 7807 response."""
    logger.warning(
        f"DocSignException: {exc.code.value} - {exc.detail}",
        extra={
            "trace_id": exc.trace_id,
            "status_code": exc.status_code,
            "path": request.url.path,
        }
    )

    problem = exc.to_problem_detail()
    problem.instance = problem.instance or str(request.url.path)

    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTPException with RFC 7807 response."""
    code_map = {
        400: ErrorCode.VALIDATION_ERROR,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
    }
    code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)

    return create_problem_response(
        status_code=exc.status_code,
        code=code,
        detail=str(exc.detail),
        request=request,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return create_problem_response(
        status_code=422,
        code=ErrorCode.VALIDATION_ERROR,
        detail="Request validation failed",
        request=request,
        errors=errors,
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Translate raw storage errors into DatabaseError so they never reach the caller."""
    error = DatabaseError()
    logger.error(
        f"Database error: {type(exc).__name__}",
        extra={"trace_id": error.trace_id, "path": request.url.path},
    )

    problem = error.to_problem_detail()
    problem.instance = str(request.url.path)

    return JSONResponse(
        status_code=error.status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with RFC 7807 response."""
    from docsign.config import settings
    from docsign.core.sentry import capture_exception

    trace_id = str(uuid.uuid4())[:12]

    logger.error(
        f"Unhandled exception: {exc}",
        extra={"trace_id": trace_id, "path": request.url.path},
    )
    logger.error(traceback.format_exc())

    capture_exception(
        exc,
        context={
            "trace_id": trace_id,
            "path": request.url.path,
            "method": request.method,
        }
    )

    # Don't expose internal details in production
    detail = str(exc) if settings.DEBUG else "An unexpected error occurred"

    return create_problem_response(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR,
        detail=detail,
        request=request,
        trace_id=trace_id,
    )


def register_exception_handlers(app) -> None:
    """
    Install the RFC 7807 handlers on a FastAPI app.

    Usage in main.py:
        register_exception_handlers(app)
    """
    app.add_exception_handler(DocSignException, docsign_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
