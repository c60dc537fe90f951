"""
Correlation ID middleware for request tracing.

Extracts or generates a request ID for every incoming request and exposes
it through a context variable so log records and problem+json responses can
carry the same identifier.

Headers:
- X-Request-ID: Per-request unique identifier (echoed on the response)

Usage:
    from docsign.middleware.correlation import get_request_id

    request_id = get_request_id()
"""

import re
import uuid
import logging
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Async-safe, isolated per request
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

# Share tokens are 64 hex characters; anything that long is treated as a secret
_TOKEN_PATTERN = re.compile(r"\b([0-9a-f]{8})[0-9a-f]{56}\b")


def generate_id() -> str:
    """Generate a short unique ID suitable for logging."""
    return str(uuid.uuid4())[:12]


def redact_tokens(text: str) -> str:
    """Keep only the first 8 characters of any share token found in text."""
    return _TOKEN_PATTERN.sub(r"\1…", text)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Sets request_id_ctx for the duration of the request and adds the
    X-Request-ID header to the response.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_id()

        token = request_id_ctx.set(request_id)
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_ctx.get() or "unknown"


class CorrelationLogFilter(logging.Filter):
    """
    Logging filter that injects the request ID into log records and strips
    share tokens out of the rendered message.

    Usage:
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationLogFilter())
        handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(request_id)s] %(message)s'
        ))
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        message = record.getMessage()
        redacted = redact_tokens(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True
