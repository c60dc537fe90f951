"""
Middleware modules for the DocSign API.

Provides request processing middleware for:
- Request ID tracking for log correlation
- Share-token redaction in log output
"""

from .correlation import CorrelationIdMiddleware, CorrelationLogFilter, request_id_ctx

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationLogFilter",
    "request_id_ctx",
]
