"""HTTP middleware."""

from renewal.middleware.request_context import (
    RequestContext,
    RequestContextMiddleware,
    get_client_ip,
    get_request_context,
)

__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "get_client_ip",
    "get_request_context",
]
