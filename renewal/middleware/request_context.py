"""
Request correlation for the payment logs.

Each HTTP request gets an ID (the caller's ``X-Request-ID`` when it sends
one, a fresh uuid4 otherwise). The ID is echoed back on the response and
published through a ContextVar, so PaymentLog can tag the diagnostic
lines of both the checkout calls and the gateway webhooks without the
request object being passed down into services.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class RequestContext:
    request_id: str
    client_ip: str
    method: str
    path: str


_current: ContextVar[Optional[RequestContext]] = ContextVar("renewal_request", default=None)


def get_request_context() -> Optional[RequestContext]:
    """Context of the request being handled, or None outside one."""
    return _current.get()


def get_client_ip(request: Request) -> str:
    """
    Caller address as seen behind the load balancer.

    Order: X-Real-IP, first hop of X-Forwarded-For, socket peer.
    """
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return request.client.host if request.client and request.client.host else "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a RequestContext for the duration of each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = RequestContext(
            request_id=request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4()),
            client_ip=get_client_ip(request),
            method=request.method,
            path=request.url.path,
        )
        request.state.context = context
        token = _current.set(context)
        try:
            response = await call_next(request)
        finally:
            _current.reset(token)

        response.headers[REQUEST_ID_HEADER] = context.request_id
        return response
