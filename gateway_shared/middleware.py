"""ASGI middleware for request-ID and correlation-ID propagation.

Injects ``X-Request-ID`` (per-request unique) and forwards
``X-Correlation-ID`` (cross-service tracing) into structlog context vars.
The proxy reads the bound request ID back from the context to stamp the
upstream hop.
"""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"
REQUEST_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Injects request/correlation IDs into each request and structlog context."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_HEADER) or str(uuid.uuid4())
        correlation_id = request.headers.get(CORRELATION_HEADER) or request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )

        response: Response = await call_next(request)

        response.headers[REQUEST_HEADER] = request_id
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def current_request_id() -> str | None:
    """Return the request ID bound for the request being handled, if any."""
    return structlog.contextvars.get_contextvars().get("request_id")
