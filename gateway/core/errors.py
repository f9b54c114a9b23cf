"""Edge gateway: error taxonomy and client-facing translation.

Every failure the gateway can report is a ``GatewayError``. The handlers
registered here turn them into ``{"error": {"code", "message"}}`` bodies;
transport detail stays in the logs.
"""

from __future__ import annotations

import logging

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class GatewayError(Exception):
    """Base class for errors surfaced to clients by the gateway."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    message: str = "Internal gateway error"
    component: str = "gateway"
    log_level: int = logging.ERROR

    def __init__(self, detail: str | None = None, **context: object) -> None:
        super().__init__(detail or self.message)
        self.detail = detail
        self.context = context

    def to_body(self) -> dict[str, dict[str, str]]:
        return {"error": {"code": self.code, "message": self.message}}

    def response_headers(self) -> dict[str, str] | None:
        return None


class RouteNotFound(GatewayError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "route_not_found"
    message = "No route matches the requested path"
    component = "router"
    log_level = logging.INFO


class MethodNotAllowed(GatewayError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    code = "method_not_allowed"
    message = "Method not allowed on this path"
    component = "router"
    log_level = logging.INFO

    def __init__(self, allowed: tuple[str, ...], detail: str | None = None) -> None:
        super().__init__(detail, allowed=",".join(allowed))
        self.allowed = allowed

    def response_headers(self) -> dict[str, str]:
        return {"Allow": ", ".join(self.allowed)}


class UpstreamError(GatewayError):
    """A failure talking to the upstream service."""

    component = "upstream_client"
    log_level = logging.WARNING


class UpstreamUnreachable(UpstreamError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_unreachable"
    message = "Upstream service is unreachable"


class UpstreamMalformedResponse(UpstreamError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_malformed_response"
    message = "Upstream service returned an invalid response"


class UpstreamTimeout(UpstreamError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    code = "upstream_timeout"
    message = "Upstream service did not respond in time"


class UpstreamUnavailable(UpstreamError):
    """No pooled connection became free within the acquire bound."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "upstream_unavailable"
    message = "Gateway is at capacity, retry later"


class RouterConfigurationError(Exception):
    """Invalid route table; the process must not start with it."""


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    event = "route_not_found" if isinstance(exc, RouteNotFound) else "gateway_error"
    if isinstance(exc, UpstreamError):
        event = "upstream_failure"
    logger.log(
        exc.log_level,
        event,
        component=exc.component,
        kind=type(exc).__name__,
        code=exc.code,
        detail=exc.detail,
        **exc.context,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(),
        headers=exc.response_headers(),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # Framework-level rejections share the error body
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": f"http_{exc.status_code}", "message": str(exc.detail)}},
        headers=exc.headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", kind=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=GatewayError().to_body(),
    )


def register_exception_handlers(application: FastAPI) -> None:
    """Attach the gateway's error translation to ``application``."""
    application.add_exception_handler(GatewayError, gateway_error_handler)
    application.add_exception_handler(StarletteHTTPException, http_exception_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)
