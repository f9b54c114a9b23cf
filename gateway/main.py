"""Edge gateway: FastAPI application factory.

The only publicly bound process. ``/health`` is answered locally; every
other path goes through the route table and is forwarded or rejected.
"""

from __future__ import annotations

import httpx
from fastapi import FastAPI

from gateway import __version__
from gateway.core.config import GatewaySettings, get_settings
from gateway.core.errors import register_exception_handlers
from gateway.core.events import build_lifespan
from gateway.core.routing import RouteTable, Router
from gateway.routers import health
from gateway.routers.proxy import router as proxy_router

from gateway_shared.logging import setup_logging
from gateway_shared.middleware import RequestContextMiddleware


def create_app(
    settings: GatewaySettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the gateway application.

    Raises ``RouterConfigurationError`` for an ambiguous route table, so a
    misconfigured process never starts serving.
    """
    settings = settings or get_settings()
    setup_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        service_name=settings.service_name,
    )

    gateway_router = Router(RouteTable.from_settings(settings))

    application = FastAPI(
        title="Edge Gateway",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=build_lifespan(transport),
    )
    application.state.settings = settings
    application.state.router = gateway_router

    application.add_middleware(RequestContextMiddleware)
    register_exception_handlers(application)

    # Local health first: the exact path must win over any prefix rule
    application.include_router(health.create_router(application.state, path=settings.health_path))
    application.include_router(proxy_router)

    return application
