"""Edge gateway: application lifespan (startup / shutdown hooks)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI

from gateway.services.upstream import UpstreamClient

log = structlog.get_logger()


def build_lifespan(transport: httpx.AsyncBaseTransport | None = None):
    """Lifespan owning the upstream connection pool.

    ``transport`` replaces the network transport of the pool (tests).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = app.state.settings
        log.info(
            "gateway_starting",
            port=settings.service_port,
            routes=[
                {"prefix": r.prefix, "upstream": str(r.target), "strip_prefix": r.strip_prefix}
                for r in app.state.router.table
            ],
            timeout=settings.upstream_timeout,
            pool_max_connections=settings.pool_max_connections,
        )
        app.state.upstream = UpstreamClient.from_settings(settings, transport=transport)

        try:
            yield
        finally:
            log.info("gateway_stopping")
            await app.state.upstream.aclose()

    return lifespan
