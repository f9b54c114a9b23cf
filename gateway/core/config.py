"""Edge gateway: environment-based configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gateway_shared.config import BaseServiceSettings

MAX_UPSTREAM_RETRIES = 3


class RouteConfig(BaseModel):
    """One entry of the ``ROUTES`` JSON list.

    Target fields left unset fall back to the default upstream.
    """

    model_config = ConfigDict(frozen=True)

    prefix: str
    strip_prefix: bool = True
    scheme: Literal["http", "https"] | None = None
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)


class GatewaySettings(BaseServiceSettings):
    """Settings specific to the edge gateway."""

    service_name: str = "edge_gateway"
    service_port: int = Field(default=5921, ge=1, le=65535)

    # Internal application service (resolved via the private network)
    upstream_scheme: Literal["http", "https"] = "http"
    upstream_host: str = "backend"
    upstream_port: int = Field(default=3847, ge=1, le=65535)

    # Per-call deadline covering connect, send and the full response read
    upstream_timeout: float = Field(default=10.0, gt=0)
    # Extra attempts on connect failure only
    upstream_retries: int = Field(default=0, ge=0, le=MAX_UPSTREAM_RETRIES)

    # Connection pool ceiling; waiting for a slot is bounded
    pool_max_connections: int = Field(default=100, ge=1)
    pool_max_keepalive: int = Field(default=20, ge=0)
    pool_acquire_timeout: float = Field(default=1.0, gt=0)

    # Routing
    health_path: str = "/health"
    routes: list[RouteConfig] = Field(
        default_factory=lambda: [RouteConfig(prefix="/api", strip_prefix=True)]
    )
    forwarded_for_header: str = "X-Forwarded-For"

    disconnect_poll_interval: float = Field(default=0.25, gt=0)

    @model_validator(mode="after")
    def _check_pool(self) -> GatewaySettings:
        if self.pool_max_keepalive > self.pool_max_connections:
            raise ValueError(
                "pool_max_keepalive cannot exceed pool_max_connections"
            )
        if not self.health_path.startswith("/"):
            raise ValueError("health_path must start with '/'")
        return self


def get_settings() -> GatewaySettings:
    """Load settings from the environment."""
    return GatewaySettings()
