"""Edge gateway: local self-health endpoint.

Checks read in-process state only. Upstream health is not looked at here;
clients get it by calling ``/api/health``, which is an ordinary forward.
"""

from __future__ import annotations

from fastapi import APIRouter
from starlette.datastructures import State

from gateway_shared.health import HealthAggregator, HealthRecord, create_health_router


def build_aggregator(state: State) -> HealthAggregator:
    """Component checks over the application state."""

    def gateway() -> HealthRecord:
        return HealthRecord(component="gateway", ok=True, detail="accepting connections")

    def router() -> HealthRecord:
        current = getattr(state, "router", None)
        if current is None:
            return HealthRecord(component="router", ok=False, detail="not initialized")
        return HealthRecord(
            component="router", ok=True, detail=f"{len(current.table)} route(s)"
        )

    def upstream_client() -> HealthRecord:
        client = getattr(state, "upstream", None)
        if client is None:
            return HealthRecord(component="upstream_client", ok=False, detail="not initialized")
        if client.is_closed:
            return HealthRecord(component="upstream_client", ok=False, detail="closed")
        return HealthRecord(component="upstream_client", ok=True)

    return HealthAggregator(
        [
            ("gateway", gateway),
            ("router", router),
            ("upstream_client", upstream_client),
        ]
    )


def create_router(state: State, path: str = "/health") -> APIRouter:
    return create_health_router(build_aggregator(state), path=path)
