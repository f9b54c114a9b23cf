"""Reusable local health-check router.

The verdict is composed from *synchronous* component checks only. A check
cannot await, so the local health path never waits on the network and
answers even while an upstream is slow or down. Health of an upstream is
obtained by forwarding to the upstream's own endpoint, never from here.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthRecord(BaseModel):
    """Outcome of a single component check."""

    component: str
    ok: bool
    detail: str | None = None
    checked_at: datetime = Field(default_factory=_utcnow)


class HealthVerdict(BaseModel):
    """Aggregate of component records; ``ok`` only when every record is."""

    ok: bool
    components: list[HealthRecord]

    @classmethod
    def from_records(cls, records: Sequence[HealthRecord]) -> HealthVerdict:
        return cls(ok=all(r.ok for r in records), components=list(records))


ComponentCheck = Callable[[], HealthRecord]


class HealthAggregator:
    """Runs component checks and composes a fresh verdict per call."""

    def __init__(self, checks: Sequence[tuple[str, ComponentCheck]] = ()) -> None:
        self._checks = tuple(checks)

    def verdict(self) -> HealthVerdict:
        records: list[HealthRecord] = []
        for name, check in self._checks:
            try:
                record = check()
            except Exception as exc:
                logger.warning("health_check_error", component=name, error=str(exc))
                record = HealthRecord(component=name, ok=False, detail=f"error: {exc}")
            records.append(record)
        return HealthVerdict.from_records(records)


def create_health_router(
    aggregator: HealthAggregator,
    path: str = "/health",
) -> APIRouter:
    """Build a router answering ``GET``/``HEAD`` on ``path`` locally.

    Args:
        aggregator: Source of the verdict; its checks must not do I/O.
        path: The exact self-health path.

    Returns:
        A FastAPI ``APIRouter`` with a single health route.
    """
    router = APIRouter(tags=["health"])

    @router.api_route(
        path,
        methods=["GET", "HEAD"],
        response_model=HealthVerdict,
        summary="Gateway self health",
    )
    async def self_health(response: Response) -> HealthVerdict:
        verdict = aggregator.verdict()
        if not verdict.ok:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return verdict

    return router
