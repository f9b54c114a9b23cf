"""Edge gateway: upstream HTTP client adapter.

Wraps a single pooled ``httpx.AsyncClient`` and translates transport
failures into the gateway's ``UpstreamError`` family. A call either
returns the complete upstream response or raises; bodies are read in full
inside the per-call deadline so a cut-off body is reported, never relayed.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

import httpx
import structlog

from gateway.core.config import GatewaySettings
from gateway.core.errors import (
    UpstreamError,
    UpstreamMalformedResponse,
    UpstreamTimeout,
    UpstreamUnavailable,
    UpstreamUnreachable,
)
from gateway.core.routing import UpstreamTarget

logger = structlog.get_logger()


@dataclass(frozen=True)
class UpstreamRequest:
    method: str
    path: str
    query: str = ""
    headers: list[tuple[bytes, bytes]] = field(default_factory=list)
    content: bytes = b""

    @property
    def raw_path(self) -> bytes:
        path = self.path.encode("latin-1")
        if self.query:
            return path + b"?" + self.query.encode("latin-1")
        return path


@dataclass(frozen=True)
class UpstreamResponse:
    status_code: int
    headers: list[tuple[bytes, bytes]]
    content: bytes
    elapsed_ms: float = 0.0


def translate_transport_error(exc: Exception) -> UpstreamError:
    """Map an httpx/asyncio failure to the gateway's error taxonomy."""
    # PoolTimeout is a TimeoutException; check it first
    if isinstance(exc, httpx.PoolTimeout):
        return UpstreamUnavailable("connection pool exhausted")
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return UpstreamTimeout(f"{type(exc).__name__}: {exc}")
    if isinstance(exc, httpx.ConnectError):
        return UpstreamUnreachable(f"connect failed: {exc}")
    if isinstance(exc, (httpx.RemoteProtocolError, httpx.ReadError, httpx.DecodingError)):
        return UpstreamMalformedResponse(f"{type(exc).__name__}: {exc}")
    return UpstreamUnreachable(f"{type(exc).__name__}: {exc}")


class UpstreamClient:
    """Pooled client for the internal application service.

    Args:
        timeout: Deadline in seconds for one attempt (connect, send and the
            full response read).
        pool_acquire_timeout: How long a call may wait for a free pooled
            connection before failing with ``UpstreamUnavailable``.
        max_connections: Pool ceiling.
        max_keepalive: Idle connections kept for reuse.
        retries: Extra attempts after a connect failure; nothing is retried
            once the request may have reached the upstream.
        transport: Optional transport override (tests mount
            ``httpx.MockTransport`` here).
    """

    def __init__(
        self,
        *,
        timeout: float,
        pool_acquire_timeout: float,
        max_connections: int,
        max_keepalive: int,
        retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.retries = retries
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, pool=pool_acquire_timeout),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_keepalive,
            ),
            transport=transport,
            follow_redirects=False,
            trust_env=False,
        )

    @classmethod
    def from_settings(
        cls,
        settings: GatewaySettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> UpstreamClient:
        return cls(
            timeout=settings.upstream_timeout,
            pool_acquire_timeout=settings.pool_acquire_timeout,
            max_connections=settings.pool_max_connections,
            max_keepalive=settings.pool_max_keepalive,
            retries=settings.upstream_retries,
            transport=transport,
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(self, target: UpstreamTarget, request: UpstreamRequest) -> UpstreamResponse:
        """Forward ``request`` to ``target`` and return the full response."""
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._send_once(target, request)
            except UpstreamUnreachable as exc:
                if attempt > self.retries or not isinstance(exc.__cause__, httpx.ConnectError):
                    exc.context.update(upstream=str(target), attempts=attempt)
                    raise
                logger.warning(
                    "upstream_retry",
                    upstream=str(target),
                    attempt=attempt,
                    retries=self.retries,
                    error=exc.detail,
                )
            except UpstreamError as exc:
                exc.context.update(upstream=str(target), attempts=attempt)
                raise

    async def _send_once(
        self, target: UpstreamTarget, request: UpstreamRequest
    ) -> UpstreamResponse:
        http_request = self._client.build_request(
            request.method,
            httpx.URL(target.base_url, raw_path=request.raw_path),
            headers=request.headers,
            content=request.content,
        )
        started = time.perf_counter()
        try:
            status_code, headers, content = await asyncio.wait_for(
                self._exchange(http_request), timeout=self.timeout
            )
        except (httpx.TransportError, TimeoutError) as exc:
            raise translate_transport_error(exc) from exc
        return UpstreamResponse(
            status_code=status_code,
            headers=headers,
            content=content,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )

    async def _exchange(
        self, http_request: httpx.Request
    ) -> tuple[int, list[tuple[bytes, bytes]], bytes]:
        response = await self._client.send(http_request, stream=True)
        try:
            if response.is_stream_consumed:
                # In-memory transports hand back an already-read body
                content = response.content
            else:
                # Raw bytes: the body is relayed without content decoding
                content = b"".join([chunk async for chunk in response.aiter_raw()])
        finally:
            await response.aclose()
        # Header bytes as received; httpx would decode non-ASCII values
        return response.status_code, list(response.headers.raw), content
