"""Shared fixtures: a gateway wired to an in-process fake upstream."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from gateway.core.config import GatewaySettings
from gateway.main import create_app

Responder = Callable[[httpx.Request], Awaitable[httpx.Response] | httpx.Response]


def make_settings(**overrides) -> GatewaySettings:
    values = {
        "upstream_host": "backend",
        "upstream_port": 3847,
        "upstream_timeout": 2.0,
        "disconnect_poll_interval": 0.05,
    }
    values.update(overrides)
    return GatewaySettings(_env_file=None, **values)


class FakeUpstream:
    """Stands in for the internal service behind ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder: Responder = lambda request: httpx.Response(
            200, json={"ok": True}
        )

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        result = self.responder(request)
        if not isinstance(result, httpx.Response):
            result = await result
        if result.is_stream_consumed:
            # Hand the body back unread, like a network transport does
            result = httpx.Response(
                result.status_code,
                headers=result.headers.raw,
                stream=httpx.ByteStream(result.content),
            )
        return result

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings() -> GatewaySettings:
    return make_settings()


@pytest.fixture
def client(upstream: FakeUpstream, settings: GatewaySettings) -> Iterator[TestClient]:
    app = create_app(settings, transport=httpx.MockTransport(upstream))
    with TestClient(app) as test_client:
        yield test_client
