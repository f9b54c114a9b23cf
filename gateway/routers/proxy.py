"""Edge gateway: catch-all dispatch and forwarding to the upstream service."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable
from typing import TypeVar

import structlog
from fastapi import APIRouter, Request, Response

from gateway.core.errors import MethodNotAllowed, RouteNotFound
from gateway.core.headers import build_forward_headers, relay_headers
from gateway.core.routing import LocalHealth, NoRoute, RouteMatch, Router
from gateway.services.upstream import UpstreamClient, UpstreamRequest, UpstreamResponse
from gateway_shared.logging import bind_route_context
from gateway_shared.middleware import current_request_id

router = APIRouter(tags=["proxy"])
logger = structlog.get_logger()

HEALTH_METHODS = ("GET", "HEAD")

# Not sent on the wire; recorded when the client went away first
CLIENT_CLOSED_REQUEST = 499

T = TypeVar("T")


class ClientDisconnected(Exception):
    """The client closed its connection before the response was ready."""


def request_path(request: Request) -> str:
    """Path as received on the wire, before percent-decoding."""
    raw = request.scope.get("raw_path")
    if raw:
        return raw.decode("latin-1").partition("?")[0]
    return request.url.path


async def dispatch(request: Request) -> Response:
    """Route everything the local health handler did not answer, any method."""
    gateway_router: Router = request.app.state.router
    path = request_path(request)
    decision = gateway_router.match(path)

    if isinstance(decision, LocalHealth):
        raise MethodNotAllowed(HEALTH_METHODS)
    if isinstance(decision, NoRoute):
        raise RouteNotFound(path=decision.path)
    return await forward(request, decision)


# An empty method set matches any verb, TRACE and extension methods included
router.add_route("/{path:path}", dispatch, methods=[], include_in_schema=False)


async def forward(request: Request, match: RouteMatch) -> Response:
    """Relay ``request`` to the matched upstream and its response back."""
    settings = request.app.state.settings
    upstream: UpstreamClient = request.app.state.upstream
    bind_route_context(
        route=match.rule.prefix,
        upstream=str(match.target),
        upstream_path=match.upstream_path,
    )

    outbound = UpstreamRequest(
        method=request.method,
        path=match.upstream_path,
        query=request.scope.get("query_string", b"").decode("latin-1"),
        headers=build_forward_headers(
            request.headers.raw,
            client_host=request.client.host if request.client else None,
            scheme=request.url.scheme,
            forwarded_for_header=settings.forwarded_for_header,
            request_id=current_request_id(),
        ),
        content=await request.body(),
    )

    try:
        result = await run_until_disconnect(
            request,
            upstream.send(match.target, outbound),
            poll_interval=settings.disconnect_poll_interval,
        )
    except ClientDisconnected:
        logger.info("client_disconnected")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    logger.info(
        "request_forwarded",
        status_code=result.status_code,
        elapsed_ms=result.elapsed_ms,
    )
    return relay(result, head=request.method == "HEAD")


async def run_until_disconnect(
    request: Request, awaitable: Awaitable[T], *, poll_interval: float
) -> T:
    """Await ``awaitable``, cancelling it if the client disconnects first.

    Raises ``ClientDisconnected`` when the client went away; the pending
    call is cancelled, which closes its upstream connection.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                raise ClientDisconnected
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


def relay(result: UpstreamResponse, *, head: bool = False) -> Response:
    """Build the client response: upstream status and body bytes, unchanged."""
    response = Response(content=result.content, status_code=result.status_code)
    if head:
        # Keep the upstream's length for the body HEAD omits
        response.raw_headers = [
            (k, v) for k, v in response.raw_headers if k != b"content-length"
        ]
    response.raw_headers.extend(relay_headers(result.headers, keep_length=head))
    return response
