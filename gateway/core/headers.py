"""Edge gateway: header rewriting at the hop boundary.

Headers are handled as raw ``(name, value)`` byte pairs, exactly as the
ASGI server and httpx expose them, so values outside ASCII cross the
gateway untouched in both directions.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

# RFC 7230 section 6.1, plus the legacy Proxy-Connection
HOP_BY_HOP_HEADERS = frozenset(
    {
        b"connection",
        b"keep-alive",
        b"proxy-authenticate",
        b"proxy-authorization",
        b"proxy-connection",
        b"te",
        b"trailer",
        b"transfer-encoding",
        b"upgrade",
    }
)

FORWARDED_PROTO_HEADER = b"x-forwarded-proto"
FORWARDED_HOST_HEADER = b"x-forwarded-host"
REQUEST_ID_HEADER = b"x-request-id"

Headers = list[tuple[bytes, bytes]]


def connection_tokens(headers: Iterable[tuple[bytes, bytes]]) -> set[bytes]:
    """Header names listed in ``Connection``; they are hop-by-hop too."""
    tokens: set[bytes] = set()
    for name, value in headers:
        if name.lower() == b"connection":
            tokens.update(t.strip().lower() for t in value.split(b",") if t.strip())
    return tokens


def strip_hop_by_hop(
    headers: Sequence[tuple[bytes, bytes]], extra: Iterable[bytes] = ()
) -> Headers:
    drop = HOP_BY_HOP_HEADERS | connection_tokens(headers) | {h.lower() for h in extra}
    return [(name, value) for name, value in headers if name.lower() not in drop]


def build_forward_headers(
    incoming: Sequence[tuple[bytes, bytes]],
    *,
    client_host: str | None,
    scheme: str,
    forwarded_for_header: str = "X-Forwarded-For",
    request_id: str | None = None,
) -> Headers:
    """Headers for the upstream hop.

    Client headers pass through except hop-by-hop ones, ``Host`` and
    ``Content-Length`` (regenerated by the upstream client). The client
    address is appended to the forwarding-identity chain.
    """
    forwarded_for = forwarded_for_header.lower().encode("latin-1")
    regenerated = (
        b"host",
        b"content-length",
        forwarded_for,
        FORWARDED_PROTO_HEADER,
        FORWARDED_HOST_HEADER,
    )
    headers = strip_hop_by_hop(incoming, extra=regenerated)

    prior = b", ".join(value for name, value in incoming if name.lower() == forwarded_for)
    if client_host:
        host = client_host.encode("latin-1")
        headers.append((forwarded_for, prior + b", " + host if prior else host))
    elif prior:
        headers.append((forwarded_for, prior))

    headers.append((FORWARDED_PROTO_HEADER, scheme.encode("latin-1")))
    original_host = next((v for n, v in incoming if n.lower() == b"host"), None)
    if original_host:
        headers.append((FORWARDED_HOST_HEADER, original_host))

    if request_id and not any(n.lower() == REQUEST_ID_HEADER for n, _ in headers):
        headers.append((REQUEST_ID_HEADER, request_id.encode("latin-1")))
    return headers


def relay_headers(
    upstream: Sequence[tuple[bytes, bytes]], *, keep_length: bool = False
) -> Headers:
    """Upstream response headers safe to send to the client."""
    return strip_hop_by_hop(upstream, extra=() if keep_length else (b"content-length",))
