"""Edge gateway: route table and dispatch decision.

The table is built once at startup from settings and only read afterwards.
``Router.match`` is a pure function of the path: it decides between the
local health handler, a forwarding rule, or "not found", and computes the
upstream path for forwards.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from gateway.core.config import GatewaySettings
from gateway.core.errors import RouterConfigurationError


@dataclass(frozen=True)
class UpstreamTarget:
    scheme: str
    host: str
    port: int

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.base_url


@dataclass(frozen=True)
class RouteRule:
    prefix: str
    target: UpstreamTarget
    strip_prefix: bool = True

    def matches(self, path: str) -> bool:
        # Segment boundary: "/api" covers "/api" and "/api/...", not "/apix"
        if self.prefix == "/":
            return path.startswith("/")
        return path == self.prefix or path.startswith(self.prefix + "/")

    def rewrite(self, path: str) -> str:
        if not self.strip_prefix or self.prefix == "/":
            return path
        return path[len(self.prefix):] or "/"


@dataclass(frozen=True)
class LocalHealth:
    """The path is the self-health path; never forwarded."""


@dataclass(frozen=True)
class RouteMatch:
    rule: RouteRule
    upstream_path: str

    @property
    def target(self) -> UpstreamTarget:
        return self.rule.target


@dataclass(frozen=True)
class NoRoute:
    path: str


Decision = LocalHealth | RouteMatch | NoRoute


def normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip()
    if not prefix.startswith("/"):
        raise RouterConfigurationError(f"route prefix {prefix!r} must start with '/'")
    if "?" in prefix or "#" in prefix:
        raise RouterConfigurationError(f"route prefix {prefix!r} must be a bare path")
    return prefix.rstrip("/") or "/"


class RouteTable:
    """Route rules ordered by descending prefix length (longest wins)."""

    def __init__(self, rules: Iterable[RouteRule], health_path: str = "/health") -> None:
        rules = tuple(rules)
        seen: set[str] = set()
        for rule in rules:
            if rule.prefix in seen:
                raise RouterConfigurationError(
                    f"duplicate route prefix {rule.prefix!r}: routing would be ambiguous"
                )
            if rule.prefix == health_path:
                raise RouterConfigurationError(
                    f"route prefix {rule.prefix!r} collides with the self-health path"
                )
            seen.add(rule.prefix)
        self.rules: tuple[RouteRule, ...] = tuple(
            sorted(rules, key=lambda r: len(r.prefix), reverse=True)
        )
        self.health_path = health_path

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    @classmethod
    def from_settings(cls, settings: GatewaySettings) -> RouteTable:
        default = UpstreamTarget(
            scheme=settings.upstream_scheme,
            host=settings.upstream_host,
            port=settings.upstream_port,
        )
        rules = []
        for entry in settings.routes:
            target = UpstreamTarget(
                scheme=entry.scheme or default.scheme,
                host=entry.host or default.host,
                port=entry.port or default.port,
            )
            rules.append(
                RouteRule(
                    prefix=normalize_prefix(entry.prefix),
                    target=target,
                    strip_prefix=entry.strip_prefix,
                )
            )
        return cls(rules, health_path=settings.health_path)

    def lookup(self, path: str) -> RouteMatch | None:
        for rule in self.rules:
            if rule.matches(path):
                return RouteMatch(rule=rule, upstream_path=rule.rewrite(path))
        return None


class Router:
    """Maps an inbound path to a dispatch decision."""

    def __init__(self, table: RouteTable) -> None:
        self.table = table

    def match(self, path: str) -> Decision:
        if path == self.table.health_path:
            return LocalHealth()
        found = self.table.lookup(path)
        if found is None:
            return NoRoute(path=path)
        return found
