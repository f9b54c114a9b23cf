"""Edge gateway shared utilities package."""

from gateway_shared.config import BaseServiceSettings
from gateway_shared.health import HealthAggregator, HealthRecord, HealthVerdict
from gateway_shared.logging import bind_route_context, route_server_loggers, setup_logging

__all__ = [
    "BaseServiceSettings",
    "HealthAggregator",
    "HealthRecord",
    "HealthVerdict",
    "bind_route_context",
    "route_server_loggers",
    "setup_logging",
]
