"""Structured logging for the gateway process.

One stdout handler on the root logger renders everything: gateway events
from structlog and the stdlib records of the ASGI server (uvicorn, or
gunicorn with uvicorn workers). JSON in production, coloured console in
development. Per-request fields come from structlog context vars: the
request middleware binds the request identity and the proxy binds the
matched route and upstream.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Server loggers whose own handlers are replaced by the root handler
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "gunicorn.error")

# Per-connection chatter; the gateway logs one ``request_forwarded`` per call
QUIET_LOGGERS = ("uvicorn.access", "gunicorn.access", "httpx", "httpcore")


def setup_logging(
    *,
    log_level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "edge_gateway",
) -> None:
    """Configure structlog and stdlib logging for the process.

    Args:
        log_level: Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: If True, emit JSON; otherwise coloured console output.
        service_name: Added to every log line so gateway output can be told
            apart from upstream output in aggregated logs.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        _drop_color_message,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_service_name(service_name),
    ]

    if json_logs:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    route_server_loggers()


def route_server_loggers() -> None:
    """Send ASGI server records through the root handler.

    uvicorn and gunicorn attach their own handlers when they start; called
    again from the worker once they have.
    """
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.propagate = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_route_context(*, route: str, upstream: str, upstream_path: str) -> None:
    """Bind the forwarding decision for the rest of the request.

    Retry, failure and ``request_forwarded`` events then carry the route
    prefix and upstream without each call site passing them.
    """
    structlog.contextvars.bind_contextvars(
        route=route,
        upstream=upstream,
        upstream_path=upstream_path,
    )


def _drop_color_message(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    # uvicorn duplicates its message with ANSI codes as an ``extra``
    event_dict.pop("color_message", None)
    return event_dict


def _add_service_name(service_name: str) -> structlog.types.Processor:
    """Return a processor that injects the service name."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["service"] = service_name
        return event_dict

    return processor
