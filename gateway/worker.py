"""Gunicorn worker class for the gateway.

Status, body and headers of a forwarded response are the upstream's, so
the ASGI server must not add its own ``Server`` and ``Date`` headers.
"""

from __future__ import annotations

from typing import Any

from uvicorn.workers import UvicornWorker

from gateway_shared.logging import route_server_loggers

# Shared with ``python -m gateway``
SERVER_CONFIG: dict[str, Any] = {"server_header": False, "date_header": False}


class GatewayWorker(UvicornWorker):
    CONFIG_KWARGS = {**UvicornWorker.CONFIG_KWARGS, **SERVER_CONFIG}

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # UvicornWorker hands gunicorn's handlers to uvicorn's loggers
        route_server_loggers()
