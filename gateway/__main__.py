"""Run a single gateway worker: ``python -m gateway``.

Production runs under gunicorn with ``gunicorn_conf.py``.
"""

from __future__ import annotations

import uvicorn

from gateway.core.config import get_settings
from gateway.main import create_app
from gateway.worker import SERVER_CONFIG


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.service_port,
        log_level=settings.log_level.lower(),
        # Logging is already configured by create_app
        log_config=None,
        timeout_graceful_shutdown=30,
        **SERVER_CONFIG,
    )


if __name__ == "__main__":
    main()
