import json
import logging

import pytest
import structlog

from gateway_shared.logging import bind_route_context, setup_logging


@pytest.fixture(autouse=True)
def _reset_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


def _render(record: logging.LogRecord) -> dict:
    handler = next(
        h
        for h in logging.getLogger().handlers
        if isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
    )
    return json.loads(handler.format(record))


def test_server_loggers_go_through_root_handler():
    server = logging.getLogger("uvicorn.error")
    server.addHandler(logging.NullHandler())
    server.propagate = False

    setup_logging(json_logs=True)

    for name in ("uvicorn", "uvicorn.error", "gunicorn.error"):
        assert logging.getLogger(name).handlers == []
        assert logging.getLogger(name).propagate is True
    for name in ("uvicorn.access", "gunicorn.access", "httpx", "httpcore"):
        assert logging.getLogger(name).level == logging.WARNING


def test_server_record_rendered_as_gateway_json():
    setup_logging(json_logs=True, service_name="edge_gateway")
    record = logging.makeLogRecord(
        {
            "name": "uvicorn.error",
            "levelno": logging.INFO,
            "levelname": "INFO",
            "msg": "Application startup complete.",
            "color_message": "\x1b[1mApplication startup complete.\x1b[0m",
        }
    )

    line = _render(record)

    assert line["event"] == "Application startup complete."
    assert line["logger"] == "uvicorn.error"
    assert line["service"] == "edge_gateway"
    assert "color_message" not in line


def test_route_context_reaches_server_records():
    setup_logging(json_logs=True)
    bind_route_context(route="/api", upstream="http://backend:3847", upstream_path="/orders")
    record = logging.makeLogRecord(
        {"name": "gateway", "levelno": logging.WARNING, "levelname": "WARNING", "msg": "x"}
    )

    line = _render(record)

    assert line["route"] == "/api"
    assert line["upstream"] == "http://backend:3847"
    assert line["upstream_path"] == "/orders"
