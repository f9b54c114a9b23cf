import gateway.__main__ as entrypoint
from gateway.worker import GatewayWorker

from tests.conftest import make_settings


def test_single_process_server_adds_no_headers_of_its_own(monkeypatch):
    captured = {}
    monkeypatch.setattr(entrypoint, "get_settings", lambda: make_settings(service_port=6001))
    monkeypatch.setattr(
        entrypoint.uvicorn, "run", lambda app, **kwargs: captured.update(kwargs)
    )

    entrypoint.main()

    assert captured["port"] == 6001
    assert captured["server_header"] is False
    assert captured["date_header"] is False
    assert captured["log_config"] is None


def test_gunicorn_worker_adds_no_headers_of_its_own():
    assert GatewayWorker.CONFIG_KWARGS["server_header"] is False
    assert GatewayWorker.CONFIG_KWARGS["date_header"] is False
    # uvicorn's own worker defaults survive
    assert GatewayWorker.CONFIG_KWARGS["loop"] == "auto"


def test_gunicorn_config_uses_gateway_worker():
    import gunicorn_conf

    assert gunicorn_conf.worker_class == "gateway.worker.GatewayWorker"
    assert gunicorn_conf.wsgi_app == "gateway.main:create_app()"
