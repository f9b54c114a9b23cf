import httpx
import pytest
from fastapi.testclient import TestClient

from gateway.main import create_app
from gateway_shared.health import HealthAggregator, HealthRecord, HealthVerdict

from tests.conftest import make_settings


def test_health(client, upstream):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert [c["component"] for c in data["components"]] == [
        "gateway",
        "router",
        "upstream_client",
    ]
    assert all(c["ok"] for c in data["components"])
    assert all("checked_at" in c for c in data["components"])
    assert upstream.calls == 0


def test_health_body_matches_liveness_check(client):
    assert '"ok":true' in client.get("/health").text


def test_health_reports_route_count(client):
    router = next(c for c in client.get("/health").json()["components"] if c["component"] == "router")
    assert router["detail"] == "1 route(s)"


def test_health_independent_of_upstream_state(client, upstream):
    def refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    upstream.responder = refuse
    assert client.get("/api/products").status_code == 502

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert upstream.calls == 1


def test_health_head(client, upstream):
    response = client.head("/health")
    assert response.status_code == 200
    assert upstream.calls == 0


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH", "TRACE", "PURGE"])
def test_health_other_methods_not_forwarded(client, upstream, method):
    response = client.request(method, "/health")
    assert response.status_code == 405
    assert response.json()["error"]["code"] == "method_not_allowed"
    assert response.headers["allow"] == "GET, HEAD"
    assert upstream.calls == 0


def test_health_fails_before_upstream_client_initialized():
    # No lifespan: the upstream pool was never created
    app = create_app(make_settings())
    response = TestClient(app).get("/health")
    assert response.status_code == 503
    data = response.json()
    assert data["ok"] is False
    record = next(c for c in data["components"] if c["component"] == "upstream_client")
    assert record["ok"] is False
    assert record["detail"] == "not initialized"


def test_health_path_is_configurable(upstream):
    app = create_app(make_settings(health_path="/healthz"), transport=httpx.MockTransport(upstream))
    with TestClient(app) as client:
        assert client.get("/healthz").json()["ok"] is True
        assert client.get("/health").status_code == 404
    assert upstream.calls == 0


def test_aggregator_records_raising_check():
    def broken() -> HealthRecord:
        raise RuntimeError("boom")

    aggregator = HealthAggregator(
        [("fine", lambda: HealthRecord(component="fine", ok=True)), ("broken", broken)]
    )
    verdict = aggregator.verdict()
    assert verdict.ok is False
    assert [r.component for r in verdict.components] == ["fine", "broken"]
    assert verdict.components[1].ok is False
    assert verdict.components[1].detail == "error: boom"


def test_verdict_is_and_of_records():
    records = [HealthRecord(component="a", ok=True), HealthRecord(component="b", ok=True)]
    assert HealthVerdict.from_records(records).ok is True
    records.append(HealthRecord(component="c", ok=False, detail="down"))
    assert HealthVerdict.from_records(records).ok is False


def test_verdict_is_fresh_per_call():
    aggregator = HealthAggregator([("a", lambda: HealthRecord(component="a", ok=True))])
    first = aggregator.verdict().components[0]
    second = aggregator.verdict().components[0]
    assert first is not second
    assert second.checked_at >= first.checked_at
