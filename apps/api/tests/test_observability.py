import logging

from prometheus_client import CollectorRegistry

from disaster_api.observability import PrometheusApiMetricsCollector
from fakes import make_client


def test_trace_header_is_propagated() -> None:
    client = make_client()

    response = client.get("/healthz", headers={"x-trace-id": "trace-abc"})

    assert response.status_code == 200
    assert response.headers["x-trace-id"] == "trace-abc"


def test_trace_header_is_generated_when_missing() -> None:
    client = make_client()

    response = client.get("/healthz")

    assert response.headers["x-trace-id"]


def test_api_latency_metric_uses_route_template() -> None:
    client = make_client()

    response = client.get("/disasters/missing-id")
    metrics = client.app.state.api_metrics.snapshot()

    assert response.status_code == 404
    assert metrics[-1]["path"] == "/disasters/{disaster_id}"
    assert metrics[-1]["status_code"] == 404
    assert metrics[-1]["duration_ms"] >= 0


def test_prometheus_metrics_endpoint_exposes_http_and_change_metrics() -> None:
    client = make_client()

    client.get("/healthz")
    response = client.get("/metrics")
    body = response.text

    assert response.status_code == 200
    assert "disaster_api_http_requests_total" in body
    assert "disaster_api_http_request_duration_ms" in body


def test_change_events_are_counted() -> None:
    registry = CollectorRegistry()
    prom = PrometheusApiMetricsCollector(registry)

    prom.observe_change_event("disaster_created", delivered=2, dropped=1)
    prom.observe_change_event("disaster_created", delivered=1, dropped=0)

    def sample(outcome: str) -> float | None:
        labels = {"event": "disaster_created", "outcome": outcome}
        return registry.get_sample_value("disaster_api_change_events_total", labels)

    assert sample("delivered") == 3.0
    assert sample("dropped") == 1.0


def test_health_and_ready_endpoints() -> None:
    client = make_client()

    health = client.get("/healthz").json()
    ready = client.get("/readyz").json()

    assert health == {"success": True, "data": {"status": "ok"}, "meta": {}}
    assert ready["data"]["status"] == "ready"
    assert ready["data"]["geocoding_providers"] == ["static"]
    assert ready["data"]["subscribers"] == 0


def test_provider_attempts_are_counted() -> None:
    registry = CollectorRegistry()
    prom = PrometheusApiMetricsCollector(registry)

    prom.observe_provider_attempt("mapbox", "error")
    prom.observe_provider_attempt("google", "resolved")
    prom.observe_provider_attempt("google", "resolved")
    name = "disaster_api_geocoding_attempts_total"

    assert registry.get_sample_value(name, {"provider": "mapbox", "outcome": "error"}) == 1.0
    assert registry.get_sample_value(name, {"provider": "google", "outcome": "resolved"}) == 2.0
    assert registry.get_sample_value(name, {"provider": "google", "outcome": "error"}) is None


def test_each_request_writes_one_log_line(caplog) -> None:
    client = make_client()
    caplog.set_level(logging.INFO, logger="disaster_api.observability")

    client.get("/disasters/missing-id", headers={"x-trace-id": "trace-log"})
    records = [record for record in caplog.records if record.getMessage() == "http_request"]

    assert len(records) == 1
    assert records[0].path == "/disasters/{disaster_id}"
    assert records[0].status_code == 404
    assert records[0].trace_id == "trace-log"


def test_websocket_is_not_counted_as_request() -> None:
    client = make_client()

    with client.websocket_connect("/ws") as ws:
        ws.receive_json()

    assert client.app.state.api_metrics.snapshot() == []
