from __future__ import annotations

import logging
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

logger = logging.getLogger(__name__)

_trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")

LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000)


def set_trace_id(trace_id: str) -> None:
    _trace_id_ctx.set(trace_id)


def get_trace_id() -> str:
    return _trace_id_ctx.get()


@dataclass(frozen=True)
class ApiRequestMetric:
    method: str
    path: str
    status_code: int
    duration_ms: float
    trace_id: str


class ApiMetricCollector(Protocol):
    def observe(self, metric: ApiRequestMetric) -> None: ...


class InMemoryApiMetricsCollector:
    """Keeps the most recent request metrics; used by tests and the debug shell."""

    def __init__(self, max_items: int = 1000) -> None:
        self._metrics: list[ApiRequestMetric] = []
        self._max_items = max_items

    def observe(self, metric: ApiRequestMetric) -> None:
        self._metrics.append(metric)
        if len(self._metrics) > self._max_items:
            del self._metrics[: len(self._metrics) - self._max_items]

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusApiMetricsCollector:
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()
        self._requests = Counter(
            "disaster_api_http_requests_total",
            "HTTP requests by route template and status",
            labelnames=("method", "path", "status_code"),
            registry=self._registry,
        )
        self._latency = Histogram(
            "disaster_api_http_request_duration_ms",
            "HTTP request latency in milliseconds",
            labelnames=("method", "path"),
            buckets=LATENCY_BUCKETS_MS,
            registry=self._registry,
        )
        self._change_events = Counter(
            "disaster_api_change_events_total",
            "Change events fanned out to live subscribers",
            labelnames=("event", "outcome"),
            registry=self._registry,
        )
        self._provider_attempts = Counter(
            "disaster_api_geocoding_attempts_total",
            "Geocoding provider attempts by outcome",
            labelnames=("provider", "outcome"),
            registry=self._registry,
        )

    def observe(self, metric: ApiRequestMetric) -> None:
        self._requests.labels(metric.method, metric.path, str(metric.status_code)).inc()
        self._latency.labels(metric.method, metric.path).observe(metric.duration_ms)

    def observe_change_event(self, event: str, delivered: int, dropped: int) -> None:
        if delivered:
            self._change_events.labels(event, "delivered").inc(delivered)
        if dropped:
            self._change_events.labels(event, "dropped").inc(dropped)

    def observe_provider_attempt(self, provider: str, outcome: str) -> None:
        self._provider_attempts.labels(provider, outcome).inc()

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class RequestLogCollector:
    """One structured log line per request; server errors log at warning level."""

    def observe(self, metric: ApiRequestMetric) -> None:
        level = logging.WARNING if metric.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "http_request",
            extra={
                "component": "http",
                "method": metric.method,
                "path": metric.path,
                "status_code": metric.status_code,
                "duration_ms": round(metric.duration_ms, 2),
                "trace_id": metric.trace_id,
            },
        )


class CompositeApiMetricsCollector:
    def __init__(self, collectors: list[ApiMetricCollector]) -> None:
        self._collectors = collectors

    def observe(self, metric: ApiRequestMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)
