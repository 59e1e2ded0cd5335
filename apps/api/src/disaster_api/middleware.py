from __future__ import annotations

from time import perf_counter
from uuid import uuid4

from opentelemetry import trace
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from disaster_api.observability import ApiMetricCollector, ApiRequestMetric, set_trace_id

TRACE_HEADER = "x-trace-id"


def _route_template(scope: Scope) -> str:
    # Templated path keeps metric label cardinality bounded.
    route = scope.get("route")
    return getattr(route, "path", None) or scope["path"]


class ObservabilityMiddleware:
    """Trace id propagation, an OTel span and one metric per HTTP request.

    Plain ASGI so websocket connections pass straight through untouched.
    """

    def __init__(self, app: ASGIApp, collector: ApiMetricCollector) -> None:
        self.app = app
        self._collector = collector
        self._tracer = trace.get_tracer("disaster-api")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        trace_id = Headers(scope=scope).get(TRACE_HEADER) or uuid4().hex
        set_trace_id(trace_id)
        started = perf_counter()
        status_code = 500

        async def send_with_trace(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message)[TRACE_HEADER] = trace_id
            await send(message)

        with self._tracer.start_as_current_span("http.request") as span:
            span.set_attribute("http.method", scope["method"])
            span.set_attribute("http.target", scope["path"])
            span.set_attribute("trace.id", trace_id)
            try:
                await self.app(scope, receive, send_with_trace)
            finally:
                route = _route_template(scope)
                span.set_attribute("http.route", route)
                span.set_attribute("http.status_code", status_code)
                self._collector.observe(
                    ApiRequestMetric(
                        method=scope["method"],
                        path=route,
                        status_code=status_code,
                        duration_ms=(perf_counter() - started) * 1000.0,
                        trace_id=trace_id,
                    )
                )
