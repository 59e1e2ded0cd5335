from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from disaster_api.config import ApiSettings, load_api_settings
from disaster_api.dependencies import Container, build_container
from disaster_api.errors import ApiError, RateLimited
from disaster_api.middleware import ObservabilityMiddleware
from disaster_api.observability import (
    CompositeApiMetricsCollector,
    InMemoryApiMetricsCollector,
    PrometheusApiMetricsCollector,
    RequestLogCollector,
)
from disaster_api.response import error_response, success_response
from disaster_api.routers.disasters import router as disasters_router
from disaster_api.routers.geocode import router as geocode_router
from disaster_api.routers.realtime import router as realtime_router
from disaster_api.routers.resources import router as resources_router
from disaster_api.routers.verify import router as verify_router
from disaster_api.telemetry import configure_telemetry

_REQUEST_SECTIONS = {"body", "query", "path", "header", "cookie"}


def _validation_message(errors: list[dict]) -> str:
    parts = []
    for err in errors:
        field = ".".join(str(item) for item in err.get("loc", ()) if item not in _REQUEST_SECTIONS)
        parts.append(f"{field}: {err['msg']}" if field else err["msg"])
    return "; ".join(parts)


def create_app(settings: ApiSettings | None = None, container: Container | None = None) -> FastAPI:
    settings = settings or load_api_settings()
    configure_telemetry(settings)

    api_metrics = InMemoryApiMetricsCollector()
    prom_metrics = PrometheusApiMetricsCollector()
    if container is None:
        container = build_container(
            settings,
            on_change_event=prom_metrics.observe_change_event,
            on_provider_attempt=prom_metrics.observe_provider_attempt,
        )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await container.aclose()

    app = FastAPI(title="Disaster Response API", version="0.1.0", lifespan=lifespan)
    app.state.container = container
    app.state.api_metrics = api_metrics
    app.state.prom_metrics = prom_metrics
    app.state.composite_metrics = CompositeApiMetricsCollector(
        [api_metrics, prom_metrics, RequestLogCollector()]
    )
    app.add_middleware(ObservabilityMiddleware, collector=app.state.composite_metrics)
    app.include_router(geocode_router)
    app.include_router(disasters_router)
    app.include_router(resources_router)
    app.include_router(verify_router)
    app.include_router(realtime_router)

    @app.get("/healthz")
    async def healthz() -> dict:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> dict:
        return success_response(
            {
                "status": "ready",
                "geocoding_providers": list(container.resolver.provider_ids),
                "subscribers": container.notifier.subscriber_count,
            },
            meta={},
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = app.state.prom_metrics.render()
        return Response(content=payload, media_type="text/plain; version=0.0.4")

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        headers = {"Retry-After": str(exc.retry_after_seconds)} if isinstance(exc, RateLimited) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.code, exc.message),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=error_response("VALIDATION_ERROR", _validation_message(exc.errors())),
        )

    return app


app = create_app()
