from __future__ import annotations

from disaster_api.config import ApiSettings


def configure_telemetry(settings: ApiSettings) -> None:
    from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter

    configure_logging(settings.LOG_LEVEL)
    configure_otel(settings.SERVICE_NAME)
    configure_probe_access_log_filter()
