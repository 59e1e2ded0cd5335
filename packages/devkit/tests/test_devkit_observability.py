from __future__ import annotations

import logging

from devkit.observability import KeyValueFormatter, ProbeAccessLogFilter


def _access_record(path: str, status: int) -> logging.LogRecord:
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=("127.0.0.1:12345", "GET", path, "1.1", status),
        exc_info=None,
    )


def test_probe_filter_drops_successful_probes() -> None:
    probe_filter = ProbeAccessLogFilter()

    assert probe_filter.filter(_access_record("/healthz", 200)) is False
    assert probe_filter.filter(_access_record("/metrics", 200)) is False
    assert probe_filter.filter(_access_record("/readyz/?full=true", 200)) is False


def test_probe_filter_keeps_failures_and_real_traffic() -> None:
    probe_filter = ProbeAccessLogFilter(ignored_paths=("/healthz",))

    assert probe_filter.filter(_access_record("/healthz", 503)) is True
    assert probe_filter.filter(_access_record("/geocode/location", 200)) is True
    assert probe_filter.filter(logging.LogRecord("x", logging.INFO, __file__, 1, "plain", (), None)) is True


def test_key_value_formatter_renders_extras() -> None:
    logger = logging.getLogger("devkit.test")
    record = logger.makeRecord(
        "devkit.test",
        logging.WARNING,
        __file__,
        1,
        "geocode_provider_failed",
        (),
        None,
        extra={"component": "geo_engine", "provider": "mapbox", "reason": "401 unauthorized"},
    )

    line = KeyValueFormatter().format(record)

    assert "WARNING devkit.test geocode_provider_failed component=geo_engine" in line
    assert line.endswith("provider=mapbox reason='401 unauthorized'")


def test_key_value_formatter_without_component() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "started", (), None)

    assert KeyValueFormatter().format(record).endswith("x started component=-")
