from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider

PROBE_PATHS = ("/healthz", "/readyz", "/metrics")

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_state = {"otel": False, "probe_filter": False, "logging": False}


def _render(value: object) -> str:
    return repr(value) if isinstance(value, str) and " " in value else str(value)


class KeyValueFormatter(logging.Formatter):
    """``<time> <LEVEL> <logger> <event> key=value ...`` with ``component`` first."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {key: value for key, value in vars(record).items() if key not in _RESERVED}
        component = fields.pop("component", "-")
        pairs = " ".join(f"{key}={_render(value)}" for key, value in sorted(fields.items()))
        return f"{line} component={component}" + (f" {pairs}" if pairs else "")


class ProbeAccessLogFilter(logging.Filter):
    """Drops uvicorn access lines for successful health and metrics probes."""

    def __init__(self, ignored_paths: tuple[str, ...] = PROBE_PATHS) -> None:
        super().__init__()
        self._ignored = {self._strip(path) for path in ignored_paths}

    @staticmethod
    def _strip(path: str) -> str:
        path = path.partition("?")[0]
        return path.rstrip("/") or "/"

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn.access args: (client_addr, method, full_path, http_version, status_code)
        args = record.args
        if not isinstance(args, tuple) or len(args) != 5:
            return True
        path, status = args[2], args[4]
        if not isinstance(path, str) or status != 200:
            return True
        return self._strip(path) not in self._ignored


def configure_otel(service_name: str) -> None:
    if _state["otel"]:
        return
    trace.set_tracer_provider(TracerProvider(resource=Resource.create({"service.name": service_name})))
    _state["otel"] = True


def configure_probe_access_log_filter(ignored_paths: tuple[str, ...] = PROBE_PATHS) -> None:
    if _state["probe_filter"]:
        return
    logging.getLogger("uvicorn.access").addFilter(ProbeAccessLogFilter(ignored_paths))
    _state["probe_filter"] = True


def configure_logging(level: str = "INFO") -> None:
    if _state["logging"]:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(KeyValueFormatter())
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level.upper())
    _state["logging"] = True
