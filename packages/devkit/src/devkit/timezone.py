from __future__ import annotations

from datetime import datetime, timezone
import os
import time

_configured = False


def configure_utc_timezone() -> None:
    global _configured
    if _configured:
        return
    os.environ["TZ"] = "UTC"
    if hasattr(time, "tzset"):
        time.tzset()
    _configured = True


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_utc_iso() -> str:
    return now_utc().isoformat()
