from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

EVENT_VERSION = "v1"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EventEnvelope:
    """Wire shape of a change event as pushed to live subscribers."""

    event_type: str
    payload: dict[str, Any]
    trace_id: str
    occurred_at: str
    event_id: str = field(default_factory=lambda: uuid4().hex)
    room: str | None = None
    event_version: str = EVENT_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


def build_event_envelope(
    event_type: str,
    payload: dict[str, Any],
    *,
    trace_id: str | None = None,
    room: str | None = None,
    clock: Callable[[], datetime] = _utc_now,
) -> EventEnvelope:
    if not event_type:
        raise ValueError("event_type must not be empty")
    return EventEnvelope(
        event_type=event_type,
        payload=payload,
        trace_id=trace_id or uuid4().hex,
        occurred_at=clock().isoformat(),
        room=room,
    )
