from datetime import datetime, timezone

import pytest

from shared.events import EVENT_VERSION, build_event_envelope

FIXED = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


def test_envelope_dict_carries_room_and_trace() -> None:
    envelope = build_event_envelope(
        "disaster_updated",
        {"id": "d-1"},
        trace_id="trace-1",
        room="d-1",
        clock=lambda: FIXED,
    )

    data = envelope.to_dict()

    assert data["event_type"] == "disaster_updated"
    assert data["payload"] == {"id": "d-1"}
    assert data["trace_id"] == "trace-1"
    assert data["room"] == "d-1"
    assert data["occurred_at"] == "2026-10-18T09:30:00+00:00"
    assert data["event_version"] == EVENT_VERSION
    assert data["event_id"]


def test_global_event_omits_room() -> None:
    data = build_event_envelope("resource_created", {"id": "r-1"}).to_dict()

    assert "room" not in data
    assert data["trace_id"]


def test_event_ids_are_unique() -> None:
    first = build_event_envelope("report_created", {})
    second = build_event_envelope("report_created", {})

    assert first.event_id != second.event_id


def test_empty_event_type_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_event_envelope("", {})
