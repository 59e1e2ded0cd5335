from shared.events.schema import EVENT_VERSION, EventEnvelope, build_event_envelope

__all__ = ["EVENT_VERSION", "EventEnvelope", "build_event_envelope"]
