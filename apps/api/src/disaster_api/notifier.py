"""In-process change broadcasting.

Services publish :class:`EntityChanged` messages; transport adapters (the
``/ws`` endpoint) hold a :class:`Subscription` and forward what it receives.
Delivery is fire-and-forget and at-most-once: every subscription owns a
bounded FIFO queue and an event that does not fit is dropped for that
subscriber only. A subscription that joined no room is a global listener.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from shared.events import EventEnvelope, build_event_envelope

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class EntityKind(StrEnum):
    DISASTER = "disaster"
    RESOURCE = "resource"
    REPORT = "report"


class ChangeAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class EntityChanged:
    kind: EntityKind
    action: ChangeAction
    payload: dict[str, Any]
    room: str | None = None

    @property
    def event_name(self) -> str:
        return f"{self.kind.value}_{self.action.value}"

    def to_envelope(self, trace_id: str | None = None) -> EventEnvelope:
        return build_event_envelope(self.event_name, self.payload, trace_id=trace_id, room=self.room)


class Subscription:
    def __init__(self, notifier: ChangeNotifier, queue_size: int) -> None:
        self._notifier = notifier
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=queue_size)
        self._rooms: set[str] = set()
        self.dropped = 0

    @property
    def rooms(self) -> frozenset[str]:
        return frozenset(self._rooms)

    @property
    def is_global(self) -> bool:
        return not self._rooms

    def join(self, room: str) -> None:
        self._rooms.add(room)

    def leave(self, room: str) -> None:
        self._rooms.discard(room)

    def accepts(self, event: EntityChanged) -> bool:
        return self.is_global or (event.room is not None and event.room in self._rooms)

    def offer(self, message: dict[str, Any]) -> bool:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def receive(self) -> dict[str, Any]:
        return await self._queue.get()

    def pending(self) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        while not self._queue.empty():
            items.append(self._queue.get_nowait())
        return items

    def close(self) -> None:
        self._notifier.unsubscribe(self)


class ChangeNotifier:
    def __init__(
        self,
        *,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        trace_id_provider: Callable[[], str] | None = None,
        on_publish: Callable[[str, int, int], None] | None = None,
    ) -> None:
        if queue_size <= 0:
            raise ValueError("queue_size must be > 0")
        self._queue_size = queue_size
        self._subscriptions: list[Subscription] = []
        self._trace_id_provider = trace_id_provider
        self._on_publish = on_publish

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self._queue_size)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, event: EntityChanged) -> int:
        trace_id = self._trace_id_provider() if self._trace_id_provider else None
        envelope = event.to_envelope(trace_id=trace_id or None)
        message = {"event": event.event_name, "data": envelope.to_dict()}
        delivered = dropped = 0
        for subscription in list(self._subscriptions):
            if not subscription.accepts(event):
                continue
            if subscription.offer(message):
                delivered += 1
            else:
                dropped += 1
        if dropped:
            logger.warning(
                "change_event_dropped",
                extra={"component": "notifier", "event": event.event_name, "dropped": dropped},
            )
        if self._on_publish is not None:
            self._on_publish(event.event_name, delivered, dropped)
        return delivered

    def notify(
        self,
        action: ChangeAction | str,
        kind: EntityKind | str,
        payload: dict[str, Any],
        *,
        room: str | None = None,
    ) -> int:
        event = EntityChanged(kind=EntityKind(kind), action=ChangeAction(action), payload=payload, room=room)
        return self.publish(event)
