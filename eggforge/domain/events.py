"""Domain event dispatch for game and payment notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, DefaultDict, Iterable, Mapping

SESSION_STARTED = "session.started"
EGG_OPENED = "egg.opened"
PAYMENT_APPLIED = "payment.applied"
PAYMENT_REJECTED = "payment.rejected"
CREDITS_GRANTED = "admin.credits.granted"

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Event:
    name: str
    payload: Mapping[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventListener = Callable[[Event], Awaitable[None]]


class EventBus:
    """Async pub-sub; listeners run in subscription order and errors propagate."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, list[EventListener]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: EventListener) -> None:
        self._listeners[event_name].append(listener)

    def unsubscribe(self, event_name: str, listener: EventListener) -> None:
        listeners = self._listeners.get(event_name)
        if listeners and listener in listeners:
            listeners.remove(listener)

    async def publish(self, event_name: str, payload: Mapping[str, Any]) -> Event:
        event = Event(name=event_name, payload=dict(payload))
        for listener in list(self._listeners.get(event_name, ())):
            await listener(event)
        return event

    async def notify(self, event_name: str, payload: Mapping[str, Any]) -> Event | None:
        """Publish after a committed change; a failing listener is logged, not raised."""
        try:
            return await self.publish(event_name, payload)
        except Exception:
            logger.exception("Listener for %s failed.", event_name)
            return None

    def clear(self) -> None:
        self._listeners.clear()

    def listeners(self, event_name: str) -> Iterable[EventListener]:
        return tuple(self._listeners.get(event_name, ()))
