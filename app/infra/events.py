from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Any

from sqlmodel import Session

from app.domain.models import EventEnvelope, EventRecord
from app.infra.context import get_actor_id
from app.infra.db import engine

EventHandler = Callable[[EventEnvelope], None]
WILDCARD = "*"


def _to_record(event: EventEnvelope) -> EventRecord:
    return EventRecord(
        event_id=event.event_id,
        event_type=event.event_type,
        ts=event.ts,
        actor_id=event.actor_id,
        correlation_id=event.correlation_id,
        payload=event.payload,
    )


class EventBus:
    """Persists domain events and fans them out to in-process subscribers.

    Handlers run after the record is stored. Subscribing to ``"*"`` receives
    every event type.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: EventEnvelope, session: Session | None = None) -> None:
        if session is not None:
            # The caller owns the transaction.
            session.add(_to_record(event))
        else:
            with Session(engine) as own_session:
                own_session.add(_to_record(event))
                own_session.commit()

        for handler in (*self._subscribers.get(event.event_type, ()), *self._subscribers.get(WILDCARD, ())):
            handler(event)

    def publish_dict(
        self,
        event_type: str,
        payload: dict[str, Any],
        *,
        correlation_id: str | None = None,
    ) -> EventEnvelope:
        event = EventEnvelope(
            event_type=event_type,
            actor_id=get_actor_id(),
            correlation_id=correlation_id,
            payload=payload,
        )
        self.publish(event)
        return event


event_bus = EventBus()
