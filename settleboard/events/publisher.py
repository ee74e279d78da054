from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

from sqlalchemy import text

from settleboard.events.event import Event

_INSERT_OUTBOX = text(
    """
    INSERT INTO outbox (event_id, topic, payload, sent)
    VALUES (:event_id, :topic, CAST(:payload AS JSONB), false)
    ON CONFLICT (event_id) DO NOTHING
    """
)


async def write_outbox(db: Any, event: Event) -> bool:
    """Insert one event row through ``db`` (a ``DBM`` or an open ``TransactionScope``).

    Returns False when a row with the same event id already exists.
    """
    inserted = await db.write(
        _INSERT_OUTBOX,
        params={
            "event_id": event.event_id,
            "topic": event.event_type,
            "payload": event.payload_json(),
        },
    )
    return bool(inserted)


class EventPublisher(Protocol):
    async def publish(self, event: Event) -> bool:
        """Publish one event; False when it was already published."""

    def record(self, event: Event) -> None:
        """Note an event whose outbox row was committed by another transaction."""


class OutboxPublisher:
    """Writes events to the outbox table and journals them to the events log.

    Duplicate event ids are dropped by the insert, so publishing the same
    settlement twice leaves one row.
    """

    def __init__(self, db: Any, events_logger: Optional[logging.Logger] = None):
        self.db = db
        self.events_logger = events_logger

    async def publish(self, event: Event) -> bool:
        inserted = await write_outbox(self.db, event)
        if inserted:
            self.record(event)
        return inserted

    def record(self, event: Event) -> None:
        if self.events_logger is not None and hasattr(self.events_logger, "event"):
            self.events_logger.event(Event.canonical_json(event.to_dict()))


class InMemoryPublisher:
    """Collects events in memory, dropping duplicate ids."""

    def __init__(self) -> None:
        self.events: List[Event] = []
        self._seen: set[str] = set()

    async def publish(self, event: Event) -> bool:
        if event.event_id in self._seen:
            return False
        self.record(event)
        return True

    def record(self, event: Event) -> None:
        if event.event_id not in self._seen:
            self._seen.add(event.event_id)
            self.events.append(event)


__all__ = ["EventPublisher", "OutboxPublisher", "InMemoryPublisher", "write_outbox"]
