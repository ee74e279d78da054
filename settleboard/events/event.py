from __future__ import annotations

import hashlib
import json
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Event:
    """
    Base domain event.

    ``event_id`` is deterministic for events that describe a fact which may
    be re-emitted (the same settlement): re-emission
    produces the same id and the outbox drops the duplicate. Events passed
    ``event_id=None`` get a random id.
    """

    def __init__(
        self,
        *,
        event_id: str | None,
        event_type: str,
        event_data: Dict[str, Any],
        created_at: datetime | None = None,
    ):
        self.event_type = event_type
        self.event_data = dict(event_data)
        self.created_at = created_at or datetime.now(timezone.utc)
        self.event_id = event_id or uuid.uuid4().hex

    @staticmethod
    def canonical_json(data: Any) -> str:
        return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_json_default)

    @staticmethod
    def make_id(*parts: Any) -> str:
        joined = "|".join("" if p is None else str(getattr(p, "value", p)) for p in parts)
        return hashlib.sha256(joined.encode("utf-8")).hexdigest()

    def payload_json(self) -> str:
        return Event.canonical_json(self.event_data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "event_data": json.loads(self.payload_json()),
            "created_at": _json_default(self.created_at),
        }

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Event) and other.event_id == self.event_id

    def __hash__(self) -> int:
        return hash(self.event_id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(event_id={self.event_id[:12]}, event_type={self.event_type})"


__all__ = ["Event"]
