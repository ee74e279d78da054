from __future__ import annotations

from enum import Enum


class PositionStatus(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    VOID = "void"

    @property
    def is_terminal(self) -> bool:
        return self is not PositionStatus.PENDING


class PositionOutcome(str, Enum):
    WON = "won"
    LOST = "lost"
    VOID = "void"

    def to_status(self) -> PositionStatus:
        return PositionStatus(self.value)


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MarketFamily(str, Enum):
    MATCH_RESULT = "match_result"
    OVER_UNDER = "over_under"
    BOTH_TEAMS_SCORE = "both_teams_score"
    ASIAN_HANDICAP = "asian_handicap"
    GENERIC = "generic"


class Tier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"


class CreatorType(str, Enum):
    USER = "user"
    EXPERT = "expert"


class TicketStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    SETTLED = "settled"
    VOID = "void"
    EXPIRED = "expired"


__all__ = [
    "PositionStatus",
    "PositionOutcome",
    "EventStatus",
    "MarketFamily",
    "Tier",
    "CreatorType",
    "TicketStatus",
]
