"""Records consumed and produced by the settlement engine."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from settleboard.shared.determinism import ensure_utc, to_decimal
from settleboard.shared.enums import (
    CreatorType,
    EventStatus,
    PositionOutcome,
    PositionStatus,
)
from settleboard.shared.errors import (
    ExpertNotFoundError,
    SettlementError,
    ValidationError,
)


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _strict_int(value: Any) -> Optional[int]:
    # JSON numbers only; bools are ints in Python and must not count.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _strict_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


@dataclass(frozen=True)
class StructuredMarketResult:
    """Structured per-market payload recorded alongside an event result."""

    match_result: Optional[str] = None
    total_goals: Optional[int] = None
    both_teams_score: Optional[bool] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    cancelled: bool = False
    abandoned: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["StructuredMarketResult"]:
        """Build from a JSON string or mapping; None when unusable.

        Fields with the wrong JSON type are treated as absent rather than
        coerced, so ``{"totalGoals": "3"}`` carries no total.
        """
        if payload is None:
            return None
        if isinstance(payload, (str, bytes)):
            if not payload.strip():
                return None
            try:
                payload = json.loads(payload)
            except (ValueError, TypeError):
                return None
        if not isinstance(payload, Mapping):
            return None

        match_result = _pick(payload, "matchResult", "match_result")
        return cls(
            match_result=match_result if isinstance(match_result, str) else None,
            total_goals=_strict_int(_pick(payload, "totalGoals", "total_goals")),
            both_teams_score=_strict_bool(_pick(payload, "bothTeamsScore", "both_teams_score")),
            home_score=_strict_int(_pick(payload, "homeScore", "home_score")),
            away_score=_strict_int(_pick(payload, "awayScore", "away_score")),
            cancelled=_strict_bool(payload.get("cancelled")) is True,
            abandoned=_strict_bool(payload.get("abandoned")) is True,
        )


@dataclass(frozen=True)
class SportEventOutcome:
    """Recorded outcome of one sporting event. Immutable once recorded."""

    event_id: str
    settled_at: datetime
    final_score: Optional[str] = None
    winner: Optional[str] = None
    market_results: Optional[StructuredMarketResult] = None
    event_status: EventStatus = EventStatus.COMPLETED

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SportEventOutcome":
        status = row.get("event_status") or EventStatus.COMPLETED
        try:
            status = EventStatus(str(getattr(status, "value", status)).lower())
        except ValueError:
            status = EventStatus.COMPLETED
        return cls(
            event_id=str(row["event_id"]),
            settled_at=ensure_utc(row["settled_at"]),
            final_score=row.get("final_score"),
            winner=row.get("winner"),
            market_results=StructuredMarketResult.from_payload(row.get("market_results")),
            event_status=status,
        )


@dataclass(frozen=True)
class CanonicalResult:
    """Normalized view of an outcome; recomputed per settlement attempt."""

    winner: Optional[str] = None
    total_goals: Optional[int] = None
    both_teams_scored: Optional[bool] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    cancelled: bool = False
    abandoned: bool = False

    @property
    def is_void_forcing(self) -> bool:
        return self.cancelled or self.abandoned

    @property
    def has_scores(self) -> bool:
        return self.home_score is not None and self.away_score is not None


@dataclass(frozen=True)
class PositionRecord:
    """One prediction as loaded from storage."""

    id: str
    creator_id: str
    creator_type: CreatorType
    event_id: str
    market: str
    selection: str
    odds: Decimal
    status: PositionStatus = PositionStatus.PENDING
    outcome: Optional[PositionOutcome] = None
    created_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None
    expert_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PositionRecord":
        outcome = row.get("outcome")
        created_at = row.get("created_at")
        settled_at = row.get("settled_at")
        expert_id = row.get("expert_id")
        return cls(
            id=str(row["id"]),
            creator_id=str(row["creator_id"]),
            creator_type=CreatorType(str(row.get("creator_type") or "user").lower()),
            event_id=str(row["event_id"]),
            market=row.get("market") or "",
            selection=row.get("selection") or "",
            odds=to_decimal(row.get("odds"), "odds"),
            status=PositionStatus(str(row.get("status") or "pending").lower()),
            outcome=PositionOutcome(str(outcome).lower()) if outcome else None,
            created_at=ensure_utc(created_at) if created_at else None,
            settled_at=ensure_utc(settled_at) if settled_at else None,
            expert_id=str(expert_id) if expert_id is not None else None,
        )

    @property
    def is_expert(self) -> bool:
        return self.creator_type is CreatorType.EXPERT


@dataclass(frozen=True)
class SettlementDecision:
    """Terminal transition chosen for a Pending position."""

    position: PositionRecord
    outcome: PositionOutcome
    settled_at: datetime

    @property
    def status(self) -> PositionStatus:
        return self.outcome.to_status()


@dataclass
class SettlementFailure:
    position_id: str
    error: str


@dataclass
class SettlementRunReport:
    """Summary of one settlement run."""

    outcomes_found: int = 0
    candidates: int = 0
    settled: int = 0
    skipped: int = 0
    failures: list[SettlementFailure] = field(default_factory=list)
    events_published: int = 0
    experts_recalculated: int = 0
    experts_failed: int = 0
    cancelled: bool = False
    by_outcome: dict[str, int] = field(default_factory=dict)


__all__ = [
    "SettlementError",
    "ValidationError",
    "ExpertNotFoundError",
    "StructuredMarketResult",
    "SportEventOutcome",
    "CanonicalResult",
    "PositionRecord",
    "SettlementDecision",
    "SettlementFailure",
    "SettlementRunReport",
]
