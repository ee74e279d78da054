"""Persistence boundary for settlement and statistics.

Each collaborator is a ``Protocol`` so jobs and services depend on a
capability rather than on a database; ``Sql*`` classes implement them over
``DBM`` with ``text()`` statements.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from sqlalchemy import bindparam, text

from settleboard.events.event import Event
from settleboard.events.publisher import write_outbox
from settleboard.settlement.types import PositionRecord, SettlementDecision, SportEventOutcome
from settleboard.shared.enums import Tier
from settleboard.shared.rows import ExpertRow, LeaderboardRow

from .dbm import DBM


class OutcomeSource(Protocol):
    async def list_outcomes_settled_between(self, start: datetime, end: datetime) -> List[SportEventOutcome]:
        """Outcomes whose ``settled_at`` falls in [start, end]."""


class PositionStore(Protocol):
    async def list_pending_positions(self, event_ids: Sequence[str]) -> List[PositionRecord]:
        """Pending positions on the given events."""

    async def apply_settlements(
        self,
        decisions: Sequence[SettlementDecision],
        events: Optional[Mapping[str, Event]] = None,
    ) -> List[SettlementDecision]:
        """Persist transitions atomically; return the ones actually applied.

        ``events`` maps position id to the event written to the outbox in the
        same transaction as that position's transition.
        """

    async def list_positions_for_creator(self, creator_id: str) -> List[PositionRecord]:
        """Every position a user has created, any status."""


class ExpertDirectory(Protocol):
    async def get_expert(self, expert_id: str) -> Optional[ExpertRow]:
        ...

    async def expert_id_for_user(self, user_id: str) -> Optional[str]:
        ...

    async def leaderboard(self, limit: int) -> List[LeaderboardRow]:
        """Experts ordered by win rate, best first."""


class StatisticsStore(Protocol):
    async def replace_statistics(self, row: Dict[str, Any], tier: Tier) -> None:
        """Replace the expert's statistics row and tier in one transaction."""


_SELECT_OUTCOMES = text(
    """
    SELECT r.event_id, r.final_score, r.winner, r.market_results, r.settled_at,
           e.status AS event_status
    FROM event_result r
    JOIN sport_event e ON e.event_id = r.event_id
    WHERE r.settled_at >= :start
      AND r.settled_at <= :end
    ORDER BY r.settled_at ASC
    """
)

_POSITION_COLUMNS = """
    p.id, p.creator_id, p.creator_type, p.event_id, p.market, p.selection,
    p.odds, p.status, p.outcome, p.created_at, p.settled_at,
    x.id AS expert_id
"""

_SELECT_PENDING_POSITIONS = text(
    f"""
    SELECT {_POSITION_COLUMNS}
    FROM position p
    LEFT JOIN expert x ON x.user_id = p.creator_id
    WHERE p.status = 'pending'
      AND p.event_id IN :event_ids
    ORDER BY p.created_at ASC, p.id ASC
    """
).bindparams(bindparam("event_ids", expanding=True))

_SELECT_CREATOR_POSITIONS = text(
    f"""
    SELECT {_POSITION_COLUMNS}
    FROM position p
    LEFT JOIN expert x ON x.user_id = p.creator_id
    WHERE p.creator_id = :creator_id
    ORDER BY p.created_at ASC, p.id ASC
    """
)

# Guarded on status so a row settled by a concurrent run is left alone.
_SETTLE_POSITION = text(
    """
    UPDATE position
    SET status = :status,
        outcome = :outcome,
        settled_at = :settled_at,
        updated_at = :updated_at
    WHERE id = :id
      AND status = 'pending'
    """
)

_SELECT_EXPERT = text(
    """
    SELECT x.id, x.user_id, x.display_name, x.tier, s.current_streak
    FROM expert x
    LEFT JOIN expert_statistics s ON s.expert_id = x.id
    WHERE x.id = :expert_id
    """
)

_SELECT_EXPERT_FOR_USER = text(
    """
    SELECT id FROM expert WHERE user_id = :user_id
    """
)

_SELECT_LEADERBOARD = text(
    """
    SELECT s.expert_id, s.win_rate
    FROM expert_statistics s
    ORDER BY s.win_rate DESC, s.total_positions DESC, s.expert_id ASC
    LIMIT :limit
    """
)

_UPSERT_STATISTICS = text(
    """
    INSERT INTO expert_statistics (
        expert_id, total_positions, won_positions, lost_positions,
        void_positions, pending_positions, win_rate, average_odds, roi,
        total_profit, current_streak, longest_win_streak,
        last_7_days_win_rate, last_30_days_win_rate, last_90_days_win_rate,
        last_calculated_at
    ) VALUES (
        :expert_id, :total_positions, :won_positions, :lost_positions,
        :void_positions, :pending_positions, :win_rate, :average_odds, :roi,
        :total_profit, :current_streak, :longest_win_streak,
        :last_7_days_win_rate, :last_30_days_win_rate, :last_90_days_win_rate,
        :last_calculated_at
    )
    ON CONFLICT (expert_id) DO UPDATE SET
        total_positions = EXCLUDED.total_positions,
        won_positions = EXCLUDED.won_positions,
        lost_positions = EXCLUDED.lost_positions,
        void_positions = EXCLUDED.void_positions,
        pending_positions = EXCLUDED.pending_positions,
        win_rate = EXCLUDED.win_rate,
        average_odds = EXCLUDED.average_odds,
        roi = EXCLUDED.roi,
        total_profit = EXCLUDED.total_profit,
        current_streak = EXCLUDED.current_streak,
        longest_win_streak = EXCLUDED.longest_win_streak,
        last_7_days_win_rate = EXCLUDED.last_7_days_win_rate,
        last_30_days_win_rate = EXCLUDED.last_30_days_win_rate,
        last_90_days_win_rate = EXCLUDED.last_90_days_win_rate,
        last_calculated_at = EXCLUDED.last_calculated_at
    """
)

_UPDATE_EXPERT_TIER = text(
    """
    UPDATE expert SET tier = :tier WHERE id = :expert_id
    """
)


class SqlOutcomeSource:
    def __init__(self, db: DBM):
        self.db = db

    async def list_outcomes_settled_between(self, start: datetime, end: datetime) -> List[SportEventOutcome]:
        rows = await self.db.read(_SELECT_OUTCOMES, params={"start": start, "end": end}, mappings=True)
        return [SportEventOutcome.from_row(row) for row in rows]


class SqlPositionStore:
    def __init__(self, db: DBM):
        self.db = db

    async def list_pending_positions(self, event_ids: Sequence[str]) -> List[PositionRecord]:
        if not event_ids:
            return []
        rows = await self.db.read(
            _SELECT_PENDING_POSITIONS,
            params={"event_ids": list(event_ids)},
            mappings=True,
        )
        return [PositionRecord.from_row(row) for row in rows]

    async def apply_settlements(
        self,
        decisions: Sequence[SettlementDecision],
        events: Optional[Mapping[str, Event]] = None,
    ) -> List[SettlementDecision]:
        if not decisions:
            return []
        applied: List[SettlementDecision] = []
        now = datetime.now(timezone.utc)
        async with self.db.transaction() as tx:
            for decision in decisions:
                count = await tx.write(
                    _SETTLE_POSITION,
                    params={
                        "id": decision.position.id,
                        "status": decision.status.value,
                        "outcome": decision.outcome.value,
                        "settled_at": decision.settled_at,
                        "updated_at": now,
                    },
                )
                if count:
                    applied.append(decision)
                    event = (events or {}).get(decision.position.id)
                    if event is not None:
                        await write_outbox(tx, event)
        return applied

    async def list_positions_for_creator(self, creator_id: str) -> List[PositionRecord]:
        rows = await self.db.read(
            _SELECT_CREATOR_POSITIONS,
            params={"creator_id": creator_id},
            mappings=True,
        )
        return [PositionRecord.from_row(row) for row in rows]


class SqlExpertDirectory:
    def __init__(self, db: DBM):
        self.db = db

    async def get_expert(self, expert_id: str) -> Optional[ExpertRow]:
        rows = await self.db.read(_SELECT_EXPERT, params={"expert_id": expert_id}, mappings=True)
        if not rows:
            return None
        row = rows[0]
        return ExpertRow(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            display_name=row.get("display_name") or "",
            tier=row.get("tier") or Tier.BRONZE.value,
            current_streak=row.get("current_streak"),
        )

    async def expert_id_for_user(self, user_id: str) -> Optional[str]:
        rows = await self.db.read(_SELECT_EXPERT_FOR_USER, params={"user_id": user_id}, mappings=True)
        return str(rows[0]["id"]) if rows else None

    async def leaderboard(self, limit: int) -> List[LeaderboardRow]:
        rows = await self.db.read(_SELECT_LEADERBOARD, params={"limit": limit}, mappings=True)
        return [LeaderboardRow(expert_id=str(r["expert_id"]), win_rate=r["win_rate"]) for r in rows]


class SqlStatisticsStore:
    def __init__(self, db: DBM):
        self.db = db

    async def replace_statistics(self, row: Dict[str, Any], tier: Tier) -> None:
        async with self.db.transaction() as tx:
            await tx.write(_UPSERT_STATISTICS, params=dict(row))
            await tx.write(_UPDATE_EXPERT_TIER, params={"expert_id": row["expert_id"], "tier": tier.value})


__all__ = [
    "OutcomeSource",
    "PositionStore",
    "ExpertDirectory",
    "StatisticsStore",
    "SqlOutcomeSource",
    "SqlPositionStore",
    "SqlExpertDirectory",
    "SqlStatisticsStore",
]
