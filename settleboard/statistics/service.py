"""Per-expert statistics recalculation."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from settleboard.config.settlement_params import SettlementParams, get_settlement_params
from settleboard.database.repository import ExpertDirectory, PositionStore, StatisticsStore
from settleboard.events.publisher import EventPublisher
from settleboard.events.settlement_events import ExpertStatisticsRecalculated
from settleboard.shared.errors import ExpertNotFoundError
from settleboard.shared.rows import LeaderboardRow

from .engine import ExpertStatisticsSnapshot, compute_statistics

logger = logging.getLogger(__name__)


def leaderboard_rank(rows: List[LeaderboardRow], expert_id: str) -> Optional[int]:
    """1-based position of ``expert_id`` in ``rows``, None when absent."""
    for index, row in enumerate(rows):
        if str(row["expert_id"]) == str(expert_id):
            return index + 1
    return None


class ExpertStatisticsService:
    """Rebuilds one expert's statistics and announces the change.

    Recalculations for the same expert are serialized; different experts
    run independently.
    """

    def __init__(
        self,
        *,
        experts: ExpertDirectory,
        positions: PositionStore,
        statistics: StatisticsStore,
        publisher: EventPublisher,
        params: Optional[SettlementParams] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.experts = experts
        self.positions = positions
        self.statistics = statistics
        self.publisher = publisher
        self.params = params or get_settlement_params()
        self.clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    async def _rank(self, expert_id: str) -> Optional[int]:
        rows = await self.experts.leaderboard(self.params.leaderboard.size)
        return leaderboard_rank(rows, expert_id)

    async def recalculate(self, expert_id: str) -> ExpertStatisticsSnapshot:
        """Recompute and persist statistics for one expert.

        Raises:
            ExpertNotFoundError: the expert does not exist
        """
        key = str(expert_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._recalculate(key)
        finally:
            # Drop the entry once no caller holds or awaits it.
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def _recalculate(self, expert_id: str) -> ExpertStatisticsSnapshot:
        expert = await self.experts.get_expert(expert_id)
        if expert is None:
            raise ExpertNotFoundError(expert_id)

        previous_streak = expert.get("current_streak")
        previous_rank = await self._rank(expert_id)

        history = await self.positions.list_positions_for_creator(expert["user_id"])
        snapshot = compute_statistics(expert_id, history, now=self.clock(), params=self.params)

        await self.statistics.replace_statistics(snapshot.to_row(), snapshot.tier)

        current_rank = await self._rank(expert_id)

        await self.publisher.publish(
            ExpertStatisticsRecalculated(
                expert_id=expert_id,
                previous_streak=previous_streak,
                current_streak=snapshot.current_streak,
                previous_rank=previous_rank,
                current_rank=current_rank,
                recalculated_at=snapshot.last_calculated_at or self.clock(),
            )
        )

        logger.info(
            f"Recalculated statistics for expert {expert_id}: "
            f"positions={snapshot.total_positions} win_rate={snapshot.win_rate} "
            f"streak={snapshot.current_streak} tier={snapshot.tier.value}"
        )
        return snapshot


__all__ = ["ExpertStatisticsService", "leaderboard_rank"]
