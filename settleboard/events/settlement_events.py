from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from settleboard.events.event import Event
from settleboard.settlement.types import SettlementDecision

POSITION_SETTLED = "position.settled"
EXPERT_STATISTICS_RECALCULATED = "expert.statisticsRecalculated"


class PositionSettled(Event):
    """One per settled position. The id depends only on the position, so
    a transition emitted twice collapses to one outbox row."""

    def __init__(self, *, decision: SettlementDecision, expert_id: Optional[str] = None):
        position = decision.position
        payload = {
            "position_id": position.id,
            "creator_id": position.creator_id,
            "creator_type": position.creator_type.value,
            "expert_id": expert_id if expert_id is not None else position.expert_id,
            "outcome": decision.outcome.value,
            "odds": str(position.odds),
            "market": position.market,
            "selection": position.selection,
            "settled_at": decision.settled_at.astimezone(timezone.utc).isoformat(),
        }
        super().__init__(
            event_id=Event.make_id(POSITION_SETTLED, position.id),
            event_type=POSITION_SETTLED,
            event_data=payload,
            created_at=decision.settled_at,
        )

    @property
    def position_id(self) -> str:
        return self.event_data["position_id"]

    @property
    def expert_id(self) -> Optional[str]:
        return self.event_data["expert_id"]


class ExpertStatisticsRecalculated(Event):
    def __init__(
        self,
        *,
        expert_id: str,
        previous_streak: Optional[int],
        current_streak: int,
        previous_rank: Optional[int],
        current_rank: Optional[int],
        recalculated_at: datetime,
    ):
        payload: Dict[str, Any] = {
            "expert_id": str(expert_id),
            "previous_streak": previous_streak,
            "current_streak": current_streak,
            "previous_rank": previous_rank,
            "current_rank": current_rank,
            "recalculated_at": recalculated_at.astimezone(timezone.utc).isoformat(),
        }
        super().__init__(
            event_id=Event.make_id(
                EXPERT_STATISTICS_RECALCULATED,
                expert_id,
                Event.canonical_json(payload),
            ),
            event_type=EXPERT_STATISTICS_RECALCULATED,
            event_data=payload,
            created_at=recalculated_at,
        )


__all__ = [
    "POSITION_SETTLED",
    "EXPERT_STATISTICS_RECALCULATED",
    "PositionSettled",
    "ExpertStatisticsRecalculated",
]
