"""Achievements and highlights derived from emitted events.

These are pure functions over event payloads; notifiers downstream decide
how to deliver them.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence

from settleboard.config.settlement_params import AchievementParams, get_settlement_params
from settleboard.shared.determinism import to_decimal
from settleboard.shared.enums import PositionOutcome
from settleboard.shared.errors import ValidationError


@dataclass(frozen=True)
class Achievement:
    expert_id: str
    kind: str
    value: int

    @property
    def title(self) -> str:
        if self.kind == "win_streak":
            return f"{self.value} wins in a row"
        return f"Entered the top {self.value}"


def streak_achievements(
    previous_streak: Optional[int],
    current_streak: int,
    milestones: Optional[Sequence[int]] = None,
) -> List[int]:
    """Milestones crossed on this recalculation, lowest first.

    A milestone counts once: it is reached when the previous streak was
    below it and the current one is at or above it. Without a previous
    streak there is nothing to compare against and nothing is reported.
    """
    if previous_streak is None:
        return []
    if milestones is None:
        milestones = get_settlement_params().achievements.streak_milestones
    return sorted(m for m in milestones if previous_streak < m <= current_streak)


def leaderboard_achievement(
    previous_rank: Optional[int],
    current_rank: Optional[int],
    size: Optional[int] = None,
) -> bool:
    """True when the expert moved into the top ``size`` on this recalculation."""
    if size is None:
        size = get_settlement_params().leaderboard.size
    if current_rank is None or current_rank > size:
        return False
    return previous_rank is None or previous_rank > size


def achievements_for(event_data: Mapping[str, Any], params: Optional[AchievementParams] = None) -> List[Achievement]:
    """Achievements carried by one ExpertStatisticsRecalculated payload."""
    params = params or get_settlement_params().achievements
    expert_id = str(event_data["expert_id"])
    found = [
        Achievement(expert_id, "win_streak", milestone)
        for milestone in streak_achievements(
            event_data.get("previous_streak"),
            int(event_data.get("current_streak") or 0),
            params.streak_milestones,
        )
    ]
    size = get_settlement_params().leaderboard.size
    if leaderboard_achievement(event_data.get("previous_rank"), event_data.get("current_rank"), size):
        found.append(Achievement(expert_id, "leaderboard", size))
    return found


def is_highlight(event_data: Mapping[str, Any], min_odds: Optional[Decimal] = None) -> bool:
    """A won expert position at or above the highlight odds."""
    if min_odds is None:
        min_odds = get_settlement_params().achievements.highlight_min_odds
    if event_data.get("outcome") != PositionOutcome.WON.value:
        return False
    if not event_data.get("expert_id"):
        return False
    try:
        odds = to_decimal(event_data.get("odds"), "odds")
    except ValidationError:
        return False
    return odds >= min_odds


__all__ = [
    "Achievement",
    "streak_achievements",
    "leaderboard_achievement",
    "achievements_for",
    "is_highlight",
]
