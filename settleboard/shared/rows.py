from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, TypedDict

from .enums import CreatorType, EventStatus, PositionOutcome, PositionStatus, Tier


class EventResultRow(TypedDict, total=False):
    event_id: str
    final_score: Optional[str]
    winner: Optional[str]
    market_results: Optional[dict]
    event_status: EventStatus | str
    settled_at: datetime


class PositionRow(TypedDict, total=False):
    id: str
    creator_id: str
    creator_type: CreatorType | str
    event_id: str
    market: str
    selection: str
    odds: Decimal
    status: PositionStatus | str
    outcome: Optional[PositionOutcome | str]
    created_at: datetime
    settled_at: Optional[datetime]


class ExpertRow(TypedDict, total=False):
    id: str
    user_id: str
    display_name: str
    tier: Tier | str
    current_streak: Optional[int]


class ExpertStatisticsRow(TypedDict, total=False):
    expert_id: str
    total_positions: int
    won_positions: int
    lost_positions: int
    void_positions: int
    pending_positions: int
    win_rate: Decimal
    average_odds: Decimal
    roi: Decimal
    total_profit: Decimal
    current_streak: int
    longest_win_streak: int
    last_7_days_win_rate: Decimal
    last_30_days_win_rate: Decimal
    last_90_days_win_rate: Decimal
    last_calculated_at: datetime


class LeaderboardRow(TypedDict):
    expert_id: str
    win_rate: Decimal
