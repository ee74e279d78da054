"""Expert statistics computed from a full position history.

Every recalculation rebuilds the snapshot from scratch; nothing is patched
incrementally. Win rates only count definite outcomes: Void and Pending
positions are excluded from the denominator but still count toward the
total.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from settleboard.config.settlement_params import (
    SettlementParams,
    TierParams,
    get_settlement_params,
)
from settleboard.shared.determinism import (
    HUNDRED,
    ZERO,
    ensure_utc,
    percentage,
    round_decimal,
    safe_divide,
    window_start,
)
from settleboard.shared.enums import PositionStatus, Tier
from settleboard.settlement.types import PositionRecord

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ExpertStatisticsSnapshot:
    """Full statistics row for one expert."""

    expert_id: str
    total_positions: int = 0
    won_positions: int = 0
    lost_positions: int = 0
    void_positions: int = 0
    pending_positions: int = 0
    win_rate: Decimal = Decimal("0.00")
    average_odds: Decimal = Decimal("0.00")
    total_profit: Decimal = Decimal("0.00")
    roi: Decimal = Decimal("0.00")
    current_streak: int = 0
    longest_win_streak: int = 0
    rolling_win_rates: Dict[int, Decimal] = field(default_factory=dict)
    tier: Tier = Tier.BRONZE
    last_calculated_at: Optional[datetime] = None

    def rolling(self, days: int) -> Decimal:
        return self.rolling_win_rates.get(days, Decimal("0.00"))

    @property
    def last_7_days_win_rate(self) -> Decimal:
        return self.rolling(7)

    @property
    def last_30_days_win_rate(self) -> Decimal:
        return self.rolling(30)

    @property
    def last_90_days_win_rate(self) -> Decimal:
        return self.rolling(90)

    def to_row(self) -> dict:
        return {
            "expert_id": self.expert_id,
            "total_positions": self.total_positions,
            "won_positions": self.won_positions,
            "lost_positions": self.lost_positions,
            "void_positions": self.void_positions,
            "pending_positions": self.pending_positions,
            "win_rate": self.win_rate,
            "average_odds": self.average_odds,
            "roi": self.roi,
            "total_profit": self.total_profit,
            "current_streak": self.current_streak,
            "longest_win_streak": self.longest_win_streak,
            "last_7_days_win_rate": self.last_7_days_win_rate,
            "last_30_days_win_rate": self.last_30_days_win_rate,
            "last_90_days_win_rate": self.last_90_days_win_rate,
            "last_calculated_at": self.last_calculated_at,
        }


def effective_status(position: PositionRecord) -> PositionStatus:
    """Status, falling back to the recorded outcome when they disagree."""
    if position.status is PositionStatus.PENDING and position.outcome is not None:
        return position.outcome.to_status()
    return position.status


def _definite_win_rate(statuses: Iterable[PositionStatus], places: int) -> Decimal:
    won = lost = 0
    for status in statuses:
        if status is PositionStatus.WON:
            won += 1
        elif status is PositionStatus.LOST:
            lost += 1
    return percentage(won, won + lost, places)


def compute_streak(positions: Sequence[PositionRecord]) -> Tuple[int, int]:
    """Return (current_streak, longest_win_streak).

    Positions are walked oldest first; Void and Pending are skipped without
    breaking a run. The current streak is signed: positive for consecutive
    wins, negative for consecutive losses.
    """
    ordered = sorted(positions, key=lambda p: ensure_utc(p.created_at) if p.created_at else _EPOCH)

    current = 0
    longest = 0
    for position in ordered:
        status = effective_status(position)
        if status is PositionStatus.WON:
            current = current + 1 if current >= 0 else 1
            longest = max(longest, current)
        elif status is PositionStatus.LOST:
            current = current - 1 if current <= 0 else -1
    return current, longest


def rolling_win_rate(
    positions: Sequence[PositionRecord],
    days: int,
    now: datetime,
    places: int = 2,
) -> Decimal:
    """Win rate over settled positions created on or after ``now - days``."""
    cutoff = window_start(days, now)
    statuses = [
        effective_status(p)
        for p in positions
        if p.created_at is not None and ensure_utc(p.created_at) >= cutoff
    ]
    return _definite_win_rate((s for s in statuses if s.is_terminal), places)


def determine_tier(win_rate: Decimal, total_positions: int, params: Optional[TierParams] = None) -> Tier:
    """Map a tier-window win rate and position count to a tier."""
    params = params or get_settlement_params().tiers
    if total_positions < params.min_positions:
        return Tier.BRONZE
    if win_rate >= params.diamond:
        return Tier.DIAMOND
    if win_rate >= params.platinum:
        return Tier.PLATINUM
    if win_rate >= params.gold:
        return Tier.GOLD
    if win_rate >= params.silver:
        return Tier.SILVER
    return Tier.BRONZE


def unit_stake_profit(positions: Iterable[PositionRecord]) -> Decimal:
    """Profit over one-unit stakes: a win returns odds - 1, a loss costs 1."""
    profit = ZERO
    for position in positions:
        status = effective_status(position)
        if status is PositionStatus.WON:
            profit += position.odds - 1
        elif status is PositionStatus.LOST:
            profit -= 1
    return profit


def compute_statistics(
    expert_id: str,
    positions: Sequence[PositionRecord],
    now: Optional[datetime] = None,
    params: Optional[SettlementParams] = None,
) -> ExpertStatisticsSnapshot:
    """Build a full snapshot from an expert's complete position history."""
    params = params or get_settlement_params()
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    places = params.statistics.win_rate_places

    statuses: List[PositionStatus] = [effective_status(p) for p in positions]
    counts = {status: statuses.count(status) for status in PositionStatus}
    won = counts[PositionStatus.WON]
    lost = counts[PositionStatus.LOST]

    settled = [p for p, s in zip(positions, statuses) if s.is_terminal]
    if settled:
        average_odds = round_decimal(
            safe_divide(sum((p.odds for p in settled), ZERO), Decimal(len(settled))),
            places,
        )
    else:
        average_odds = round_decimal(ZERO, places)

    profit = unit_stake_profit(settled)
    roi = round_decimal(safe_divide(profit * HUNDRED, Decimal(won + lost)), places)

    current, longest = compute_streak(positions)

    rolling = {
        days: rolling_win_rate(positions, days, now, places)
        for days in params.statistics.rolling_windows_days
    }
    tier_rate = rolling[params.statistics.tier_window_days]

    return ExpertStatisticsSnapshot(
        expert_id=str(expert_id),
        total_positions=len(positions),
        won_positions=won,
        lost_positions=lost,
        void_positions=counts[PositionStatus.VOID],
        pending_positions=counts[PositionStatus.PENDING],
        win_rate=percentage(won, won + lost, places),
        average_odds=average_odds,
        total_profit=round_decimal(profit, places),
        roi=roi,
        current_streak=current,
        longest_win_streak=longest,
        rolling_win_rates=rolling,
        tier=determine_tier(tier_rate, len(positions), params.tiers),
        last_calculated_at=now,
    )


__all__ = [
    "ExpertStatisticsSnapshot",
    "effective_status",
    "compute_streak",
    "rolling_win_rate",
    "determine_tier",
    "unit_stake_profit",
    "compute_statistics",
]
