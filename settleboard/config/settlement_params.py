"""Settlement and statistics parameters.

All tunables for settlement runs, statistics windows and tier thresholds
live here so that every recalculation uses the same values. Changing a
threshold changes tiers for every expert on the next recalculation.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


class LookbackParams(BaseModel):
    """Which event outcomes a settlement run picks up."""

    outcome_lookback_minutes: int = Field(
        default=10,
        ge=1,
        le=1440,
        description="Outcomes settled within this many minutes before the run are candidates.",
    )


class StatisticsParams(BaseModel):
    """Rolling windows and precision for expert statistics."""

    rolling_windows_days: Tuple[int, int, int] = Field(
        default=(7, 30, 90),
        description="Trailing windows (days) for rolling win rates, shortest first.",
    )
    tier_window_days: int = Field(
        default=90,
        ge=1,
        le=365,
        description="Window whose win rate drives tier classification.",
    )
    win_rate_places: int = Field(
        default=2,
        ge=0,
        le=8,
        description="Decimal places for win rates, averages and ROI.",
    )

    @field_validator("rolling_windows_days")
    @classmethod
    def _ascending(cls, value: Tuple[int, int, int]) -> Tuple[int, int, int]:
        if any(v <= 0 for v in value) or list(value) != sorted(set(value)):
            raise ValueError("rolling windows must be positive and strictly ascending")
        return value

    @model_validator(mode="after")
    def _tier_window_is_rolling(self) -> "StatisticsParams":
        if self.tier_window_days not in self.rolling_windows_days:
            raise ValueError("tier_window_days must be one of rolling_windows_days")
        return self


class TierParams(BaseModel):
    """Tier thresholds over the tier-window win rate (inclusive lower bounds)."""

    min_positions: int = Field(
        default=20,
        ge=0,
        le=10_000,
        description="Experts with fewer total positions are always Bronze.",
    )
    diamond: Decimal = Field(default=Decimal("80"), ge=Decimal("0"), le=Decimal("100"))
    platinum: Decimal = Field(default=Decimal("70"), ge=Decimal("0"), le=Decimal("100"))
    gold: Decimal = Field(default=Decimal("60"), ge=Decimal("0"), le=Decimal("100"))
    silver: Decimal = Field(default=Decimal("50"), ge=Decimal("0"), le=Decimal("100"))

    @model_validator(mode="after")
    def _descending(self) -> "TierParams":
        if not (self.diamond > self.platinum > self.gold > self.silver):
            raise ValueError("tier thresholds must be strictly descending")
        return self


class LeaderboardParams(BaseModel):
    """Win-rate leaderboard used for rank-change events."""

    size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Only ranks 1..size are reported; anything below is 'not ranked'.",
    )


class AchievementParams(BaseModel):
    """Thresholds for achievement and highlight derivation."""

    streak_milestones: Tuple[int, ...] = Field(
        default=(5, 10),
        description="Win streak lengths that produce an achievement when first reached.",
    )
    highlight_min_odds: Decimal = Field(
        default=Decimal("2.0"),
        ge=Decimal("1"),
        le=Decimal("1000"),
        description="Minimum odds for a won expert position to be highlighted.",
    )


class JobParams(BaseModel):
    """Retry and cadence for the scheduled settlement run."""

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Attempts per scheduled run before giving up until the next tick.",
    )
    initial_backoff_seconds: float = Field(default=5.0, ge=0.0, le=600.0)
    max_backoff_seconds: float = Field(default=60.0, ge=0.0, le=3600.0)
    backoff_factor: float = Field(default=2.0, ge=1.0, le=10.0)
    interval_seconds: int = Field(
        default=60,
        ge=1,
        le=86_400,
        description="Seconds between scheduled runs in loop mode.",
    )


class SettlementParams(BaseModel):
    """Master configuration for settlement and statistics."""

    lookback: LookbackParams = Field(default_factory=LookbackParams)
    statistics: StatisticsParams = Field(default_factory=StatisticsParams)
    tiers: TierParams = Field(default_factory=TierParams)
    leaderboard: LeaderboardParams = Field(default_factory=LeaderboardParams)
    achievements: AchievementParams = Field(default_factory=AchievementParams)
    job: JobParams = Field(default_factory=JobParams)


DEFAULT_SETTLEMENT_PARAMS = SettlementParams()


def get_settlement_params() -> SettlementParams:
    """Get settlement parameters."""
    return DEFAULT_SETTLEMENT_PARAMS


__all__ = [
    "LookbackParams",
    "StatisticsParams",
    "TierParams",
    "LeaderboardParams",
    "AchievementParams",
    "JobParams",
    "SettlementParams",
    "DEFAULT_SETTLEMENT_PARAMS",
    "get_settlement_params",
]
