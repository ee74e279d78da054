"""Experts and their statistics snapshot."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, tier_enum


class Expert(Base):
    __tablename__ = "expert"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    tier: Mapped[str] = mapped_column(
        tier_enum,
        nullable=False,
        default="bronze",
        comment="Derived from rolling win rate and volume; never set directly",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


def _rate():
    return mapped_column(Numeric(7, 2), nullable=False, default=Decimal("0.00"))


class ExpertStatistics(Base):
    """One row per expert, replaced wholesale on every recalculation."""

    __tablename__ = "expert_statistics"

    expert_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("expert.id", ondelete="CASCADE"),
        primary_key=True,
    )
    total_positions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    won_positions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lost_positions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    void_positions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pending_positions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    win_rate: Mapped[Decimal] = _rate()
    average_odds: Mapped[Decimal] = _rate()
    roi: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_profit: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    current_streak: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Signed: positive wins in a row, negative losses in a row",
    )
    longest_win_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_7_days_win_rate: Mapped[Decimal] = _rate()
    last_30_days_win_rate: Mapped[Decimal] = _rate()
    last_90_days_win_rate: Mapped[Decimal] = _rate()
    last_calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_expert_statistics_win_rate", "win_rate"),
    )


__all__ = ["Expert", "ExpertStatistics"]
