"""Sporting events and their recorded results."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, event_status_enum


class SportEvent(Base):
    __tablename__ = "sport_event"

    event_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Identifier for a scheduled sporting event",
    )
    sport: Mapped[str] = mapped_column(String(64), nullable=False, comment="Sport key")
    league: Mapped[Optional[str]] = mapped_column(String(128), comment="League or competition")
    home_team: Mapped[str] = mapped_column(String(128), nullable=False)
    away_team: Mapped[str] = mapped_column(String(128), nullable=False)
    start_time_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Scheduled start time in UTC",
    )
    status: Mapped[str] = mapped_column(
        event_status_enum,
        nullable=False,
        default="scheduled",
        comment="Lifecycle state (scheduled/live/completed/cancelled)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Row creation timestamp (UTC)",
    )

    __table_args__ = (
        Index("ix_sport_event_status_start", "status", "start_time_utc"),
    )


class EventResult(Base):
    """Outcome of one event. Written once by ingestion; read by settlement."""

    __tablename__ = "event_result"

    event_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("sport_event.event_id", ondelete="CASCADE"),
        primary_key=True,
        comment="Event this result belongs to",
    )
    final_score: Mapped[Optional[str]] = mapped_column(
        String(32),
        comment="Free-text final score, e.g. '2-1'",
    )
    winner: Mapped[Optional[str]] = mapped_column(
        String(16),
        comment="Home/Away/Draw when known",
    )
    market_results: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        comment="Structured per-market payload (totalGoals, bothTeamsScore, ...)",
    )
    settled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the outcome became available (UTC)",
    )

    __table_args__ = (
        Index("ix_event_result_settled_at", "settled_at"),
    )


__all__ = ["SportEvent", "EventResult"]
