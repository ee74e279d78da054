"""Batch job status tracking."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class JobState(Base):
    __tablename__ = "job_state"

    job_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Unique job identifier (e.g., 'settle_positions_v1')",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="pending",
        comment="Job status: pending, running, completed, failed",
    )
    items_total: Mapped[int | None] = mapped_column(Integer, comment="Items selected this run")
    items_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    error_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Consecutive error count",
    )
    last_error: Mapped[str | None] = mapped_column(String, comment="Most recent error message")

    __table_args__ = (
        Index("ix_job_state_status", "status"),
    )


__all__ = ["JobState"]
