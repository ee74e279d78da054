"""Outbox table for emitted domain events."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Outbox(Base):
    __tablename__ = "outbox"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Internal surrogate primary key",
    )
    event_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Deterministic event id; duplicates are dropped on insert",
    )
    topic: Mapped[str] = mapped_column(
        String,
        nullable=False,
        comment="Event type consumed by downstream delivery",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        comment="Event data awaiting transport",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        comment="UTC enqueue timestamp",
    )
    sent: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        comment="Delivery flag set by transport",
    )

    __table_args__ = (
        Index("ix_outbox_topic", "topic"),
        Index("ix_outbox_sent", "sent"),
        {
            "comment": "Outbox pattern table ensuring exactly-once publication",
        },
    )


__all__ = ["Outbox"]
