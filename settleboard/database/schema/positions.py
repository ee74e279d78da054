"""User and expert predictions."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, creator_type_enum, position_outcome_enum, position_status_enum


class Position(Base):
    __tablename__ = "position"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    creator_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="User id of the creator",
    )
    creator_type: Mapped[str] = mapped_column(creator_type_enum, nullable=False, default="user")
    event_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("sport_event.event_id"),
        nullable=False,
    )
    market: Mapped[str] = mapped_column(String(128), nullable=False, comment="Free-text market label")
    selection: Mapped[str] = mapped_column(String(128), nullable=False, comment="Free-text selection label")
    odds: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        position_status_enum,
        nullable=False,
        default="pending",
        comment="Pending until settled; terminal states are never rewritten",
    )
    outcome: Mapped[Optional[str]] = mapped_column(position_outcome_enum)
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_position_event_status", "event_id", "status"),
        Index("ix_position_creator_created", "creator_id", "created_at"),
    )


__all__ = ["Position"]
