"""Expert tickets (accumulators) and their entries."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, position_outcome_enum, position_status_enum, ticket_status_enum


class Ticket(Base):
    __tablename__ = "ticket"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    expert_id: Mapped[str] = mapped_column(String(64), ForeignKey("expert.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(ticket_status_enum, nullable=False, default="draft")
    total_odds: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    result: Mapped[Optional[str]] = mapped_column(position_outcome_enum)
    final_odds: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class TicketEntry(Base):
    __tablename__ = "ticket_entry"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    ticket_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("ticket.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_id: Mapped[str] = mapped_column(String(64), ForeignKey("sport_event.event_id"), nullable=False)
    market: Mapped[str] = mapped_column(String(128), nullable=False)
    selection: Mapped[str] = mapped_column(String(128), nullable=False)
    odds: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(position_status_enum, nullable=False, default="pending")
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_ticket_entry_event_status", "event_id", "status"),
    )


__all__ = ["Ticket", "TicketEntry"]
