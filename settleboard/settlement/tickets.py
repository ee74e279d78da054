"""Ticket (accumulator) settlement.

Ticket entries carry market/selection/odds exactly like positions and are
classified by the same dispatcher. A ticket resolves only once every entry
has resolved:

- any entry still Pending: the ticket stays open
- any entry Lost: the ticket is Lost
- every entry Void: the ticket is Void
- otherwise Won, paying the product of the won entries' odds
  (a void leg counts as 1.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from settleboard.shared.determinism import ensure_utc, round_decimal, to_decimal
from settleboard.shared.enums import PositionOutcome, PositionStatus, TicketStatus

from .dispatcher import StrategyDispatcher, settle_selection
from .score_parser import ResultParser
from .types import SportEventOutcome

ONE = Decimal("1")


@dataclass(frozen=True)
class TicketEntryRecord:
    id: str
    ticket_id: str
    event_id: str
    market: str
    selection: str
    odds: Decimal
    status: PositionStatus = PositionStatus.PENDING

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TicketEntryRecord":
        return cls(
            id=str(row["id"]),
            ticket_id=str(row["ticket_id"]),
            event_id=str(row["event_id"]),
            market=row.get("market") or "",
            selection=row.get("selection") or "",
            odds=to_decimal(row.get("odds"), "odds"),
            status=PositionStatus(str(row.get("status") or "pending").lower()),
        )


@dataclass(frozen=True)
class EntrySettlement:
    entry: TicketEntryRecord
    outcome: PositionOutcome
    settled_at: datetime


@dataclass(frozen=True)
class TicketSettlement:
    """Combined result of a ticket. ``result`` is None while still open."""

    status: TicketStatus
    result: Optional[PositionOutcome]
    final_odds: Optional[Decimal]

    @property
    def is_settled(self) -> bool:
        return self.result is not None


def settle_ticket_entries(
    entries: Iterable[TicketEntryRecord],
    outcomes_by_event: Mapping[str, SportEventOutcome],
    *,
    dispatcher: Optional[StrategyDispatcher] = None,
    parser: Optional[ResultParser] = None,
) -> List[EntrySettlement]:
    """Settle the pending entries whose event has a recorded outcome.

    Entries already terminal, or whose event has no outcome yet, are left
    out of the result.
    """
    dispatcher = dispatcher or StrategyDispatcher()
    parser = parser or ResultParser()

    settlements: List[EntrySettlement] = []
    for entry in entries:
        if entry.status.is_terminal:
            continue
        outcome = outcomes_by_event.get(entry.event_id)
        if outcome is None:
            continue
        decision = settle_selection(dispatcher, parser, entry.market, entry.selection, outcome)
        settlements.append(EntrySettlement(entry, decision, ensure_utc(outcome.settled_at)))
    return settlements


def combine_ticket(entries: Sequence[TicketEntryRecord]) -> TicketSettlement:
    """Combine entry statuses into the ticket's result."""
    statuses = [entry.status for entry in entries]

    if not statuses or PositionStatus.PENDING in statuses:
        return TicketSettlement(TicketStatus.ACTIVE, None, None)
    if PositionStatus.LOST in statuses:
        return TicketSettlement(TicketStatus.SETTLED, PositionOutcome.LOST, Decimal("0.00"))
    if all(status is PositionStatus.VOID for status in statuses):
        return TicketSettlement(TicketStatus.VOID, PositionOutcome.VOID, round_decimal(ONE))

    final_odds = ONE
    for entry in entries:
        if entry.status is PositionStatus.WON:
            final_odds *= entry.odds
    return TicketSettlement(TicketStatus.SETTLED, PositionOutcome.WON, round_decimal(final_odds))


def apply_entry_settlements(
    entries: Sequence[TicketEntryRecord],
    settlements: Iterable[EntrySettlement],
) -> List[TicketEntryRecord]:
    """Return ``entries`` with settled statuses applied, in original order."""
    by_id = {s.entry.id: s.outcome.to_status() for s in settlements}
    updated = []
    for entry in entries:
        status = by_id.get(entry.id)
        if status is None or entry.status.is_terminal:
            updated.append(entry)
        else:
            updated.append(
                TicketEntryRecord(
                    id=entry.id,
                    ticket_id=entry.ticket_id,
                    event_id=entry.event_id,
                    market=entry.market,
                    selection=entry.selection,
                    odds=entry.odds,
                    status=status,
                )
            )
    return updated


__all__ = [
    "TicketEntryRecord",
    "EntrySettlement",
    "TicketSettlement",
    "settle_ticket_entries",
    "combine_ticket",
    "apply_entry_settlements",
]
