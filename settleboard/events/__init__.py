from .event import Event
from .publisher import EventPublisher, InMemoryPublisher, OutboxPublisher, write_outbox
from .settlement_events import (
    EXPERT_STATISTICS_RECALCULATED,
    POSITION_SETTLED,
    ExpertStatisticsRecalculated,
    PositionSettled,
)

__all__ = [
    "Event",
    "EventPublisher",
    "InMemoryPublisher",
    "OutboxPublisher",
    "write_outbox",
    "EXPERT_STATISTICS_RECALCULATED",
    "POSITION_SETTLED",
    "ExpertStatisticsRecalculated",
    "PositionSettled",
]
