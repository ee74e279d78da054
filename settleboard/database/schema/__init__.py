from .base import Base, metadata
from .events import EventResult, SportEvent
from .experts import Expert, ExpertStatistics
from .job_state import JobState
from .outbox import Outbox
from .positions import Position
from .tickets import Ticket, TicketEntry

__all__ = [
    "Base",
    "metadata",
    "SportEvent",
    "EventResult",
    "Position",
    "Expert",
    "ExpertStatistics",
    "Ticket",
    "TicketEntry",
    "Outbox",
    "JobState",
]
