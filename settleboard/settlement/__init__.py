from .dispatcher import MARKET_ALIASES, StrategyDispatcher, resolve_family, settle_selection
from .score_parser import ResultParser, parse_score
from .strategies import STRATEGIES
from .tickets import combine_ticket, settle_ticket_entries
from .types import (
    CanonicalResult,
    ExpertNotFoundError,
    PositionRecord,
    SettlementDecision,
    SettlementError,
    SettlementRunReport,
    SportEventOutcome,
    StructuredMarketResult,
    ValidationError,
)

__all__ = [
    "MARKET_ALIASES",
    "StrategyDispatcher",
    "resolve_family",
    "settle_selection",
    "ResultParser",
    "parse_score",
    "STRATEGIES",
    "combine_ticket",
    "settle_ticket_entries",
    "CanonicalResult",
    "ExpertNotFoundError",
    "PositionRecord",
    "SettlementDecision",
    "SettlementError",
    "SettlementRunReport",
    "SportEventOutcome",
    "StructuredMarketResult",
    "ValidationError",
]
