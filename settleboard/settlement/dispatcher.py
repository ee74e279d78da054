"""Route free-text market labels to market strategies."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Optional

from settleboard.shared.enums import MarketFamily, PositionOutcome

from .score_parser import ResultParser
from .strategies import STRATEGIES, Strategy
from .types import CanonicalResult, SportEventOutcome

logger = logging.getLogger(__name__)

# Most recent unhandled labels remembered for warn-once logging.
MAX_UNHANDLED_LABELS = 256

MARKET_ALIASES: Dict[str, MarketFamily] = {
    "match result": MarketFamily.MATCH_RESULT,
    "1x2": MarketFamily.MATCH_RESULT,
    "full time result": MarketFamily.MATCH_RESULT,
    "over/under": MarketFamily.OVER_UNDER,
    "total goals": MarketFamily.OVER_UNDER,
    "o/u": MarketFamily.OVER_UNDER,
    "both teams score": MarketFamily.BOTH_TEAMS_SCORE,
    "btts": MarketFamily.BOTH_TEAMS_SCORE,
    "asian handicap": MarketFamily.ASIAN_HANDICAP,
    "handicap": MarketFamily.ASIAN_HANDICAP,
}


def normalize_market(market: Optional[str]) -> str:
    """Lower-case, trim and collapse inner whitespace."""
    if not isinstance(market, str):
        return ""
    return " ".join(market.lower().split())


def resolve_family(market: Optional[str]) -> MarketFamily:
    return MARKET_ALIASES.get(normalize_market(market), MarketFamily.GENERIC)


class StrategyDispatcher:
    """Maps market labels to strategies and classifies selections.

    Unknown labels fall through to the generic strategy, which always
    settles Void. Each unhandled label is logged once while it stays among
    the ``max_unhandled_labels`` most recently seen.
    """

    def __init__(
        self,
        strategies: Optional[Dict[MarketFamily, Strategy]] = None,
        max_unhandled_labels: int = MAX_UNHANDLED_LABELS,
    ):
        self._strategies = dict(STRATEGIES)
        if strategies:
            self._strategies.update(strategies)
        self.max_unhandled_labels = max_unhandled_labels
        self._unhandled_seen: "OrderedDict[str, None]" = OrderedDict()

    def family_for(self, market: Optional[str]) -> MarketFamily:
        family = resolve_family(market)
        if family is MarketFamily.GENERIC:
            label = normalize_market(market)
            if label in self._unhandled_seen:
                self._unhandled_seen.move_to_end(label)
            else:
                self._unhandled_seen[label] = None
                if len(self._unhandled_seen) > self.max_unhandled_labels:
                    self._unhandled_seen.popitem(last=False)
                logger.warning(f"Unhandled market {market!r}; positions settle as void")
        return family

    def strategy_for(self, market: Optional[str]) -> Strategy:
        return self._strategies[self.family_for(market)]

    def determine(
        self,
        market: Optional[str],
        selection: Optional[str],
        result: Optional[CanonicalResult],
    ) -> PositionOutcome:
        """Classify one selection. Garbage in settles Void, never raises."""
        strategy = self.strategy_for(market)
        if not isinstance(selection, str):
            return PositionOutcome.VOID
        outcome = strategy(selection, result)
        if outcome is PositionOutcome.VOID and result is None:
            logger.debug(f"No result data for market={market!r} selection={selection!r}; void")
        return outcome


def settle_selection(
    dispatcher: StrategyDispatcher,
    parser: ResultParser,
    market: Optional[str],
    selection: Optional[str],
    outcome: Optional[SportEventOutcome],
) -> PositionOutcome:
    """Parse an outcome and classify one selection against it."""
    return dispatcher.determine(market, selection, parser.parse(outcome))


__all__ = [
    "MARKET_ALIASES",
    "normalize_market",
    "resolve_family",
    "StrategyDispatcher",
    "settle_selection",
]
