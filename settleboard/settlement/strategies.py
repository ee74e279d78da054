"""Market strategies: one pure classification function per market family.

Every function has the signature ``(selection, result) -> PositionOutcome``
and is total: missing data, a void-forcing result or a selection it cannot
read all produce VOID. None of them raise or perform I/O.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Callable, Dict, Optional

from settleboard.shared.enums import MarketFamily, PositionOutcome

from .types import CanonicalResult

Strategy = Callable[[str, Optional[CanonicalResult]], PositionOutcome]

WON = PositionOutcome.WON
LOST = PositionOutcome.LOST
VOID = PositionOutcome.VOID

_MATCH_RESULT_TOKENS: Dict[str, str] = {
    "home": "home",
    "away": "away",
    "draw": "draw",
    "1": "home",
    "2": "away",
    "x": "draw",
}

AFFIRMATIVE = frozenset({"yes", "true", "1"})
NEGATIVE = frozenset({"no", "false", "0"})

_HANDICAP_SELECTION = re.compile(
    r"^(?P<side>home|away)\s+(?P<line>[+-]?\d+(?:\.\d)?)$",
    re.IGNORECASE,
)


def _unusable(selection: object, result: Optional[CanonicalResult]) -> bool:
    return not isinstance(selection, str) or result is None or result.is_void_forcing


def _won_or_lost(won: bool) -> PositionOutcome:
    return WON if won else LOST


def _parse_decimal(token: str) -> Optional[Decimal]:
    try:
        value = Decimal(token)
    except (ArithmeticError, ValueError):
        return None
    return value if value.is_finite() else None


# ─────────────────────────────────────────────────────────────────────────────
# Match Result (1X2)
# ─────────────────────────────────────────────────────────────────────────────


def match_result_side(token: Optional[str]) -> Optional[str]:
    """Map a selection or winner token to home/away/draw, or None."""
    if not isinstance(token, str):
        return None
    normalized = token.strip().lower()
    if normalized in _MATCH_RESULT_TOKENS:
        return _MATCH_RESULT_TOKENS[normalized]
    if "home win" in normalized:
        return "home"
    if "away win" in normalized:
        return "away"
    if "draw" in normalized:
        return "draw"
    return None


def determine_match_result(selection: str, result: Optional[CanonicalResult]) -> PositionOutcome:
    if _unusable(selection, result):
        return VOID
    winner = match_result_side(result.winner)
    if winner is None:
        return VOID
    side = match_result_side(selection)
    if side is None:
        return VOID
    return _won_or_lost(side == winner)


# ─────────────────────────────────────────────────────────────────────────────
# Over/Under
# ─────────────────────────────────────────────────────────────────────────────


def over_under_line(selection: str) -> Optional[Decimal]:
    """First whitespace-separated token that parses as a finite number."""
    for part in selection.split():
        line = _parse_decimal(part)
        if line is not None:
            return line
    return None


def over_under_direction(selection: str) -> Optional[str]:
    normalized = selection.lower()
    if "over" in normalized:
        return "over"
    if "under" in normalized:
        return "under"
    return None


def determine_over_under(selection: str, result: Optional[CanonicalResult]) -> PositionOutcome:
    if _unusable(selection, result) or result.total_goals is None:
        return VOID
    line = over_under_line(selection)
    direction = over_under_direction(selection)
    if line is None or direction is None:
        return VOID

    goals = Decimal(result.total_goals)
    if goals == line:
        return VOID  # push
    if direction == "over":
        return _won_or_lost(goals > line)
    return _won_or_lost(goals < line)


# ─────────────────────────────────────────────────────────────────────────────
# Both Teams Score
# ─────────────────────────────────────────────────────────────────────────────


def determine_both_teams_score(selection: str, result: Optional[CanonicalResult]) -> PositionOutcome:
    if _unusable(selection, result) or result.both_teams_scored is None:
        return VOID
    normalized = selection.strip().lower()
    if normalized in AFFIRMATIVE:
        return _won_or_lost(result.both_teams_scored)
    if normalized in NEGATIVE:
        return _won_or_lost(not result.both_teams_scored)
    return VOID


# ─────────────────────────────────────────────────────────────────────────────
# Asian Handicap
# ─────────────────────────────────────────────────────────────────────────────


def parse_handicap_selection(selection: str) -> Optional[tuple[str, Decimal]]:
    """Parse "<Home|Away> <signed line>" with at most one decimal place."""
    match = _HANDICAP_SELECTION.match(selection.strip())
    if match is None:
        return None
    line = _parse_decimal(match.group("line"))
    if line is None:
        return None
    return match.group("side").lower(), line


def determine_asian_handicap(selection: str, result: Optional[CanonicalResult]) -> PositionOutcome:
    if _unusable(selection, result) or not result.has_scores:
        return VOID
    parsed = parse_handicap_selection(selection)
    if parsed is None:
        return VOID

    side, line = parsed
    if side == "home":
        backed, other = result.home_score, result.away_score
    else:
        backed, other = result.away_score, result.home_score

    adjusted = Decimal(backed) + line
    if adjusted == other:
        return VOID  # push
    return _won_or_lost(adjusted > other)


# ─────────────────────────────────────────────────────────────────────────────
# Generic fallback
# ─────────────────────────────────────────────────────────────────────────────


def determine_generic(selection: str, result: Optional[CanonicalResult]) -> PositionOutcome:
    return VOID


STRATEGIES: Dict[MarketFamily, Strategy] = {
    MarketFamily.MATCH_RESULT: determine_match_result,
    MarketFamily.OVER_UNDER: determine_over_under,
    MarketFamily.BOTH_TEAMS_SCORE: determine_both_teams_score,
    MarketFamily.ASIAN_HANDICAP: determine_asian_handicap,
    MarketFamily.GENERIC: determine_generic,
}


__all__ = [
    "Strategy",
    "STRATEGIES",
    "AFFIRMATIVE",
    "NEGATIVE",
    "match_result_side",
    "over_under_line",
    "over_under_direction",
    "parse_handicap_selection",
    "determine_match_result",
    "determine_over_under",
    "determine_both_teams_score",
    "determine_asian_handicap",
    "determine_generic",
]
