"""Normalize recorded event outcomes into a CanonicalResult.

Precedence:
1. Cancelled event status, or a structured payload flagged cancelled or
   abandoned, yields a void-forcing result and nothing else.
2. Explicit structured fields win when present.
3. Missing fields are derived from the free-text final score ("3-1",
   "3:1" or "3 1").
4. With nothing usable the parser returns None ("no data"); every market
   settles that as Void.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from settleboard.shared.enums import EventStatus

from .types import CanonicalResult, SportEventOutcome

logger = logging.getLogger(__name__)

SCORE_SEPARATORS: Tuple[str, ...] = ("-", ":", " ")
_DIGITS = re.compile(r"[0-9]+")


def parse_score(score: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse a final score string into (home, away).

    Each separator is tried in turn; the first split yielding exactly two
    non-negative integers wins. Anything else is unparsable and returns None.
    """
    if not score or not isinstance(score, str):
        return None

    for separator in SCORE_SEPARATORS:
        if separator == " ":
            parts = score.split()
        else:
            parts = [p.strip() for p in score.split(separator)]
        if len(parts) != 2:
            continue
        home, away = parts
        if _DIGITS.fullmatch(home) and _DIGITS.fullmatch(away):
            return int(home), int(away)

    return None


def parse_total_goals(score: Optional[str]) -> Optional[int]:
    scores = parse_score(score)
    return scores[0] + scores[1] if scores else None


class ResultParser:
    """Builds CanonicalResult records from SportEventOutcome inputs."""

    def parse(self, outcome: Optional[SportEventOutcome]) -> Optional[CanonicalResult]:
        if outcome is None:
            return None

        structured = outcome.market_results

        if outcome.event_status is EventStatus.CANCELLED or (
            structured is not None and (structured.cancelled or structured.abandoned)
        ):
            return CanonicalResult(
                cancelled=outcome.event_status is EventStatus.CANCELLED
                or bool(structured and structured.cancelled),
                abandoned=bool(structured and structured.abandoned),
            )

        home: Optional[int] = None
        away: Optional[int] = None
        if structured is not None and structured.home_score is not None and structured.away_score is not None:
            home, away = structured.home_score, structured.away_score
        else:
            parsed = parse_score(outcome.final_score)
            if parsed is not None:
                home, away = parsed
            elif outcome.final_score:
                logger.debug(f"Unparsable final score {outcome.final_score!r} for event {outcome.event_id}")

        has_scores = home is not None and away is not None

        total_goals = structured.total_goals if structured is not None else None
        if total_goals is None and has_scores:
            total_goals = home + away

        both_scored = structured.both_teams_score if structured is not None else None
        if both_scored is None and has_scores:
            both_scored = home > 0 and away > 0

        winner = _normalize_token(outcome.winner)
        if winner is None and structured is not None:
            winner = _normalize_token(structured.match_result)

        if winner is None and total_goals is None and both_scored is None and not has_scores:
            return None

        return CanonicalResult(
            winner=winner,
            total_goals=total_goals,
            both_teams_scored=both_scored,
            home_score=home,
            away_score=away,
        )


def _normalize_token(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    token = value.strip().lower()
    return token or None


__all__ = ["SCORE_SEPARATORS", "parse_score", "parse_total_goals", "ResultParser"]
