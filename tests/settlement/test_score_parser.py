"""Tests for result parsing into CanonicalResult."""

from datetime import datetime, timezone

import pytest

from settleboard.settlement.score_parser import ResultParser, parse_score, parse_total_goals
from settleboard.settlement.types import SportEventOutcome, StructuredMarketResult
from settleboard.shared.enums import EventStatus

NOW = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)


def _outcome(**kwargs) -> SportEventOutcome:
    kwargs.setdefault("event_id", "evt-1")
    kwargs.setdefault("settled_at", NOW)
    return SportEventOutcome(**kwargs)


class TestParseScore:
    """Tests for free-text score parsing."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            ("3-1", (3, 1)),
            ("3:1", (3, 1)),
            ("3 1", (3, 1)),
            (" 2 - 2 ", (2, 2)),
            ("0:0", (0, 0)),
            ("10-12", (10, 12)),
        ],
    )
    def test_supported_separators(self, score, expected):
        """Dash, colon and space all split a score."""
        assert parse_score(score) == expected

    @pytest.mark.parametrize("score", [None, "", "abc", "3", "3-1-2", "3-x", "-1-2", "3.5-1", "three-one"])
    def test_unparsable_returns_none(self, score):
        """Malformed scores are no data, not errors."""
        assert parse_score(score) is None

    def test_total_goals(self):
        assert parse_total_goals("2-2") == 4
        assert parse_total_goals("nope") is None


class TestResultParser:
    """Tests for ResultParser precedence rules."""

    def setup_method(self):
        self.parser = ResultParser()

    def test_none_outcome_is_no_data(self):
        assert self.parser.parse(None) is None

    def test_cancelled_status_forces_void(self):
        """Cancelled status wins over everything else."""
        result = self.parser.parse(
            _outcome(final_score="2-1", winner="Home", event_status=EventStatus.CANCELLED)
        )
        assert result is not None
        assert result.is_void_forcing
        assert result.winner is None

    @pytest.mark.parametrize("flag", ["cancelled", "abandoned"])
    def test_structured_flags_force_void(self, flag):
        structured = StructuredMarketResult(**{flag: True, "home_score": 1, "away_score": 0})
        result = self.parser.parse(_outcome(market_results=structured))
        assert result.is_void_forcing

    def test_derives_fields_from_final_score(self):
        """Missing structured fields come from the score string."""
        result = self.parser.parse(_outcome(final_score="2:1", winner="Home"))
        assert result.home_score == 2
        assert result.away_score == 1
        assert result.total_goals == 3
        assert result.both_teams_scored is True
        assert result.winner == "home"

    def test_structured_fields_take_precedence(self):
        structured = StructuredMarketResult(total_goals=5, both_teams_score=False, home_score=4, away_score=1)
        result = self.parser.parse(_outcome(final_score="0-0", market_results=structured))
        assert result.total_goals == 5
        assert result.both_teams_scored is False
        assert (result.home_score, result.away_score) == (4, 1)

    def test_total_goals_falls_back_to_structured_scores(self):
        """Structured scores without a total still give a total."""
        structured = StructuredMarketResult(home_score=2, away_score=2)
        result = self.parser.parse(_outcome(market_results=structured))
        assert result.total_goals == 4
        assert result.both_teams_scored is True

    def test_winner_from_structured_match_result(self):
        structured = StructuredMarketResult(match_result=" Draw ")
        result = self.parser.parse(_outcome(market_results=structured))
        assert result.winner == "draw"
        assert result.total_goals is None

    def test_nothing_usable_is_no_data(self):
        assert self.parser.parse(_outcome(final_score="abandoned at HT")) is None
        assert self.parser.parse(_outcome()) is None


class TestStructuredPayload:
    """Tests for StructuredMarketResult.from_payload."""

    def test_camel_case_json(self):
        payload = '{"totalGoals": 3, "bothTeamsScore": true, "homeScore": 2, "awayScore": 1}'
        structured = StructuredMarketResult.from_payload(payload)
        assert structured.total_goals == 3
        assert structured.both_teams_score is True
        assert structured.home_score == 2

    def test_wrong_types_are_absent(self):
        """Strings and bools never stand in for integers."""
        structured = StructuredMarketResult.from_payload({"totalGoals": "3", "homeScore": True})
        assert structured.total_goals is None
        assert structured.home_score is None

    @pytest.mark.parametrize("payload", [None, "", "not json", "[1, 2]", 42])
    def test_unusable_payload(self, payload):
        assert StructuredMarketResult.from_payload(payload) is None
