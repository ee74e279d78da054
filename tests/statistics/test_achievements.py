"""Tests for achievement and highlight derivation."""

from decimal import Decimal

import pytest

from settleboard.statistics.achievements import (
    achievements_for,
    is_highlight,
    leaderboard_achievement,
    streak_achievements,
)


class TestStreakAchievements:
    @pytest.mark.parametrize(
        "previous,current,expected",
        [
            (4, 5, [5]),
            (3, 11, [5, 10]),
            (5, 6, []),
            (9, 10, [10]),
            (-2, 1, []),
            (None, 12, []),
        ],
    )
    def test_milestones(self, previous, current, expected):
        assert streak_achievements(previous, current) == expected


class TestLeaderboardAchievement:
    @pytest.mark.parametrize(
        "previous,current,expected",
        [
            (None, 3, True),
            (12, 10, True),
            (4, 2, False),
            (None, None, False),
            (3, None, False),
            (None, 11, False),
        ],
    )
    def test_entering_top_ten(self, previous, current, expected):
        assert leaderboard_achievement(previous, current, 10) is expected


class TestAchievementsFor:
    def test_combines_streak_and_rank(self):
        data = {"expert_id": "x1", "previous_streak": 4, "current_streak": 5, "previous_rank": None, "current_rank": 7}
        found = achievements_for(data)
        assert [(a.kind, a.value) for a in found] == [("win_streak", 5), ("leaderboard", 10)]
        assert found[0].title == "5 wins in a row"


class TestHighlight:
    def test_won_expert_long_odds(self):
        assert is_highlight({"outcome": "won", "odds": "2.50", "expert_id": "x1"})

    def test_threshold_inclusive(self):
        assert is_highlight({"outcome": "won", "odds": "2.00", "expert_id": "x1"})

    @pytest.mark.parametrize(
        "data",
        [
            {"outcome": "lost", "odds": "3.00", "expert_id": "x1"},
            {"outcome": "won", "odds": "1.90", "expert_id": "x1"},
            {"outcome": "won", "odds": "3.00", "expert_id": None},
            {"outcome": "won", "odds": "junk", "expert_id": "x1"},
        ],
    )
    def test_not_highlights(self, data):
        assert not is_highlight(data)

    def test_custom_minimum(self):
        assert not is_highlight({"outcome": "won", "odds": "2.50", "expert_id": "x1"}, min_odds=Decimal("3"))
