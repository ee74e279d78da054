from .achievements import achievements_for, is_highlight, leaderboard_achievement, streak_achievements
from .engine import (
    ExpertStatisticsSnapshot,
    compute_statistics,
    compute_streak,
    determine_tier,
    rolling_win_rate,
)
from .service import ExpertStatisticsService, leaderboard_rank

__all__ = [
    "achievements_for",
    "is_highlight",
    "leaderboard_achievement",
    "streak_achievements",
    "ExpertStatisticsSnapshot",
    "compute_statistics",
    "compute_streak",
    "determine_tier",
    "rolling_win_rate",
    "ExpertStatisticsService",
    "leaderboard_rank",
]
