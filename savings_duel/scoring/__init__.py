"""Scoring engine package."""

from savings_duel.scoring.engine import (
    build_scoreboard,
    cumulative_daily_results,
    cumulative_series,
    daily_outcome,
    daily_total,
    goal_progress,
    overall_outcome,
    overall_totals,
)

__all__ = [
    "build_scoreboard",
    "cumulative_daily_results",
    "cumulative_series",
    "daily_outcome",
    "daily_total",
    "goal_progress",
    "overall_outcome",
    "overall_totals",
]
