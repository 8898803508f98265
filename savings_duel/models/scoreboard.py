"""
Scoring Result Models

Plain value objects produced by the scoring engine. They carry no
behaviour beyond a few display helpers, so the UI and tests can compare
them directly.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Verdict(str, Enum):
    """Outcome of comparing two totals under the handicap."""
    A_WINS = "a_wins"
    B_WINS = "b_wins"
    DRAW = "draw"
    INSUFFICIENT = "insufficient"  # a total was missing, or nothing recorded


class DailyResults(BaseModel):
    """Win/draw tally over every recorded date."""

    model_config = ConfigDict(frozen=True)

    wins_a: int = Field(default=0, ge=0)
    wins_b: int = Field(default=0, ge=0)
    draws: int = Field(default=0, ge=0)

    @property
    def days(self) -> int:
        return self.wins_a + self.wins_b + self.draws


class OverallTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_a: Decimal = Decimal("0")
    total_b: Decimal = Decimal("0")


class DayResult(BaseModel):
    """One row of the per-day results table."""

    model_config = ConfigDict(frozen=True)

    date: str
    total_a: Decimal
    total_b: Decimal
    verdict: Verdict


class SeriesPoint(BaseModel):
    """Running totals after a given date, for charting."""

    model_config = ConfigDict(frozen=True)

    date: str
    cumulative_a: Decimal
    cumulative_b: Decimal
    threshold: Decimal = Field(
        ...,
        description="cumulative_a multiplied by the handicap"
    )


class GoalProgress(BaseModel):
    """
    Progress towards a monthly goal.

    ``percent`` is the raw ratio and may exceed 100 when the goal is
    overshot; use it for any number shown as text. ``display_percent`` is
    clamped to [0, 100] and is only for bounded indicators such as bars.
    """

    model_config = ConfigDict(frozen=True)

    total: Decimal
    goal: Decimal
    percent: Decimal
    display_percent: Decimal

    @property
    def label(self) -> str:
        return f"{self.percent:.1f}%"

    @property
    def overshoot(self) -> bool:
        return self.percent > 100


class Scoreboard(BaseModel):
    """Everything the dashboard shows, computed from one ledger snapshot."""

    model_config = ConfigDict(frozen=True)

    days: list[DayResult] = Field(default_factory=list)
    results: DailyResults = Field(default_factory=DailyResults)
    totals: OverallTotals = Field(default_factory=OverallTotals)
    overall: Verdict = Verdict.INSUFFICIENT
    series: list[SeriesPoint] = Field(default_factory=list)
    goal_a: GoalProgress
    goal_b: GoalProgress
    month: Optional[str] = Field(
        default=None,
        description="Calendar month the board was restricted to, if any"
    )
