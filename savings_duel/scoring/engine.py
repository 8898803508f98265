"""
Scoring Engine

DESIGN DECISION: Everything here is a pure function of a ledger snapshot.
There is no cached sum and no incremental state: each change notification
recomputes the whole board from scratch with a fresh fold. Running it
twice on the same snapshot gives equal results.

All amount arithmetic is Decimal. The handicap comparison multiplies by
1.5, and the Draw branch is an exact equality test, so binary floats
would make draws depend on rounding noise.

None of these functions raise. Missing data degrades to a zero total or
an INSUFFICIENT verdict.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from savings_duel.models.expense import (
    DEFAULT_HANDICAP,
    ContestRules,
    ExpenseLedger,
    Participant,
)
from savings_duel.models.scoreboard import (
    DailyResults,
    DayResult,
    GoalProgress,
    OverallTotals,
    Scoreboard,
    SeriesPoint,
    Verdict,
)


Amount = Union[Decimal, int, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _as_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# =============================================================================
# DAILY AGGREGATOR
# =============================================================================

def daily_total(
    ledger: ExpenseLedger,
    participant: Participant,
    date: str,
) -> Decimal:
    """
    Sum of one participant's expenses on one date.

    A missing date, a missing slot and an empty slot all give 0.
    """
    record = ledger.get(date)
    if record is None:
        return ZERO
    return sum((entry.amount for entry in record.entries_for(participant)), ZERO)


# =============================================================================
# OUTCOME RESOLVER
# =============================================================================

def daily_outcome(
    total_a: Optional[Amount],
    total_b: Optional[Amount],
    handicap: Amount = DEFAULT_HANDICAP,
) -> Verdict:
    """
    Apply the handicap rule to two totals.

    | comparison                  | verdict      |
    |-----------------------------|--------------|
    | total_b >  total_a * h      | A_WINS       |
    | total_b == total_a * h      | DRAW         |
    | total_b <  total_a * h      | B_WINS       |
    | either total not computable | INSUFFICIENT |

    The INSUFFICIENT row is only reachable when a caller passes a total it
    never computed (None, NaN or unparseable text); daily_total always
    returns a number.
    """
    if total_a is None or total_b is None:
        return Verdict.INSUFFICIENT

    try:
        a = _as_decimal(total_a)
        b = _as_decimal(total_b)
    except InvalidOperation:
        return Verdict.INSUFFICIENT
    if a.is_nan() or b.is_nan():
        return Verdict.INSUFFICIENT

    adjusted_a = a * _as_decimal(handicap)
    if b > adjusted_a:
        return Verdict.A_WINS
    if b == adjusted_a:
        return Verdict.DRAW
    return Verdict.B_WINS


# =============================================================================
# CUMULATIVE SCORER
# =============================================================================

def cumulative_daily_results(
    ledger: ExpenseLedger,
    handicap: Amount = DEFAULT_HANDICAP,
) -> DailyResults:
    """
    Tally the daily verdict of every recorded date.

    A date whose totals are both zero is still a date with a record, and
    by the rule table 0 vs 0 * h is a draw. It is counted, not skipped.
    """
    wins_a = wins_b = draws = 0

    for date in ledger.sorted_dates():
        verdict = daily_outcome(
            daily_total(ledger, Participant.A, date),
            daily_total(ledger, Participant.B, date),
            handicap,
        )
        if verdict is Verdict.A_WINS:
            wins_a += 1
        elif verdict is Verdict.B_WINS:
            wins_b += 1
        elif verdict is Verdict.DRAW:
            draws += 1

    return DailyResults(wins_a=wins_a, wins_b=wins_b, draws=draws)


def overall_totals(ledger: ExpenseLedger) -> OverallTotals:
    """All-time totals per participant."""
    total_a = ZERO
    total_b = ZERO
    for date in ledger.sorted_dates():
        total_a += daily_total(ledger, Participant.A, date)
        total_b += daily_total(ledger, Participant.B, date)
    return OverallTotals(total_a=total_a, total_b=total_b)


def overall_outcome(
    total_a: Optional[Amount],
    total_b: Optional[Amount],
    handicap: Amount = DEFAULT_HANDICAP,
) -> Verdict:
    """
    Verdict on all-time totals.

    Same table as daily_outcome, except that two exact zeros mean nothing
    has been recorded yet and give INSUFFICIENT. The daily tally does not
    make this distinction; a zero/zero day is a draw there.
    """
    if total_a is not None and total_b is not None:
        try:
            both_zero = _as_decimal(total_a) == ZERO and _as_decimal(total_b) == ZERO
        except InvalidOperation:
            return Verdict.INSUFFICIENT
        if both_zero:
            return Verdict.INSUFFICIENT
    return daily_outcome(total_a, total_b, handicap)


# =============================================================================
# SERIES BUILDER
# =============================================================================

def cumulative_series(
    ledger: ExpenseLedger,
    handicap: Amount = DEFAULT_HANDICAP,
) -> list[SeriesPoint]:
    """Running totals per date, plus participant A's handicapped threshold."""
    factor = _as_decimal(handicap)
    running_a = ZERO
    running_b = ZERO
    points = []

    for date in ledger.sorted_dates():
        running_a += daily_total(ledger, Participant.A, date)
        running_b += daily_total(ledger, Participant.B, date)
        points.append(SeriesPoint(
            date=date,
            cumulative_a=running_a,
            cumulative_b=running_b,
            threshold=running_a * factor,
        ))

    return points


# =============================================================================
# GOAL TRACKER
# =============================================================================

def goal_progress(total: Amount, goal: Amount) -> GoalProgress:
    """
    Progress of a running total towards a goal.

    ``goal`` must be positive; ContestRules rejects anything else at
    startup, so no guard here.
    """
    total_d = _as_decimal(total)
    goal_d = _as_decimal(goal)
    percent = total_d / goal_d * HUNDRED
    return GoalProgress(
        total=total_d,
        goal=goal_d,
        percent=percent,
        display_percent=max(ZERO, min(HUNDRED, percent)),
    )


# =============================================================================
# SCOREBOARD
# =============================================================================

def build_scoreboard(
    ledger: ExpenseLedger,
    rules: Optional[ContestRules] = None,
    month: Optional[str] = None,
) -> Scoreboard:
    """
    Compute the whole board in a single pass over the sorted dates.

    Per-date totals are taken from daily_total, so the tally, the series
    and the day rows always agree with the standalone functions.

    Args:
        ledger: Snapshot to score
        rules: Contest configuration (defaults if omitted)
        month: Restrict to one calendar month (YYYY-MM)
    """
    rules = rules or ContestRules()
    if month is not None:
        ledger = ledger.for_month(month)

    days = []
    series = []
    wins_a = wins_b = draws = 0
    running_a = ZERO
    running_b = ZERO

    for date in ledger.sorted_dates():
        total_a = daily_total(ledger, Participant.A, date)
        total_b = daily_total(ledger, Participant.B, date)
        verdict = daily_outcome(total_a, total_b, rules.handicap)

        if verdict is Verdict.A_WINS:
            wins_a += 1
        elif verdict is Verdict.B_WINS:
            wins_b += 1
        elif verdict is Verdict.DRAW:
            draws += 1

        running_a += total_a
        running_b += total_b

        days.append(DayResult(
            date=date,
            total_a=total_a,
            total_b=total_b,
            verdict=verdict,
        ))
        series.append(SeriesPoint(
            date=date,
            cumulative_a=running_a,
            cumulative_b=running_b,
            threshold=running_a * rules.handicap,
        ))

    return Scoreboard(
        days=days,
        results=DailyResults(wins_a=wins_a, wins_b=wins_b, draws=draws),
        totals=OverallTotals(total_a=running_a, total_b=running_b),
        overall=overall_outcome(running_a, running_b, rules.handicap),
        series=series,
        goal_a=goal_progress(running_a, rules.goal_a),
        goal_b=goal_progress(running_b, rules.goal_b),
        month=month,
    )
