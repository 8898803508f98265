"""
Data Models Package

This package contains all Pydantic models used in Savings Duel.
All data flowing through the system must conform to these schemas.
"""

from savings_duel.models.expense import (
    DEFAULT_HANDICAP,
    ContestRules,
    DailyRecord,
    ExpenseEntry,
    ExpenseLedger,
    Participant,
    ParticipantSlot,
    SnapshotDecodeError,
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
from savings_duel.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from savings_duel.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_HANDICAP",
    "ContestRules",
    "DailyRecord",
    "ExpenseEntry",
    "ExpenseLedger",
    "Participant",
    "ParticipantSlot",
    "SnapshotDecodeError",
    # Scoring results
    "DailyResults",
    "DayResult",
    "GoalProgress",
    "OverallTotals",
    "Scoreboard",
    "SeriesPoint",
    "Verdict",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
