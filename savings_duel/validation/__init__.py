"""Validation package."""

from savings_duel.validation.validator import (
    ExpenseInputValidator,
    check_commit_preconditions,
)

__all__ = ["ExpenseInputValidator", "check_commit_preconditions"]
