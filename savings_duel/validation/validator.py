"""
Expense Input Validation

Two gates stand between the form and the store:

INPUT VALIDATION:
- Amount must parse as a finite, non-negative number
- Description must not be blank after trimming
- Date must be a real YYYY-MM-DD calendar date
- Unusually large amounts are flagged as a warning, not rejected

PRECONDITIONS:
- A store is configured
- The writer has an identity
- A participant has been chosen on this device

A failure at either gate means the write is never attempted. Both are
reported back as messages for the user; neither raises.

IMPORTANT: Validation NEVER silently fixes issues beyond trimming
whitespace. It reports them.
"""

import re
from datetime import date as date_type
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from savings_duel.models.expense import DATE_KEY_PATTERN, Participant
from savings_duel.models.validation import ValidationIssue, ValidationResult


DESCRIPTION_MAX_LENGTH = 200


class ExpenseInputValidator:
    """Validates the amount and description of one expense submission."""

    def __init__(self, max_amount: Optional[Decimal] = None):
        """
        Args:
            max_amount: Amounts above this get a warning.
                        Defaults to APP max_expense_amount.
        """
        if max_amount is None:
            from savings_duel.config import get_settings
            max_amount = get_settings().app.max_expense_amount
        self._max_amount = max_amount

    def _parse_amount(
        self,
        raw: Union[str, int, float, Decimal, None],
    ) -> tuple[Optional[Decimal], list[ValidationIssue]]:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None, [ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Please enter an amount.",
                severity="error",
            )]

        text = raw.strip().replace(",", "") if isinstance(raw, str) else str(raw)
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None, [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"'{raw}' is not a number.",
                severity="error",
            )]

        if not amount.is_finite():
            return None, [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount must be a finite number.",
                severity="error",
            )]

        if amount < 0:
            return None, [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative.",
                severity="error",
            )]

        issues = []
        if amount > self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,}) seems unusually high. Please double-check it.",
                severity="warning",
            ))
        return amount, issues

    def _clean_description(
        self,
        raw: Optional[str],
    ) -> tuple[Optional[str], list[ValidationIssue]]:
        description = (raw or "").strip()
        if not description:
            return None, [ValidationIssue(
                field="description",
                issue_type="missing",
                message="Please describe what the money was spent on.",
                severity="error",
            )]
        if len(description) > DESCRIPTION_MAX_LENGTH:
            return None, [ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters.",
                severity="error",
            )]
        return description, []

    def _clean_date(
        self,
        raw: Union[str, date_type, None],
    ) -> tuple[Optional[str], list[ValidationIssue]]:
        if isinstance(raw, date_type):
            return raw.isoformat(), []
        text = (raw or "").strip()
        if re.match(DATE_KEY_PATTERN, text):
            try:
                date_type.fromisoformat(text)
                return text, []
            except ValueError:
                pass
        return None, [ValidationIssue(
            field="date",
            issue_type="invalid_format",
            message=f"'{raw}' is not a valid YYYY-MM-DD date.",
            severity="error",
        )]

    def validate(
        self,
        amount: Union[str, int, float, Decimal, None],
        description: Optional[str],
        date: Union[str, date_type, None] = None,
    ) -> ValidationResult:
        """
        Validate a form submission and return the cleaned values.

        ``date`` is only checked when given.
        """
        parsed_amount, amount_issues = self._parse_amount(amount)
        cleaned, description_issues = self._clean_description(description)
        issues = amount_issues + description_issues

        date_key = None
        if date is not None:
            date_key, date_issues = self._clean_date(date)
            issues += date_issues

        is_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            is_valid=is_valid,
            issues=issues,
            amount=parsed_amount if is_valid else None,
            description=cleaned if is_valid else None,
            date=date_key if is_valid else None,
        )


def check_commit_preconditions(
    has_store: bool,
    writer_id: Optional[str],
    participant: Optional[Participant],
) -> Optional[str]:
    """
    Return a user-facing reason the write cannot happen, or None if it can.
    """
    if not has_store:
        return "The shared expense store is not connected."
    if not writer_id:
        return "You are not signed in, so the expense cannot be recorded."
    if participant is None:
        return "Choose who you are before recording an expense."
    return None
