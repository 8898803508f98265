"""Validation result models for expense input."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one expense form submission.

    ``amount``, ``description`` and ``date`` hold the parsed, cleaned values and are
    only set when the input is valid.
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    amount: Optional[Decimal] = None
    description: Optional[str] = None
    date: Optional[str] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    def error_message(self) -> str:
        """All error messages joined for a single user-facing line."""
        return " ".join(
            issue.message for issue in self.issues if issue.severity == "error"
        )
