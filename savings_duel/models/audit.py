"""
Audit Models for Savings Duel

Every write attempt and every change to the synced ledger leaves an
audit event behind. Two people share one ledger, so "who logged what,
and did it land" has to be answerable after the fact.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Write path
    EXPENSE_COMMITTED = "expense_committed"
    COMMIT_FAILED = "commit_failed"
    VALIDATION_FAILED = "validation_failed"
    PRECONDITION_FAILED = "precondition_failed"

    # Read path (synchronization)
    SNAPSHOT_APPLIED = "snapshot_applied"
    SNAPSHOT_REJECTED = "snapshot_rejected"
    SUBSCRIPTION_ERROR = "subscription_error"

    # Local preferences
    PARTICIPANT_SELECTED = "participant_selected"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'daily_record', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Key of the entity, e.g. a YYYY-MM-DD date"
    )

    # Correlation - ties together the events of one commit
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_committed("2025-08-01", "a", "1200", cid)
    """

    @staticmethod
    def expense_committed(
        date: str,
        participant: str,
        amount: str,
        correlation_id: UUID,
        writer_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_COMMITTED,
            entity_type="daily_record",
            entity_id=date,
            correlation_id=correlation_id,
            description=f"Expense of {amount} recorded for {participant} on {date}",
            details={
                "participant": participant,
                "amount": amount,
                "writer_id": writer_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def commit_failed(
        date: str,
        participant: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMIT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="daily_record",
            entity_id=date,
            correlation_id=correlation_id,
            description=f"Could not record expense for {participant} on {date}",
            error_message=error_message,
            details={"participant": participant},
        )

    @staticmethod
    def validation_failed(
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense_input",
            correlation_id=correlation_id,
            description=f"Expense input rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def precondition_failed(
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRECONDITION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Write not attempted: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def snapshot_applied(date_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_APPLIED,
            severity=AuditSeverity.DEBUG,
            entity_type="ledger",
            description=f"Ledger snapshot applied ({date_count} dates)",
            details={"date_count": date_count},
        )

    @staticmethod
    def snapshot_rejected(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REJECTED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Ledger snapshot could not be decoded; keeping previous ledger",
            error_message=error_message,
        )

    @staticmethod
    def subscription_error(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Ledger subscription reported a transport error",
            error_message=error_message,
        )

    @staticmethod
    def participant_selected(participant: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTICIPANT_SELECTED,
            description=f"Participant {participant} selected on this device",
            details={"participant": participant},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
