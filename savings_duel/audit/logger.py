"""
Audit Logger

DESIGN DECISION: Every write attempt and every ledger refresh is logged.
This provides:
1. Traceability of who recorded what
2. A visible trail when a write or the live feed fails
3. Debugging capability for the known lost-update race

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from savings_duel.models.audit import AuditEvent, AuditEventBuilder
from savings_duel.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit sink such as Google Sheets (if configured)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("savings_duel.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_committed(
        self,
        date: str,
        participant: str,
        amount: str,
        correlation_id: UUID,
        writer_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_committed(
            date=date,
            participant=participant,
            amount=amount,
            correlation_id=correlation_id,
            writer_id=writer_id,
        ))

    async def log_commit_failed(
        self,
        date: str,
        participant: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.commit_failed(
            date=date,
            participant=participant,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_precondition_failed(
        self,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.precondition_failed(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_applied(self, date_count: int) -> None:
        await self.log(AuditEventBuilder.snapshot_applied(date_count))

    async def log_snapshot_rejected(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.snapshot_rejected(error_message))

    async def log_subscription_error(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.subscription_error(error_message))

    async def log_participant_selected(self, participant: str) -> None:
        await self.log(AuditEventBuilder.participant_selected(participant))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., recording an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
