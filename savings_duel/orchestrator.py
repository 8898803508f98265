"""
Main Orchestrator for Savings Duel

This module ties together all the components and defines the
end-to-end flows for:
1. Recording an expense (form -> validate -> read-modify-write -> audit)
2. Keeping the scoreboard current (snapshot -> ledger -> recompute)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written unless the input is valid and the preconditions hold
- The scoring engine only ever sees whole, immutable ledger snapshots
- Boundary failures become messages, never crashes, and are not retried
"""

from datetime import date as date_type
from decimal import Decimal
from typing import Callable, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from savings_duel.audit import AuditLogger, create_correlation_id
from savings_duel.config import get_settings
from savings_duel.models.expense import (
    ContestRules,
    DailyRecord,
    ExpenseEntry,
    ExpenseLedger,
    Participant,
    now_epoch_ms,
)
from savings_duel.models.scoreboard import Scoreboard
from savings_duel.scoring import build_scoreboard
from savings_duel.services.identity import (
    IdentityProvider,
    ParticipantPreference,
    StaticIdentityProvider,
)
from savings_duel.services.storage import (
    AuditStorageInterface,
    ExpenseStoreInterface,
    InMemoryExpenseStore,
    StorageError,
)
from savings_duel.sync import LedgerSync
from savings_duel.validation import ExpenseInputValidator, check_commit_preconditions


logger = structlog.get_logger(__name__)


class CommitResult(BaseModel):
    """Outcome of one commit_expense call, ready to show the user."""

    success: bool
    message: str
    date: Optional[str] = None
    participant: Optional[Participant] = None
    entry: Optional[ExpenseEntry] = None
    warnings: list[str] = Field(default_factory=list)


class ExpenseCommitFlow:
    """
    Orchestrates recording one expense.

    Flow:
    1. Validate the form input (amount, description, date)
    2. Check preconditions (store, identity, chosen participant)
    3. Read the date's record (absent counts as empty)
    4. Append the entry to this participant's slot
    5. Merge-write the slot back; the other participant's slot is untouched

    Steps 3-5 are not atomic. Two writers appending to the same slot at
    the same moment can lose one entry.
    """

    def __init__(
        self,
        store: Optional[ExpenseStoreInterface],
        identity: IdentityProvider,
        preference: ParticipantPreference,
        validator: Optional[ExpenseInputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], int] = now_epoch_ms,
    ):
        self._store = store
        self._identity = identity
        self._preference = preference
        self._validator = validator or ExpenseInputValidator()
        self._audit_logger = audit_logger
        self._clock = clock

    @property
    def has_store(self) -> bool:
        return self._store is not None

    def current_participant(self) -> Optional[Participant]:
        return self._preference.load()

    async def choose_participant(self, participant: Participant) -> None:
        """Remember which participant this device records for."""
        self._preference.save(participant)
        if self._audit_logger:
            await self._audit_logger.log_participant_selected(participant.value)

    async def commit_expense(
        self,
        date: Union[str, date_type],
        amount: Union[str, int, float, Decimal, None],
        description: Optional[str],
        participant: Optional[Participant] = None,
        correlation_id: Optional[UUID] = None,
    ) -> CommitResult:
        """
        Record one expense for ``participant`` (default: this device's choice).

        Returns:
            CommitResult; success is False for invalid input, unmet
            preconditions, or a store failure. Never raises for those.
        """
        correlation_id = correlation_id or create_correlation_id()
        participant = participant or self._preference.load()
        writer_id = self._identity.current_writer_id()

        # Step 1: Input validation
        validation = self._validator.validate(
            amount, description, date if date is not None else ""
        )
        if not validation.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    issues=[issue.model_dump() for issue in validation.issues],
                    correlation_id=correlation_id,
                )
            return CommitResult(
                success=False,
                message=validation.error_message(),
                participant=participant,
            )

        date_key = validation.date

        # Step 2: Preconditions
        reason = check_commit_preconditions(
            has_store=self._store is not None,
            writer_id=writer_id,
            participant=participant,
        )
        if reason:
            if self._audit_logger:
                await self._audit_logger.log_precondition_failed(
                    reason=reason,
                    correlation_id=correlation_id,
                )
            return CommitResult(
                success=False,
                message=reason,
                date=date_key,
                participant=participant,
            )

        entry = ExpenseEntry(
            amount=validation.amount,
            description=validation.description,
            recorded_at=self._clock(),
        )

        # Steps 3-5: read, append, merge-write
        try:
            record = await self._store.fetch_record(date_key)
            record = record or DailyRecord(date=date_key)
            updated = record.with_entry(participant, entry, writer_id)
            await self._store.merge_slot(date_key, participant, updated.slot(participant))
        except StorageError as e:
            logger.error(
                "commit_failed",
                date=date_key,
                participant=participant.value,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_commit_failed(
                    date=date_key,
                    participant=participant.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return CommitResult(
                success=False,
                message=f"Could not save the expense: {e}",
                date=date_key,
                participant=participant,
            )

        if self._audit_logger:
            await self._audit_logger.log_expense_committed(
                date=date_key,
                participant=participant.value,
                amount=str(entry.amount),
                correlation_id=correlation_id,
                writer_id=writer_id,
            )

        return CommitResult(
            success=True,
            message=f"Recorded {entry.amount:,} for {entry.description} on {date_key}.",
            date=date_key,
            participant=participant,
            entry=entry,
            warnings=validation.warnings,
        )


class ScoreboardFlow:
    """
    Keeps a scoreboard in step with the synced ledger.

    Every ledger replacement triggers a full recompute from scratch.
    """

    def __init__(
        self,
        sync: LedgerSync,
        rules: Optional[ContestRules] = None,
    ):
        self._sync = sync
        self._rules = rules or ContestRules()
        self._board = build_scoreboard(sync.ledger, self._rules)
        sync.add_listener(self._on_ledger)

    def _on_ledger(self, ledger: ExpenseLedger) -> None:
        self._board = build_scoreboard(ledger, self._rules)

    @property
    def rules(self) -> ContestRules:
        return self._rules

    @property
    def ledger(self) -> ExpenseLedger:
        return self._sync.ledger

    @property
    def scoreboard(self) -> Scoreboard:
        return self._board

    @property
    def last_error(self) -> Optional[str]:
        return self._sync.last_error

    def scoreboard_for_month(self, month: str) -> Scoreboard:
        return build_scoreboard(self._sync.ledger, self._rules, month=month)

    async def refresh(self) -> bool:
        return await self._sync.refresh()


def create_app_components(
    use_storage: bool = True,
) -> tuple[ExpenseCommitFlow, ScoreboardFlow, LedgerSync]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to Google Sheets.
                    Set to False to run on an in-memory store.

    Returns:
        (commit_flow, scoreboard_flow, ledger_sync)
    """
    settings = get_settings()
    app_settings = settings.app
    rules = ContestRules.from_settings(settings.contest)

    store: Optional[ExpenseStoreInterface] = None
    audit_storage: Optional[AuditStorageInterface] = None
    writer_id = app_settings.writer_id

    if use_storage:
        try:
            from savings_duel.services.storage.google_sheets import (
                GoogleSheetsAuditStorage,
                GoogleSheetsClient,
                GoogleSheetsExpenseStore,
            )
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsExpenseStore(
                sheets_client,
                poll_interval_seconds=app_settings.poll_interval_seconds,
            )
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - commits will report it
            logger.warning("storage_not_configured", error=str(e))
            store = None
            audit_storage = None
    else:
        store = InMemoryExpenseStore()
        writer_id = writer_id or "local"

    audit_logger = AuditLogger(audit_storage)

    sync = LedgerSync(store or InMemoryExpenseStore(), audit_logger)
    commit_flow = ExpenseCommitFlow(
        store=store,
        identity=StaticIdentityProvider(writer_id),
        preference=ParticipantPreference(app_settings.preference_path),
        validator=ExpenseInputValidator(app_settings.max_expense_amount),
        audit_logger=audit_logger,
    )
    scoreboard_flow = ScoreboardFlow(sync, rules)

    return commit_flow, scoreboard_flow, sync
