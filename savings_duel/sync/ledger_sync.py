"""
Ledger Synchronization

Keeps the process-wide ExpenseLedger in step with the shared store.

DESIGN DECISION: Snapshots are applied all-or-nothing. Each event either
replaces the whole ledger with a freshly decoded one, or leaves the
current ledger exactly as it was. There is no partial merge, so the
scoring engine never sees a half-applied update.

On a transport error, or a snapshot that cannot be decoded, the last
known good ledger stays in place and the error is kept for the UI.
Nothing is retried here; a polling store heals by itself and a user can
call refresh().
"""

from typing import Callable, Optional

import structlog

from savings_duel.audit import AuditLogger
from savings_duel.models.expense import ExpenseLedger, SnapshotDecodeError
from savings_duel.services.storage import (
    ExpenseStoreInterface,
    SnapshotEvent,
    StorageError,
    StoreEvent,
    Subscription,
    SubscriptionErrorEvent,
)


logger = structlog.get_logger(__name__)


LedgerListener = Callable[[ExpenseLedger], None]


class LedgerSync:
    """
    Owns the current ledger snapshot.

    The ledger starts empty and is only ever replaced, never edited.
    Listeners are called with the new ledger after every successful
    replacement, which is the cue to recompute the scoreboard. A listener
    that raises is logged and audited as a system error.
    """

    def __init__(
        self,
        store: ExpenseStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._ledger = ExpenseLedger()
        self._last_error: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._accepting = False
        self._listeners: list[LedgerListener] = []

    @property
    def ledger(self) -> ExpenseLedger:
        return self._ledger

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def is_running(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def add_listener(self, listener: LedgerListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: LedgerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def handle_event(self, event: StoreEvent) -> bool:
        """
        Apply one store event.

        Returns True if the ledger was replaced.
        """
        if isinstance(event, SubscriptionErrorEvent):
            return await self._record_failure(event.error_message, rejected=False)

        if not isinstance(event, SnapshotEvent):
            return await self._record_failure(
                f"Unexpected store event: {type(event).__name__}",
                rejected=True,
            )

        try:
            ledger = ExpenseLedger.from_payload(event.snapshot)
        except SnapshotDecodeError as e:
            return await self._record_failure(str(e), rejected=True)

        self._ledger = ledger
        self._last_error = None
        logger.info("ledger_replaced", dates=len(ledger))
        if self._audit_logger:
            await self._audit_logger.log_snapshot_applied(len(ledger))

        for listener in list(self._listeners):
            try:
                listener(ledger)
            except Exception as e:
                # The new ledger stays applied; later listeners still run
                logger.error(
                    "ledger_listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="ledger_listener_failed",
                        error_message=str(e),
                        details={"dates": len(ledger)},
                    )
        return True

    async def _record_failure(self, message: str, rejected: bool) -> bool:
        self._last_error = message
        logger.warning(
            "ledger_update_failed",
            error=message,
            kept_dates=len(self._ledger),
        )
        if self._audit_logger:
            if rejected:
                await self._audit_logger.log_snapshot_rejected(message)
            else:
                await self._audit_logger.log_subscription_error(message)
        return False

    async def start(self) -> None:
        """Subscribe to the store. Calling twice is a no-op."""
        if self.is_running:
            return
        self._accepting = True
        self._subscription = await self._store.subscribe(self._deliver)

    def stop(self) -> None:
        """Unsubscribe. No event is applied after this returns."""
        self._accepting = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def _deliver(self, event: StoreEvent) -> None:
        if not self._accepting:
            return
        await self.handle_event(event)

    async def refresh(self) -> bool:
        """One-off pull of the whole collection, outside any subscription."""
        try:
            snapshot = await self._store.fetch_snapshot()
        except StorageError as e:
            return await self.handle_event(SubscriptionErrorEvent(error_message=str(e)))
        return await self.handle_event(SnapshotEvent(snapshot=snapshot))
