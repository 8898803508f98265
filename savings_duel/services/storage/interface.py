"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the expense store.
This allows us to:
1. Swap Google Sheets for a real-time document store later
2. Use in-memory storage for testing and offline use
3. Keep the scoring engine decoupled from storage entirely

The store deals in raw documents (one per date). Decoding a snapshot
into an ExpenseLedger happens on the consumer side, so a malformed
document can be rejected without touching the last good ledger.

KNOWN RACE: there is no compare-and-swap. Recording an expense is
fetch_record -> append -> merge_slot, and two writers appending to the
same participant's slot on the same date can lose one update. The last
write wins. This is accepted, not detected.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from savings_duel.models.audit import AuditEvent
from savings_duel.models.expense import DailyRecord, Participant, ParticipantSlot


# =============================================================================
# SUBSCRIPTION EVENTS
# =============================================================================

class SnapshotEvent(BaseModel):
    """A complete view of the collection: date key -> raw document."""

    model_config = ConfigDict(frozen=True)

    snapshot: dict[str, dict] = Field(default_factory=dict)


class SubscriptionErrorEvent(BaseModel):
    """The transport failed; no snapshot accompanies this event."""

    model_config = ConfigDict(frozen=True)

    error_message: str


StoreEvent = Union[SnapshotEvent, SubscriptionErrorEvent]
StoreListener = Callable[[StoreEvent], Awaitable[None]]


class Subscription:
    """
    Handle for a live snapshot feed.

    After unsubscribe() returns, the listener receives nothing further.
    """

    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._cancel()


# =============================================================================
# INTERFACES
# =============================================================================

class ExpenseStoreInterface(ABC):
    """
    Abstract interface for the shared expense store.

    Any storage implementation (Google Sheets, a document database, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def fetch_record(self, date: str) -> Optional[DailyRecord]:
        """
        Read the document for one date.

        Returns:
            The record, or None if nothing has been written for that date

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def merge_slot(
        self,
        date: str,
        participant: Participant,
        slot: ParticipantSlot,
    ) -> None:
        """
        Write one participant's slot for a date.

        Merge semantics: the other participant's slot and any other fields
        stored on the same date are preserved.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def fetch_snapshot(self) -> dict[str, dict]:
        """
        Read the whole collection.

        Returns:
            Mapping of date key to raw document payload

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def subscribe(self, listener: StoreListener) -> Subscription:
        """
        Start delivering full snapshots to ``listener``.

        Transport errors are delivered as SubscriptionErrorEvent rather
        than raised. Delivery continues until the returned subscription
        is cancelled.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
