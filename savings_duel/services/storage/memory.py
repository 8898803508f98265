"""
In-Memory Expense Store

Behaves like a real-time document store: every write is followed by a
full snapshot pushed to each live subscriber, and a new subscriber gets
the current snapshot immediately.

Used by the test suite and by the app when Google Sheets is not
configured.
"""

import copy
from typing import Mapping, Optional

import structlog
from pydantic import ValidationError

from savings_duel.models.expense import DailyRecord, Participant, ParticipantSlot
from savings_duel.models.audit import AuditEvent
from savings_duel.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStoreInterface,
    SnapshotEvent,
    StorageError,
    StoreListener,
    Subscription,
)


logger = structlog.get_logger(__name__)


class InMemoryExpenseStore(ExpenseStoreInterface):
    """Expense store backed by a dict of raw date documents."""

    def __init__(self, documents: Optional[Mapping[str, dict]] = None):
        self._documents: dict[str, dict] = copy.deepcopy(dict(documents or {}))
        self._listeners: list[StoreListener] = []

    async def fetch_record(self, date: str) -> Optional[DailyRecord]:
        document = self._documents.get(date)
        if document is None:
            return None
        try:
            return DailyRecord.from_payload(date, copy.deepcopy(document))
        except ValidationError as e:
            raise StorageError(f"Stored record for {date} is malformed: {e}")

    async def merge_slot(
        self,
        date: str,
        participant: Participant,
        slot: ParticipantSlot,
    ) -> None:
        document = dict(self._documents.get(date, {}))
        document[participant.value] = slot.to_payload()
        self._documents[date] = document
        await self._broadcast()

    async def fetch_snapshot(self) -> dict[str, dict]:
        return copy.deepcopy(self._documents)

    async def subscribe(self, listener: StoreListener) -> Subscription:
        self._listeners.append(listener)
        await listener(SnapshotEvent(snapshot=copy.deepcopy(self._documents)))

        def cancel() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(cancel)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def _broadcast(self) -> None:
        for listener in list(self._listeners):
            await listener(SnapshotEvent(snapshot=copy.deepcopy(self._documents)))
        logger.debug("snapshot_broadcast", listeners=len(self._listeners))


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit sink that keeps events in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
