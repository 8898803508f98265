"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the shared backend; the in-memory store backs tests and
offline use.
"""

from savings_duel.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseStoreInterface,
    SnapshotEvent,
    StorageError,
    StoreEvent,
    StoreListener,
    Subscription,
    SubscriptionErrorEvent,
)
from savings_duel.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStoreInterface",
    # Subscription types
    "SnapshotEvent",
    "StoreEvent",
    "StoreListener",
    "Subscription",
    "SubscriptionErrorEvent",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStore",
]
