"""Services package."""

from savings_duel.services.identity import (
    IdentityProvider,
    ParticipantPreference,
    StaticIdentityProvider,
)
from savings_duel.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseStoreInterface,
    InMemoryAuditStorage,
    InMemoryExpenseStore,
    StorageError,
)

__all__ = [
    # Identity
    "IdentityProvider",
    "ParticipantPreference",
    "StaticIdentityProvider",
    # Storage
    "AuditStorageInterface",
    "ConnectionError",
    "ExpenseStoreInterface",
    "InMemoryAuditStorage",
    "InMemoryExpenseStore",
    "StorageError",
]
