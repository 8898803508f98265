"""Ledger synchronization package."""

from savings_duel.sync.ledger_sync import LedgerListener, LedgerSync

__all__ = ["LedgerListener", "LedgerSync"]
