"""
Event journal infrastructure.

Provides durable, append-only storage of ledger events.
"""

from medledger.kernel.events.journal import LedgerJournal, LedgerWriter, restore_ledger

__all__ = [
    "LedgerJournal",
    "LedgerWriter",
    "restore_ledger",
]
