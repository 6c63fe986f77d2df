"""
Kernel Data Models

SQLAlchemy models backing the ledger event journal.
"""

from medledger.kernel.models.base import Base
from medledger.kernel.models.ledger_event import LedgerEventLog

__all__ = [
    "Base",
    "LedgerEventLog",
]
