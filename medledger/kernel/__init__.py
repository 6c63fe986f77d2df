"""
Kernel Layer

- Ledger Core (records, grants, roles, audited reads)
- Event Journal (append-only persistence of ledger events)
- Identity Core (bearer token verification)

Invariants:
- Records and access-log entries are never modified or removed
- Only a record's owner changes its grants
- Every successful read is audited; failed reads leave no trace in the log
"""

from medledger.kernel.ledger import Ledger, Role

__all__ = [
    "Ledger",
    "Role",
]
