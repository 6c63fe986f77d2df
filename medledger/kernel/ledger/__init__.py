"""
Ledger Core - records, grants, roles and the audited read path.
"""

from medledger.kernel.ledger.access_log import AccessLog, verify_chain
from medledger.kernel.ledger.clock import MonotonicClock
from medledger.kernel.ledger.errors import (
    InvalidInputError,
    LedgerError,
    NotFoundError,
    ReplayError,
    UnauthorizedError,
)
from medledger.kernel.ledger.events import (
    AccessGranted,
    AccessRevoked,
    LedgerEvent,
    LedgerEventType,
    Outbox,
    RecordAccessed,
    RecordCreated,
    RoleGranted,
    RoleRevoked,
    event_from_payload,
)
from medledger.kernel.ledger.gate import AccessGate
from medledger.kernel.ledger.ledger import Ledger
from medledger.kernel.ledger.permissions import PermissionMatrix
from medledger.kernel.ledger.records import RecordStore
from medledger.kernel.ledger.roles import RoleRegistry
from medledger.kernel.ledger.types import (
    AccessDecision,
    AccessLogEntry,
    DecisionReason,
    Record,
    Role,
)

__all__ = [
    # Facade
    "Ledger",
    # Components
    "AccessGate",
    "AccessLog",
    "PermissionMatrix",
    "RecordStore",
    "RoleRegistry",
    "MonotonicClock",
    "verify_chain",
    # Values
    "AccessDecision",
    "AccessLogEntry",
    "DecisionReason",
    "Record",
    "Role",
    # Events
    "LedgerEvent",
    "LedgerEventType",
    "Outbox",
    "event_from_payload",
    "RecordCreated",
    "RecordAccessed",
    "AccessGranted",
    "AccessRevoked",
    "RoleGranted",
    "RoleRevoked",
    # Errors
    "LedgerError",
    "NotFoundError",
    "UnauthorizedError",
    "InvalidInputError",
    "ReplayError",
]
