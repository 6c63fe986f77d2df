"""
Value types for the ledger core.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

# Opaque caller identifier. No internal structure is assumed.
Subject = str

GENESIS_DIGEST = "0" * 64


class Role(str, Enum):
    """Named roles a subject may hold."""
    ADMIN = "admin"
    PROVIDER = "provider"


class DecisionReason(str, Enum):
    """Why the gate allowed or refused a read."""
    OWNER = "owner"
    PROVIDER = "provider"
    GRANT = "grant"
    DENIED = "denied"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Record:
    """An immutable entry referencing externally stored content."""

    id: int
    data_hash: str
    owner: Subject
    created_at: datetime
    exists: bool = True


@dataclass(frozen=True)
class AccessLogEntry:
    """One successful read, chained to its predecessor by digest."""

    sequence: int
    record_id: int
    accessed_by: Subject
    timestamp: datetime
    previous_digest: str
    digest: str


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a read-eligibility check."""

    record_id: int
    subject: Subject
    allowed: bool
    reason: DecisionReason
    owner: Optional[Subject] = None
