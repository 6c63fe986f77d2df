"""
Typed failures raised by the ledger core.

None of these are transient: retrying with the same inputs produces the
same outcome, so callers treat them as a hard stop.
"""

from typing import Optional


class LedgerError(Exception):
    """Base error for all ledger operations."""

    code = "ledger_error"

    def __init__(self, message: str, *, record_id: Optional[int] = None, subject: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.record_id = record_id
        self.subject = subject


class NotFoundError(LedgerError):
    """Raised when a record id has no corresponding creation event."""

    code = "not_found"


class UnauthorizedError(LedgerError):
    """Raised when the caller lacks the ownership, role or grant an operation needs."""

    code = "unauthorized"


class InvalidInputError(LedgerError):
    """Raised for malformed identifiers or empty required fields."""

    code = "invalid_input"


class ReplayError(LedgerError):
    """Raised when a journaled event cannot be applied to the ledger state."""

    code = "replay_conflict"
