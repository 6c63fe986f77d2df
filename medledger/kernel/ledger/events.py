"""
Ledger notifications using Pydantic for validation.

Every state change emits one of these. They are recorded on the ledger's
outbox in emission order, dispatched to subscribers, and are the unit of
the persistence journal.
"""

import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Type

from pydantic import BaseModel, ConfigDict, Field

from medledger.kernel.ledger.types import Role
from medledger.logging_config import get_logger

logger = get_logger(__name__)


class LedgerEventType(str, Enum):
    """All notification types the ledger emits."""

    RECORD_CREATED = "record.created"
    ACCESS_GRANTED = "access.granted"
    ACCESS_REVOKED = "access.revoked"
    RECORD_ACCESSED = "record.accessed"
    ROLE_GRANTED = "role.granted"
    ROLE_REVOKED = "role.revoked"


class LedgerEvent(BaseModel):
    """Base event payload structure."""

    model_config = ConfigDict(frozen=True)

    event_type: LedgerEventType
    sequence: int = -1
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# Record events

class RecordCreated(LedgerEvent):
    """A record was registered."""

    event_type: LedgerEventType = LedgerEventType.RECORD_CREATED
    record_id: int
    owner: str
    data_hash: str


class RecordAccessed(LedgerEvent):
    """A record was read successfully."""

    event_type: LedgerEventType = LedgerEventType.RECORD_ACCESSED
    record_id: int
    accessed_by: str
    digest: str  # access-log entry digest, checked on replay


# Grant events

class AccessGranted(LedgerEvent):
    """An owner granted read access on a record."""

    event_type: LedgerEventType = LedgerEventType.ACCESS_GRANTED
    record_id: int
    grantee: str
    granted_by: str


class AccessRevoked(LedgerEvent):
    """An owner revoked read access on a record."""

    event_type: LedgerEventType = LedgerEventType.ACCESS_REVOKED
    record_id: int
    grantee: str
    revoked_by: str


# Role events

class RoleGranted(LedgerEvent):
    """A subject joined a role."""

    event_type: LedgerEventType = LedgerEventType.ROLE_GRANTED
    role: Role
    member: str


class RoleRevoked(LedgerEvent):
    """A subject left a role."""

    event_type: LedgerEventType = LedgerEventType.ROLE_REVOKED
    role: Role
    member: str


EVENT_MODELS: Dict[LedgerEventType, Type[LedgerEvent]] = {
    LedgerEventType.RECORD_CREATED: RecordCreated,
    LedgerEventType.RECORD_ACCESSED: RecordAccessed,
    LedgerEventType.ACCESS_GRANTED: AccessGranted,
    LedgerEventType.ACCESS_REVOKED: AccessRevoked,
    LedgerEventType.ROLE_GRANTED: RoleGranted,
    LedgerEventType.ROLE_REVOKED: RoleRevoked,
}


def event_from_payload(event_type: str, payload: dict) -> LedgerEvent:
    """Rebuild a typed event from its journaled JSON payload."""
    model = EVENT_MODELS[LedgerEventType(event_type)]
    return model.model_validate(payload)


Emit = Callable[[LedgerEvent], LedgerEvent]
Subscriber = Callable[[LedgerEvent], None]


class Outbox:
    """
    Ordered, append-only record of every emitted event.

    Usage:
        outbox = Outbox()
        outbox.subscribe(print)
        with outbox.capture() as captured:
            outbox.emit(RecordCreated(record_id=0, owner="u1", data_hash="h"))
        # captured holds the sequenced event
    """

    def __init__(self):
        self._events: List[LedgerEvent] = []
        self._subscribers: List[Subscriber] = []
        self._captures: List[List[LedgerEvent]] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> List[LedgerEvent]:
        return list(self._events)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def emit(self, event: LedgerEvent) -> LedgerEvent:
        """Assign the next sequence number, record the event and notify subscribers."""
        with self._lock:
            event = event.model_copy(update={"sequence": len(self._events)})
            self._events.append(event)
            for captured in self._captures:
                captured.append(event)

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                # Notifications are for observability, never control flow
                logger.exception(
                    "Event subscriber failed",
                    extra={"event_type": event.event_type.value, "sequence": event.sequence},
                )
        return event

    def reset(self) -> None:
        """Drop every recorded event; subscribers stay registered."""
        with self._lock:
            self._events.clear()

    def restore(self, event: LedgerEvent) -> None:
        """Append an already-sequenced event without notifying subscribers."""
        with self._lock:
            self._events.append(event)

    def capture(self) -> "_Capture":
        """Collect the events emitted while the returned context is active."""
        return _Capture(self)


class _Capture:
    def __init__(self, outbox: Outbox):
        self._outbox = outbox
        self.events: List[LedgerEvent] = []

    def __enter__(self) -> List[LedgerEvent]:
        with self._outbox._lock:
            self._outbox._captures.append(self.events)
        return self.events

    def __exit__(self, *exc) -> None:
        with self._outbox._lock:
            # Identity, not equality: two empty captures compare equal
            self._outbox._captures[:] = [
                c for c in self._outbox._captures if c is not self.events
            ]
