"""
Ledger - the interface surface over the record-access core.

All state lives on one explicit Ledger object. Every operation runs under a
single re-entrant lock, which serves as the global sequencer for id
allocation, grant changes and access-log appends.
"""

import threading
from contextlib import contextmanager
from typing import Callable, FrozenSet, Iterable, Iterator, List, Optional

from medledger.kernel.ledger.access_log import AccessLog
from medledger.kernel.ledger.clock import Clock, MonotonicClock
from medledger.kernel.ledger.errors import InvalidInputError, ReplayError, UnauthorizedError
from medledger.kernel.ledger.events import (
    AccessGranted,
    AccessRevoked,
    LedgerEvent,
    Outbox,
    RecordAccessed,
    RecordCreated,
    RoleGranted,
    RoleRevoked,
    Subscriber,
)
from medledger.kernel.ledger.gate import AccessGate
from medledger.kernel.ledger.permissions import PermissionMatrix
from medledger.kernel.ledger.records import RecordStore
from medledger.kernel.ledger.roles import RoleRegistry
from medledger.kernel.ledger.types import (
    AccessDecision,
    AccessLogEntry,
    Record,
    Role,
    Subject,
)
from medledger.logging_config import get_logger

logger = get_logger(__name__)


def _require_subject(value: Subject, field: str = "subject") -> Subject:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} must be a non-empty identifier")
    return value


def _require_record_id(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInputError("record_id must be a non-negative integer")
    return value


def _require_role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise InvalidInputError(f"Unknown role: {value!r}")


class Ledger:
    """
    Record store with owner-controlled grants and an audited read path.

    Usage:
        ledger = Ledger(admin="A")
        record_id = ledger.create_record("U1", "hash1")
        ledger.grant_access("U1", record_id, "U2")
        ledger.read_record("U2", record_id)  # -> "hash1", one log entry
    """

    def __init__(self, admin: Optional[Subject] = None, clock: Optional[Clock] = None):
        self._lock = threading.RLock()
        # Injected clocks are clamped too, so replay can raise the floor
        self._clock = clock if isinstance(clock, MonotonicClock) else MonotonicClock(clock)
        self.outbox = Outbox()
        self._build()
        if admin is not None:
            self.bootstrap(admin)

    def _build(self) -> None:
        """(Re)create the state components around the existing outbox."""
        self.roles = RoleRegistry(self.outbox.emit)
        self.records = RecordStore(self.outbox.emit)
        self.permissions = PermissionMatrix(self.records, self.outbox.emit)
        self.access_log = AccessLog()
        self.gate = AccessGate(
            self.roles,
            self.records,
            self.permissions,
            self.access_log,
            self.outbox.emit,
            self._clock,
        )

    # Bootstrap & notifications

    def bootstrap(self, admin: Subject) -> None:
        """Seed ``admin`` with the admin and provider roles (idempotent)."""
        _require_subject(admin, "admin")
        with self._lock:
            changed = self.roles.grant_role(Role.ADMIN, admin)
            changed = self.roles.grant_role(Role.PROVIDER, admin) or changed
        if changed:
            logger.info("Bootstrap admin seeded", extra={"subject": admin})

    @property
    def events(self) -> List[LedgerEvent]:
        return self.outbox.events

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        return self.outbox.subscribe(subscriber)

    @contextmanager
    def capture(self) -> Iterator[List[LedgerEvent]]:
        """
        Hold the sequencer and collect the events emitted inside the block.

        Used by the persistence layer to journal exactly what one call produced.
        """
        with self._lock:
            with self.outbox.capture() as events:
                yield events

    # Records

    def create_record(self, caller: Subject, data_hash: str) -> int:
        _require_subject(caller, "caller")
        if not isinstance(data_hash, str) or not data_hash:
            raise InvalidInputError("data_hash must not be empty")
        with self._lock:
            record_id = self.records.create(caller, data_hash, created_at=self._clock())
        logger.info("Record created", extra={"record_id": record_id, "subject": caller})
        return record_id

    def get_record(self, record_id: int) -> Record:
        return self.records.get(_require_record_id(record_id))

    def list_owned_records(self, caller: Subject) -> List[int]:
        _require_subject(caller, "caller")
        with self._lock:
            return self.records.records_of(caller)

    # Grants

    def grant_access(self, caller: Subject, record_id: int, grantee: Subject) -> None:
        _require_subject(caller, "caller")
        _require_record_id(record_id)
        _require_subject(grantee, "grantee")
        with self._lock:
            self.permissions.grant(record_id, grantee, acting_as=caller)
        logger.info(
            "Access granted",
            extra={"record_id": record_id, "subject": caller, "grantee": grantee},
        )

    def revoke_access(self, caller: Subject, record_id: int, grantee: Subject) -> None:
        _require_subject(caller, "caller")
        _require_record_id(record_id)
        _require_subject(grantee, "grantee")
        with self._lock:
            self.permissions.revoke(record_id, grantee, acting_as=caller)
        logger.info(
            "Access revoked",
            extra={"record_id": record_id, "subject": caller, "grantee": grantee},
        )

    def is_granted(self, record_id: int, subject: Subject) -> bool:
        return self.permissions.is_granted(record_id, subject)

    def list_grantees(self, caller: Subject, record_id: int) -> List[Subject]:
        """Current grantees of a record; owner only."""
        _require_subject(caller, "caller")
        _require_record_id(record_id)
        with self._lock:
            record = self.records.get(record_id)
            if record.owner != caller:
                raise UnauthorizedError(
                    f"Only the owner of record {record_id} may list its grants",
                    record_id=record_id,
                    subject=caller,
                )
            return self.permissions.grantees_of(record_id)

    # Reads

    def read_record(self, caller: Subject, record_id: int) -> str:
        _require_subject(caller, "caller")
        _require_record_id(record_id)
        with self._lock:
            return self.gate.read(record_id, caller)

    def check_access(self, caller: Subject, record_id: int) -> AccessDecision:
        """Eligibility without auditing; never raises for a denial."""
        _require_subject(caller, "caller")
        _require_record_id(record_id)
        with self._lock:
            return self.gate.evaluate(record_id, caller)

    def list_access_log(self, record_id: int) -> List[AccessLogEntry]:
        """
        Entries for one record in append order.

        No eligibility check here: the wrapping layer applies the read rule.
        """
        _require_record_id(record_id)
        with self._lock:
            self.records.get(record_id)
            return list(self.access_log.entries_for(record_id))

    def verify_access_log(self) -> bool:
        with self._lock:
            return self.access_log.verify()

    # Roles

    def has_role(self, role: Role, subject: Subject) -> bool:
        return self.roles.has_role(_require_role(role), subject)

    def roles_of(self, subject: Subject) -> FrozenSet[Role]:
        return self.roles.roles_of(_require_subject(subject))

    def grant_role(self, caller: Subject, role: Role, subject: Subject) -> None:
        role = _require_role(role)
        self._require_admin(caller)
        _require_subject(subject)
        with self._lock:
            if self.roles.grant_role(role, subject):
                logger.info(
                    "Role granted",
                    extra={"role": role.value, "subject": subject, "granted_by": caller},
                )

    def revoke_role(self, caller: Subject, role: Role, subject: Subject) -> None:
        role = _require_role(role)
        self._require_admin(caller)
        _require_subject(subject)
        with self._lock:
            if self.roles.revoke_role(role, subject):
                logger.info(
                    "Role revoked",
                    extra={"role": role.value, "subject": subject, "revoked_by": caller},
                )

    def _require_admin(self, caller: Subject) -> None:
        _require_subject(caller, "caller")
        if not self.roles.has_role(Role.ADMIN, caller):
            raise UnauthorizedError("Admin role required", subject=caller)

    # Replay

    def apply(self, event: LedgerEvent) -> None:
        """
        Re-apply one journaled event to this ledger's state.

        Events must arrive in sequence order with no gaps. Subscribers are not
        notified: replay restores state, it does not re-announce it.
        """
        with self._lock:
            if event.sequence != len(self.outbox):
                raise ReplayError(
                    f"Event {event.sequence} replayed out of order, expected {len(self.outbox)}"
                )
            if isinstance(event, RecordCreated):
                self._clock.advance_to(event.occurred_at)
                self.records.restore(Record(
                    id=event.record_id,
                    data_hash=event.data_hash,
                    owner=event.owner,
                    created_at=event.occurred_at,
                ))
            elif isinstance(event, AccessGranted):
                self._require_replayed_owner(event.record_id, event.granted_by)
                self.permissions._set(event.record_id, event.grantee, True)
            elif isinstance(event, AccessRevoked):
                self._require_replayed_owner(event.record_id, event.revoked_by)
                self.permissions._set(event.record_id, event.grantee, False)
            elif isinstance(event, RecordAccessed):
                self.records.get(event.record_id)
                expected = self.access_log.next_digest(
                    event.record_id, event.accessed_by, event.occurred_at
                )
                if expected != event.digest:
                    raise ReplayError(
                        f"Access-log digest mismatch at event {event.sequence}",
                        record_id=event.record_id,
                        subject=event.accessed_by,
                    )
                self._clock.advance_to(event.occurred_at)
                self.gate._audit(event.record_id, event.accessed_by, event.occurred_at)
            elif isinstance(event, RoleGranted):
                self.roles._set(event.role, event.member)
            elif isinstance(event, RoleRevoked):
                self.roles._unset(event.role, event.member)
            else:
                raise ReplayError(f"Unsupported event type: {event.event_type}")
            self.outbox.restore(event)

    def replay(self, events: Iterable[LedgerEvent]) -> int:
        """Apply events in order; returns how many were applied."""
        count = 0
        for event in events:
            self.apply(event)
            count += 1
        return count

    def rollback_to(self, mark: int) -> int:
        """
        Discard every event from sequence ``mark`` on and the state they built.

        Used when the journal write for a call fails, so memory never runs
        ahead of the durable copy. State is rebuilt by replaying the events
        before ``mark``; subscribers are not notified.

        Returns:
            Number of events discarded
        """
        with self._lock:
            if mark >= len(self.outbox):
                return 0
            events = self.outbox.events
            self.outbox.reset()
            self._build()
            self.replay(events[:mark])

        discarded = len(events) - mark
        logger.warning(
            "Ledger rolled back",
            extra={"sequence": mark, "discarded": discarded},
        )
        return discarded

    def _require_replayed_owner(self, record_id: int, actor: Subject) -> None:
        if self.records.get(record_id).owner != actor:
            raise ReplayError(
                f"Journaled grant change on record {record_id} by a non-owner",
                record_id=record_id,
                subject=actor,
            )
