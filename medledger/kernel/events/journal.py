"""
Ledger journal - durable, append-only storage of ledger events.

Every event a ledger operation emits is appended here in the same
transaction as the HTTP call that produced it. At startup the journal is
replayed into a fresh Ledger to rebuild records, grants, roles and the
access log.
"""

import asyncio
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from medledger.kernel.ledger.clock import Clock
from medledger.kernel.ledger.events import (
    AccessGranted,
    AccessRevoked,
    LedgerEvent,
    RecordAccessed,
    RecordCreated,
    RoleGranted,
    RoleRevoked,
    event_from_payload,
)
from medledger.kernel.ledger.ledger import Ledger
from medledger.kernel.models.ledger_event import LedgerEventLog
from medledger.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _event_subject(event: LedgerEvent) -> str:
    """The subject an event is about, for the indexed column."""
    if isinstance(event, RecordCreated):
        return event.owner
    if isinstance(event, RecordAccessed):
        return event.accessed_by
    if isinstance(event, (AccessGranted, AccessRevoked)):
        return event.grantee
    if isinstance(event, (RoleGranted, RoleRevoked)):
        return event.member
    raise TypeError(f"Unsupported event type: {type(event).__name__}")


class LedgerJournal:
    """
    Service for reading and writing the ledger event journal.

    Usage:
        journal = LedgerJournal(session)
        with ledger.capture() as events:
            ledger.create_record(caller, data_hash)
        await journal.append_many(events)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, event: LedgerEvent) -> LedgerEventLog:
        """
        Append one sequenced event.

        Args:
            event: An event already sequenced by the ledger outbox

        Returns:
            The created LedgerEventLog row
        """
        if event.sequence < 0:
            raise ValueError("Only sequenced events can be journaled")

        row = LedgerEventLog(
            sequence=event.sequence,
            event_type=event.event_type.value,
            record_id=getattr(event, "record_id", None),
            subject=_event_subject(event),
            payload=event.model_dump(mode="json"),
            occurred_at=event.occurred_at,
        )
        self.session.add(row)
        # Caller commits (get_db commits at the end of the request)
        return row

    async def append_many(self, events: Iterable[LedgerEvent]) -> List[LedgerEventLog]:
        rows = [await self.append(event) for event in events]
        if rows:
            await self.session.flush()
            logger.debug(
                "Journaled ledger events",
                extra={"first_sequence": rows[0].sequence, "count": len(rows)},
            )
        return rows

    async def load(self, after: Optional[int] = None) -> List[LedgerEvent]:
        """
        Load journaled events in sequence order.

        Args:
            after: Only return events with a sequence greater than this

        Returns:
            Typed ledger events, oldest first
        """
        query = select(LedgerEventLog).order_by(LedgerEventLog.sequence)
        if after is not None:
            query = query.where(LedgerEventLog.sequence > after)

        result = await self.session.execute(query)
        return [
            event_from_payload(row.event_type, row.payload)
            for row in result.scalars().all()
        ]

    async def count(self, record_id: Optional[int] = None) -> int:
        """Count journaled events, optionally for one record."""
        query = select(func.count(LedgerEventLog.sequence))
        if record_id is not None:
            query = query.where(LedgerEventLog.record_id == record_id)

        result = await self.session.execute(query)
        return result.scalar() or 0


class LedgerWriter:
    """
    Runs one ledger call and commits the events it produced.

    Calls are serialised by an asyncio lock held until the journal commit
    finishes, so sequence numbers reach the journal in order. If journaling
    fails the ledger is rolled back to where the call started: a failed call
    leaves neither memory nor the journal changed.

    Usage:
        writer = LedgerWriter(ledger, session, lock)
        record_id = await writer.run(ledger.create_record, caller, data_hash)
    """

    def __init__(
        self,
        ledger: Ledger,
        session: AsyncSession,
        lock: asyncio.Lock,
        journal_enabled: bool = True,
    ):
        self.ledger = ledger
        self.session = session
        self.lock = lock
        self.journal_enabled = journal_enabled

    async def run(self, operation: Callable[..., T], *args: Any) -> T:
        async with self.lock:
            mark = len(self.ledger.outbox)
            try:
                with self.ledger.capture() as events:
                    result = operation(*args)
                if events and self.journal_enabled:
                    await LedgerJournal(self.session).append_many(events)
                    await self.session.commit()
            except Exception:
                if len(self.ledger.outbox) > mark:
                    self.ledger.rollback_to(mark)
                    await self.session.rollback()
                    logger.exception(
                        "Journal write failed; ledger call undone",
                        extra={"sequence": mark},
                    )
                raise
            return result


async def restore_ledger(
    session: AsyncSession,
    admin: str,
    clock: Optional[Clock] = None,
) -> Ledger:
    """
    Rebuild a Ledger from the journal and seed the bootstrap admin.

    Seeding is idempotent: on a journal that already holds the admin's roles
    it emits nothing. Any seed events are journaled; the caller commits.

    Args:
        session: Session used to read and extend the journal
        admin: Subject to hold the admin and provider roles
        clock: Timestamp source for new access-log entries

    Returns:
        A ledger whose state matches the journal
    """
    journal = LedgerJournal(session)
    ledger = Ledger(clock=clock)

    replayed = ledger.replay(await journal.load())

    with ledger.capture() as seeded:
        ledger.bootstrap(admin)
    await journal.append_many(seeded)

    logger.info(
        "Ledger restored from journal",
        extra={
            "events": replayed,
            "records": len(ledger.records),
            "access_log_entries": len(ledger.access_log),
        },
    )
    return ledger
