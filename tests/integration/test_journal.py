"""Integration tests for the ledger journal against SQLite."""

import asyncio
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from medledger.database import build_engine, build_session_maker
from medledger.kernel.events import LedgerJournal, LedgerWriter, restore_ledger
from medledger.kernel.ledger import (
    Ledger,
    RecordCreated,
    ReplayError,
    Role,
    UnauthorizedError,
)
from medledger.kernel.models import Base, LedgerEventLog


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Session factory over a fresh file-based SQLite journal."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'journal.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_maker(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


async def _journal_calls(session: AsyncSession, ledger: Ledger, *calls) -> None:
    """Run each ledger call inside a capture and journal what it emitted."""
    journal = LedgerJournal(session)
    for call in calls:
        with ledger.capture() as events:
            call()
        await journal.append_many(events)
    await session.commit()


class TestLedgerJournal:
    """Tests for LedgerJournal."""

    async def test_append_and_load(self, db_session: AsyncSession, ledger: Ledger):
        await _journal_calls(
            db_session,
            ledger,
            lambda: ledger.create_record("U1", "hash1"),
            lambda: ledger.grant_access("U1", 0, "U2"),
        )
        # The bootstrap events were emitted before any capture
        journal = LedgerJournal(db_session)

        loaded = await journal.load()

        assert [e.sequence for e in loaded] == [2, 3]
        assert isinstance(loaded[0], RecordCreated)
        assert loaded == ledger.events[2:]

    async def test_load_after(self, db_session: AsyncSession, ledger: Ledger):
        await _journal_calls(
            db_session,
            ledger,
            lambda: ledger.create_record("U1", "a"),
            lambda: ledger.create_record("U1", "b"),
            lambda: ledger.create_record("U1", "c"),
        )

        loaded = await LedgerJournal(db_session).load(after=3)

        assert [e.record_id for e in loaded] == [2]

    async def test_count_by_record(self, db_session: AsyncSession, ledger: Ledger):
        await _journal_calls(
            db_session,
            ledger,
            lambda: ledger.create_record("U1", "a"),
            lambda: ledger.create_record("U1", "b"),
            lambda: ledger.read_record("U1", 1),
        )
        journal = LedgerJournal(db_session)

        assert await journal.count() == 3
        assert await journal.count(record_id=1) == 2

    async def test_rows_are_indexed_by_subject(self, db_session: AsyncSession, ledger: Ledger):
        await _journal_calls(
            db_session,
            ledger,
            lambda: ledger.create_record("U1", "a"),
            lambda: ledger.grant_access("U1", 0, "U2"),
        )

        rows = [await db_session.get(LedgerEventLog, seq) for seq in (2, 3)]

        assert [r.subject for r in rows] == ["U1", "U2"]
        assert [r.event_type for r in rows] == ["record.created", "access.granted"]

    async def test_unsequenced_event_rejected(self, db_session: AsyncSession):
        with pytest.raises(ValueError):
            await LedgerJournal(db_session).append(
                RecordCreated(record_id=0, owner="U1", data_hash="h")
            )


class TestRestoreLedger:
    """Tests for restore_ledger."""

    async def test_empty_journal_seeds_admin(self, session_maker):
        async with session_maker() as session:
            ledger = await restore_ledger(session, "A")
            await session.commit()

        assert ledger.roles_of("A") == frozenset({Role.ADMIN, Role.PROVIDER})
        async with session_maker() as session:
            assert await LedgerJournal(session).count() == 2

    async def test_round_trip(self, session_maker, clock):
        async with session_maker() as session:
            ledger = await restore_ledger(session, "A", clock=clock)
            await _journal_calls(
                session,
                ledger,
                lambda: ledger.create_record("U1", "hash1"),
                lambda: ledger.grant_access("U1", 0, "U2"),
                lambda: ledger.read_record("U2", 0),
                lambda: ledger.revoke_access("U1", 0, "U2"),
                lambda: ledger.read_record("A", 0),
            )

        async with session_maker() as session:
            restored = await restore_ledger(session, "A", clock=clock)
            await session.commit()

        assert restored.get_record(0).owner == "U1"
        assert restored.is_granted(0, "U2") is False
        assert restored.access_log.entries() == ledger.access_log.entries()
        assert restored.verify_access_log() is True
        with pytest.raises(UnauthorizedError):
            restored.read_record("U2", 0)

    async def test_restart_is_idempotent(self, session_maker):
        for _ in range(3):
            async with session_maker() as session:
                await restore_ledger(session, "A")
                await session.commit()

        async with session_maker() as session:
            assert await LedgerJournal(session).count() == 2

    async def test_new_admin_is_seeded_after_existing_events(self, session_maker):
        async with session_maker() as session:
            await restore_ledger(session, "A")
            await session.commit()
        async with session_maker() as session:
            restored = await restore_ledger(session, "B")
            await session.commit()

        assert restored.has_role(Role.ADMIN, "A")
        assert restored.has_role(Role.ADMIN, "B")
        assert [e.sequence for e in restored.events] == [0, 1, 2, 3]

    async def test_gap_in_journal_fails(self, session_maker, ledger: Ledger):
        async with session_maker() as session:
            journal = LedgerJournal(session)
            ledger.create_record("U1", "a")
            ledger.create_record("U1", "b")
            events = ledger.events
            await journal.append_many([events[0], events[1], events[3]])
            await session.commit()

        async with session_maker() as session:
            with pytest.raises(ReplayError):
                await restore_ledger(session, "A")

    async def test_edited_read_row_fails_restore(self, session_maker):
        async with session_maker() as session:
            ledger = await restore_ledger(session, "A")
            await _journal_calls(
                session,
                ledger,
                lambda: ledger.create_record("U1", "hash1"),
                lambda: ledger.grant_access("U1", 0, "U2"),
                lambda: ledger.read_record("U1", 0),
                lambda: ledger.read_record("U2", 0),
            )
            last = ledger.events[-1]

        async with session_maker() as session:
            payload = dict(last.model_dump(mode="json"), accessed_by="U1")
            await session.execute(
                update(LedgerEventLog)
                .where(LedgerEventLog.sequence == last.sequence)
                .values(payload=payload, subject="U1")
            )
            await session.commit()

        async with session_maker() as session:
            with pytest.raises(ReplayError):
                await restore_ledger(session, "A")


def _fail_next_commit(session: AsyncSession) -> None:
    """Make the session's next commit raise, as a lost connection would."""
    original = session.commit

    async def commit():
        session.commit = original
        raise ConnectionError("journal unavailable")

    session.commit = commit


class TestLedgerWriter:
    """Tests for LedgerWriter."""

    async def test_commits_call_events(self, session_maker):
        async with session_maker() as session:
            ledger = await restore_ledger(session, "A")
            await session.commit()
            writer = LedgerWriter(ledger, session, asyncio.Lock())

            record_id = await writer.run(ledger.create_record, "U1", "hash1")

        assert record_id == 0
        async with session_maker() as session:
            assert await LedgerJournal(session).count(record_id=0) == 1

    async def test_ledger_errors_pass_through(self, session_maker):
        async with session_maker() as session:
            ledger = await restore_ledger(session, "A")
            await session.commit()
            writer = LedgerWriter(ledger, session, asyncio.Lock())

            with pytest.raises(UnauthorizedError):
                await writer.run(ledger.grant_role, "U1", Role.PROVIDER, "U1")

        assert len(ledger.events) == 2

    async def test_failed_commit_undoes_call(self, session_maker):
        async with session_maker() as session:
            ledger = await restore_ledger(session, "A")
            await session.commit()
            writer = LedgerWriter(ledger, session, asyncio.Lock())
            await writer.run(ledger.create_record, "U1", "hash1")

            _fail_next_commit(session)
            with pytest.raises(ConnectionError):
                await writer.run(ledger.read_record, "U1", 0)

            assert len(ledger.access_log) == 0

            # The next call reuses the freed sequence number
            assert await writer.run(ledger.create_record, "U1", "hash2") == 1
            assert ledger.list_owned_records("U1") == [0, 1]

        async with session_maker() as session:
            restored = await restore_ledger(session, "A")

        assert restored.list_owned_records("U1") == [0, 1]
        assert len(restored.access_log) == 0
        assert len(restored.events) == len(ledger.events)

    async def test_journal_disabled_skips_writes(self, session_maker):
        async with session_maker() as session:
            ledger = await restore_ledger(session, "A")
            await session.commit()
            writer = LedgerWriter(ledger, session, asyncio.Lock(), journal_enabled=False)

            await writer.run(ledger.create_record, "U1", "hash1")

        async with session_maker() as session:
            assert await LedgerJournal(session).count() == 2
