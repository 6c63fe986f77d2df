"""Unit tests for RecordStore."""

from datetime import datetime, timezone

import pytest

from medledger.kernel.ledger import NotFoundError, RecordCreated, ReplayError
from medledger.kernel.ledger.records import RecordStore
from medledger.kernel.ledger.types import Record


class TestRecordStore:
    """Tests for id allocation, lookup and the ownership index."""

    def test_ids_start_at_zero_and_increase(self, emit):
        """Ids are sequential with no gaps."""
        store = RecordStore(emit)

        ids = [store.create("U1", f"hash{i}") for i in range(5)]

        assert ids == [0, 1, 2, 3, 4]
        assert store.next_id == 5
        assert len(store) == 5

    def test_create_stores_record(self, emit):
        store = RecordStore(emit)
        created_at = datetime(2026, 3, 1, tzinfo=timezone.utc)

        record_id = store.create("U1", "hash1", created_at=created_at)
        record = store.get(record_id)

        assert record.owner == "U1"
        assert record.data_hash == "hash1"
        assert record.exists is True
        assert record.created_at == created_at

    def test_create_emits_record_created(self, emit, emitted):
        store = RecordStore(emit)

        store.create("U1", "hash1")

        assert len(emitted) == 1
        event = emitted[0]
        assert isinstance(event, RecordCreated)
        assert event.record_id == 0
        assert event.owner == "U1"

    def test_no_preconditions_on_data_hash(self, emit):
        """The store accepts any hash content; validation lives elsewhere."""
        store = RecordStore(emit)

        record_id = store.create("U1", "")

        assert store.get(record_id).data_hash == ""

    def test_get_missing_raises_not_found(self, emit):
        store = RecordStore(emit)

        assert store.exists(0) is False
        with pytest.raises(NotFoundError) as exc_info:
            store.get(0)
        assert exc_info.value.record_id == 0

    def test_records_of_preserves_creation_order(self, emit):
        store = RecordStore(emit)
        store.create("U1", "a")
        store.create("U2", "b")
        store.create("U1", "c")

        assert store.records_of("U1") == [0, 2]
        assert store.records_of("U2") == [1]
        assert store.records_of("U9") == []

    def test_records_of_returns_a_copy(self, emit):
        store = RecordStore(emit)
        store.create("U1", "a")

        store.records_of("U1").append(99)

        assert store.records_of("U1") == [0]

    def test_record_is_immutable(self, emit):
        store = RecordStore(emit)
        record = store.get(store.create("U1", "a"))

        with pytest.raises(AttributeError):
            record.owner = "U2"

    def test_restore_requires_allocation_order(self, emit):
        store = RecordStore(emit)
        created_at = datetime(2026, 3, 1, tzinfo=timezone.utc)

        store.restore(Record(id=0, data_hash="a", owner="U1", created_at=created_at))

        with pytest.raises(ReplayError):
            store.restore(Record(id=5, data_hash="b", owner="U1", created_at=created_at))
        assert store.next_id == 1
