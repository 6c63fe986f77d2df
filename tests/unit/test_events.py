"""Unit tests for ledger events and the outbox."""

import pytest
from pydantic import ValidationError

from medledger.kernel.ledger import (
    AccessGranted,
    LedgerEventType,
    Outbox,
    RecordCreated,
    Role,
    RoleGranted,
    event_from_payload,
)


def _created(record_id: int = 0) -> RecordCreated:
    return RecordCreated(record_id=record_id, owner="U1", data_hash=f"h{record_id}")


class TestOutbox:
    """Tests for Outbox."""

    def test_emit_assigns_sequence(self):
        outbox = Outbox()

        first = outbox.emit(_created(0))
        second = outbox.emit(_created(1))

        assert (first.sequence, second.sequence) == (0, 1)
        assert len(outbox) == 2

    def test_events_is_a_copy(self):
        outbox = Outbox()
        outbox.emit(_created())

        outbox.events.clear()

        assert len(outbox.events) == 1

    def test_unsubscribe(self):
        outbox = Outbox()
        seen = []
        unsubscribe = outbox.subscribe(seen.append)

        outbox.emit(_created(0))
        unsubscribe()
        unsubscribe()
        outbox.emit(_created(1))

        assert [e.record_id for e in seen] == [0]

    def test_subscriber_error_is_contained(self, caplog):
        outbox = Outbox()
        seen = []

        def broken(event):
            raise ValueError("boom")

        outbox.subscribe(broken)
        outbox.subscribe(seen.append)

        outbox.emit(_created())

        assert len(seen) == 1
        assert "Event subscriber failed" in caplog.text

    def test_restore_does_not_notify(self):
        outbox = Outbox()
        seen = []
        outbox.subscribe(seen.append)

        outbox.restore(_created().model_copy(update={"sequence": 0}))

        assert seen == []
        assert len(outbox) == 1

    def test_nested_captures(self):
        outbox = Outbox()

        with outbox.capture() as outer:
            outbox.emit(_created(0))
            with outbox.capture() as inner:
                outbox.emit(_created(1))
            outbox.emit(_created(2))

        assert [e.record_id for e in outer] == [0, 1, 2]
        assert [e.record_id for e in inner] == [1]

    def test_empty_captures_released_independently(self):
        outbox = Outbox()

        with outbox.capture() as first:
            with outbox.capture() as second:
                pass
            outbox.emit(_created())

        assert len(first) == 1
        assert second == []


class TestPayloads:

    def test_event_types(self):
        assert _created().event_type is LedgerEventType.RECORD_CREATED
        granted = AccessGranted(record_id=0, grantee="U2", granted_by="U1")
        assert granted.event_type is LedgerEventType.ACCESS_GRANTED

    def test_events_are_frozen(self):
        event = _created()

        with pytest.raises(ValidationError):
            event.owner = "U9"

    def test_payload_round_trip(self):
        event = Outbox().emit(RoleGranted(role=Role.PROVIDER, member="doc"))

        payload = event.model_dump(mode="json")
        rebuilt = event_from_payload(payload["event_type"], payload)

        assert payload["role"] == "provider"
        assert rebuilt == event

    def test_unknown_event_type(self):
        with pytest.raises(ValueError):
            event_from_payload("record.deleted", {})
