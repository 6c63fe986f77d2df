"""
Record store - id allocation, record table and per-owner index.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from medledger.kernel.ledger.errors import NotFoundError, ReplayError
from medledger.kernel.ledger.events import Emit, RecordCreated
from medledger.kernel.ledger.types import Record, Subject


class RecordStore:
    """
    Owns the mapping of record ids to Records and the ownership index.

    Ids are allocated sequentially from 0 and never reused, so historical
    references such as access-log entries stay unambiguous.
    """

    def __init__(self, emit: Emit):
        self._emit = emit
        self._records: Dict[int, Record] = {}
        self._by_owner: Dict[Subject, List[int]] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._records)

    @property
    def next_id(self) -> int:
        return self._next_id

    def create(
        self,
        owner: Subject,
        data_hash: str,
        created_at: Optional[datetime] = None,
    ) -> int:
        """
        Register a record and return its id.

        No preconditions on ``data_hash``: content validation belongs to the
        interface surface.

        Args:
            owner: Subject creating the record
            data_hash: Opaque reference to externally stored content
            created_at: Creation time (defaults to now, UTC)

        Returns:
            The newly allocated record id
        """
        record_id = self._next_id
        created_at = created_at or datetime.now(timezone.utc)
        self._store(Record(id=record_id, data_hash=data_hash, owner=owner, created_at=created_at))
        self._emit(RecordCreated(
            record_id=record_id,
            owner=owner,
            data_hash=data_hash,
            occurred_at=created_at,
        ))
        return record_id

    def exists(self, record_id: int) -> bool:
        record = self._records.get(record_id)
        return record is not None and record.exists

    def get(self, record_id: int) -> Record:
        """Return the record or raise NotFoundError."""
        record = self._records.get(record_id)
        if record is None or not record.exists:
            raise NotFoundError(f"Record {record_id} not found", record_id=record_id)
        return record

    def records_of(self, subject: Subject) -> List[int]:
        """Ids created by ``subject``, in creation order."""
        return list(self._by_owner.get(subject, ()))

    def restore(self, record: Record) -> None:
        """Re-insert a journaled record; ids must arrive in allocation order."""
        if record.id != self._next_id:
            raise ReplayError(
                f"Record {record.id} replayed out of order, expected {self._next_id}",
                record_id=record.id,
            )
        self._store(record)

    def _store(self, record: Record) -> None:
        self._records[record.id] = record
        self._by_owner.setdefault(record.owner, []).append(record.id)
        self._next_id = record.id + 1
