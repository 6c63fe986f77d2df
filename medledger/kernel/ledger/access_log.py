"""
Append-only access log with a SHA-256 digest chain.

Each entry's digest covers the previous digest plus its own fields, so
altering, dropping or reordering any entry breaks every digest after it.
"""

import hashlib
from datetime import datetime
from typing import Iterable, Iterator, List, Tuple

from medledger.kernel.ledger.types import GENESIS_DIGEST, AccessLogEntry, Subject


def compute_entry_digest(
    previous_digest: str,
    sequence: int,
    record_id: int,
    accessed_by: Subject,
    timestamp: datetime,
) -> str:
    """Digest of one log entry chained to its predecessor."""
    material = "|".join([
        previous_digest,
        str(sequence),
        str(record_id),
        accessed_by,
        timestamp.isoformat(),
    ])
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class _RecordEntries:
    """Restartable view over one record's entries; re-iterating starts over."""

    def __init__(self, entries: List[AccessLogEntry], record_id: int):
        self._entries = entries
        self._record_id = record_id

    def __iter__(self) -> Iterator[AccessLogEntry]:
        # Bound to the length at iteration start so appends mid-walk stay out
        for entry in self._entries[:len(self._entries)]:
            if entry.record_id == self._record_id:
                yield entry


class AccessLog:
    """
    The audit trail of successful reads.

    Entries are never modified or removed; insertion order is audit order.
    AccessGate is the sole writer.
    """

    def __init__(self):
        self._entries: List[AccessLogEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def head_digest(self) -> str:
        return self._entries[-1].digest if self._entries else GENESIS_DIGEST

    def next_digest(self, record_id: int, accessed_by: Subject, timestamp: datetime) -> str:
        """Digest the next appended entry with these fields would carry."""
        return compute_entry_digest(
            self.head_digest, len(self._entries), record_id, accessed_by, timestamp
        )

    def append(self, record_id: int, accessed_by: Subject, timestamp: datetime) -> AccessLogEntry:
        """Append one entry. Never fails."""
        sequence = len(self._entries)
        previous = self.head_digest
        entry = AccessLogEntry(
            sequence=sequence,
            record_id=record_id,
            accessed_by=accessed_by,
            timestamp=timestamp,
            previous_digest=previous,
            digest=compute_entry_digest(previous, sequence, record_id, accessed_by, timestamp),
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> Tuple[AccessLogEntry, ...]:
        return tuple(self._entries)

    def entries_for(self, record_id: int) -> Iterable[AccessLogEntry]:
        """Lazy view of one record's entries in append order."""
        return _RecordEntries(self._entries, record_id)

    def verify(self) -> bool:
        """Recompute the digest chain; False on the first mismatch."""
        return verify_chain(self._entries)


def verify_chain(entries: Iterable[AccessLogEntry]) -> bool:
    """Check sequence numbering and digests of an ordered entry list."""
    previous = GENESIS_DIGEST
    for expected_sequence, entry in enumerate(entries):
        if entry.sequence != expected_sequence or entry.previous_digest != previous:
            return False
        digest = compute_entry_digest(
            previous, entry.sequence, entry.record_id, entry.accessed_by, entry.timestamp
        )
        if digest != entry.digest:
            return False
        previous = entry.digest
    return True
