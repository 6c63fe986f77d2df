"""
Permission matrix - explicit per-record read grants.
"""

from typing import Dict, List, Tuple

from medledger.kernel.ledger.errors import UnauthorizedError
from medledger.kernel.ledger.events import AccessGranted, AccessRevoked, Emit
from medledger.kernel.ledger.records import RecordStore
from medledger.kernel.ledger.types import Subject


class PermissionMatrix:
    """
    Boolean grants keyed by (grantee, record id), deny by default.

    Only the record's owner may grant or revoke. Admins, providers and
    existing grantees cannot, and the right is not delegable.
    """

    def __init__(self, records: RecordStore, emit: Emit):
        self._records = records
        self._emit = emit
        self._grants: Dict[Tuple[Subject, int], bool] = {}

    def grant(self, record_id: int, grantee: Subject, acting_as: Subject) -> None:
        """
        Allow ``grantee`` to read ``record_id``.

        Raises:
            NotFoundError: If the record does not exist
            UnauthorizedError: If ``acting_as`` is not the record owner
        """
        self._require_owner(record_id, acting_as)
        self._grants[(grantee, record_id)] = True
        self._emit(AccessGranted(record_id=record_id, grantee=grantee, granted_by=acting_as))

    def revoke(self, record_id: int, grantee: Subject, acting_as: Subject) -> None:
        """
        Withdraw a grant. Revoking a pair that was never granted is a no-op.

        Raises:
            NotFoundError: If the record does not exist
            UnauthorizedError: If ``acting_as`` is not the record owner
        """
        self._require_owner(record_id, acting_as)
        self._grants[(grantee, record_id)] = False
        self._emit(AccessRevoked(record_id=record_id, grantee=grantee, revoked_by=acting_as))

    def is_granted(self, record_id: int, subject: Subject) -> bool:
        return self._grants.get((subject, record_id), False)

    def grantees_of(self, record_id: int) -> List[Subject]:
        """Subjects currently holding a grant on ``record_id``, sorted."""
        return sorted(
            grantee
            for (grantee, rid), granted in self._grants.items()
            if rid == record_id and granted
        )

    def _require_owner(self, record_id: int, acting_as: Subject) -> None:
        record = self._records.get(record_id)
        if record.owner != acting_as:
            raise UnauthorizedError(
                f"Only the owner of record {record_id} may change its grants",
                record_id=record_id,
                subject=acting_as,
            )

    def _set(self, record_id: int, grantee: Subject, granted: bool) -> None:
        # Replay hook: the journal already proved ownership
        self._grants[(grantee, record_id)] = granted
