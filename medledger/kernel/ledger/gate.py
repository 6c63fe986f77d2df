"""
Access gate - the enforcement point for record reads.
"""

from medledger.kernel.ledger.access_log import AccessLog
from medledger.kernel.ledger.clock import Clock
from medledger.kernel.ledger.errors import UnauthorizedError
from medledger.kernel.ledger.events import Emit, RecordAccessed
from medledger.kernel.ledger.permissions import PermissionMatrix
from medledger.kernel.ledger.records import RecordStore
from medledger.kernel.ledger.roles import RoleRegistry
from medledger.kernel.ledger.types import (
    AccessDecision,
    AccessLogEntry,
    DecisionReason,
    Role,
    Subject,
)
from medledger.logging_config import get_logger

logger = get_logger(__name__)


class AccessGate:
    """
    Decides read eligibility and writes the audit trail.

    A caller may read a record iff they:
    1. Own it
    2. Hold the provider role (universal read override)
    3. Hold an explicit grant for that record

    The admin role alone does not bypass ownership. Eligibility is evaluated
    fresh on every call; nothing is cached.
    """

    def __init__(
        self,
        roles: RoleRegistry,
        records: RecordStore,
        permissions: PermissionMatrix,
        access_log: AccessLog,
        emit: Emit,
        clock: Clock,
    ):
        self._roles = roles
        self._records = records
        self._permissions = permissions
        self._access_log = access_log
        self._emit = emit
        self._clock = clock

    def evaluate(self, record_id: int, caller: Subject) -> AccessDecision:
        """Structured read decision with no side effects."""
        if not self._records.exists(record_id):
            return AccessDecision(
                record_id=record_id,
                subject=caller,
                allowed=False,
                reason=DecisionReason.NOT_FOUND,
            )

        owner = self._records.get(record_id).owner
        if caller == owner:
            reason = DecisionReason.OWNER
        elif self._roles.has_role(Role.PROVIDER, caller):
            reason = DecisionReason.PROVIDER
        elif self._permissions.is_granted(record_id, caller):
            reason = DecisionReason.GRANT
        else:
            reason = DecisionReason.DENIED

        return AccessDecision(
            record_id=record_id,
            subject=caller,
            allowed=reason is not DecisionReason.DENIED,
            reason=reason,
            owner=owner,
        )

    def require(self, record_id: int, caller: Subject) -> AccessDecision:
        """
        Evaluate and raise on refusal.

        Raises:
            NotFoundError: If the record does not exist
            UnauthorizedError: If the caller is not eligible
        """
        # get() raises NotFoundError before any eligibility work
        self._records.get(record_id)
        decision = self.evaluate(record_id, caller)
        if not decision.allowed:
            logger.warning(
                "Read denied",
                extra={"record_id": record_id, "subject": caller},
            )
            raise UnauthorizedError(
                f"Subject is not permitted to read record {record_id}",
                record_id=record_id,
                subject=caller,
            )
        return decision

    def read(self, record_id: int, caller: Subject) -> str:
        """
        Return the record's data hash and audit the access.

        Failed attempts write no log entry and emit nothing.

        Args:
            record_id: Record to read
            caller: Subject performing the read

        Returns:
            The record's data hash
        """
        decision = self.require(record_id, caller)
        record = self._records.get(record_id)
        entry = self._access_log.append(record_id, caller, self._clock())
        self._emit(RecordAccessed(
            record_id=record_id,
            accessed_by=caller,
            digest=entry.digest,
            occurred_at=entry.timestamp,
        ))
        logger.info(
            "Record read",
            extra={"record_id": record_id, "subject": caller, "reason": decision.reason.value},
        )
        return record.data_hash

    def _audit(self, record_id: int, caller: Subject, entry_time) -> AccessLogEntry:
        # Replay hook: re-append a journaled read without re-checking eligibility
        return self._access_log.append(record_id, caller, entry_time)
