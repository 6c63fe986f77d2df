"""
Role registry - which subjects hold which named roles.
"""

from typing import Dict, FrozenSet, Optional, Set

from medledger.kernel.ledger.events import Emit, RoleGranted, RoleRevoked
from medledger.kernel.ledger.types import Role, Subject


class RoleRegistry:
    """
    Multi-valued role membership keyed by subject.

    The seed admin receives both ``admin`` and ``provider`` at construction.
    Granting a held role or revoking an absent one is a no-op and emits nothing.
    """

    def __init__(self, emit: Emit, admin: Optional[Subject] = None):
        self._emit = emit
        self._roles: Dict[Subject, Set[Role]] = {}
        if admin is not None:
            self.grant_role(Role.ADMIN, admin)
            self.grant_role(Role.PROVIDER, admin)

    def has_role(self, role: Role, subject: Subject) -> bool:
        return role in self._roles.get(subject, ())

    def roles_of(self, subject: Subject) -> FrozenSet[Role]:
        return frozenset(self._roles.get(subject, ()))

    def members(self, role: Role) -> Set[Subject]:
        return {subject for subject, roles in self._roles.items() if role in roles}

    def grant_role(self, role: Role, subject: Subject) -> bool:
        """Add a role; returns True if membership changed."""
        if not self._set(role, subject):
            return False
        self._emit(RoleGranted(role=role, member=subject))
        return True

    def revoke_role(self, role: Role, subject: Subject) -> bool:
        """Remove a role; returns True if membership changed."""
        if not self._unset(role, subject):
            return False
        self._emit(RoleRevoked(role=role, member=subject))
        return True

    # Replay hooks: mutate without emitting

    def _set(self, role: Role, subject: Subject) -> bool:
        held = self._roles.setdefault(subject, set())
        if role in held:
            return False
        held.add(role)
        return True

    def _unset(self, role: Role, subject: Subject) -> bool:
        held = self._roles.get(subject)
        if not held or role not in held:
            return False
        held.discard(role)
        return True
