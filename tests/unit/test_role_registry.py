"""Unit tests for RoleRegistry."""

from medledger.kernel.ledger import Role, RoleGranted, RoleRevoked
from medledger.kernel.ledger.roles import RoleRegistry


class TestRoleRegistry:
    """Tests for role membership."""

    def test_seed_admin_holds_admin_and_provider(self, emit, emitted):
        """The bootstrap admin receives both roles."""
        registry = RoleRegistry(emit, admin="A")

        assert registry.has_role(Role.ADMIN, "A")
        assert registry.has_role(Role.PROVIDER, "A")
        assert registry.roles_of("A") == frozenset({Role.ADMIN, Role.PROVIDER})
        assert [type(e) for e in emitted] == [RoleGranted, RoleGranted]

    def test_unknown_subject_holds_nothing(self, emit):
        registry = RoleRegistry(emit)

        assert registry.has_role(Role.PROVIDER, "nobody") is False
        assert registry.roles_of("nobody") == frozenset()

    def test_grant_is_idempotent(self, emit, emitted):
        """Granting a held role is a no-op and emits nothing."""
        registry = RoleRegistry(emit)

        assert registry.grant_role(Role.PROVIDER, "doc") is True
        assert registry.grant_role(Role.PROVIDER, "doc") is False

        assert registry.has_role(Role.PROVIDER, "doc")
        assert len(emitted) == 1

    def test_multiple_roles_per_subject(self, emit):
        registry = RoleRegistry(emit)
        registry.grant_role(Role.PROVIDER, "doc")
        registry.grant_role(Role.ADMIN, "doc")

        assert registry.roles_of("doc") == frozenset({Role.ADMIN, Role.PROVIDER})
        assert registry.members(Role.ADMIN) == {"doc"}

    def test_revoke_removes_only_that_role(self, emit, emitted):
        registry = RoleRegistry(emit, admin="A")
        emitted.clear()

        assert registry.revoke_role(Role.PROVIDER, "A") is True

        assert registry.has_role(Role.ADMIN, "A")
        assert not registry.has_role(Role.PROVIDER, "A")
        assert isinstance(emitted[0], RoleRevoked)
        assert emitted[0].member == "A"

    def test_revoke_absent_role_is_noop(self, emit, emitted):
        registry = RoleRegistry(emit)

        assert registry.revoke_role(Role.PROVIDER, "doc") is False
        assert emitted == []
