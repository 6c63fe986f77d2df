"""
Pytest fixtures for MedLedger tests.
"""

from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from medledger.kernel.identity.jwt import JWTManager
from medledger.kernel.ledger import Ledger, LedgerEvent


ADMIN = "A"
OWNER = "U1"
GRANTEE = "U2"
STRANGER = "U3"


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, tzinfo=timezone.utc)):
        self.now = start
        self.calls = 0

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        self.calls += 1
        return current


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def ledger(clock: StepClock) -> Ledger:
    """A ledger bootstrapped with admin ``A``."""
    return Ledger(admin=ADMIN, clock=clock)


@pytest.fixture
def emitted() -> List[LedgerEvent]:
    """Collects events passed to a component's emit callback."""
    return []


@pytest.fixture
def emit(emitted: List[LedgerEvent]):
    def _emit(event: LedgerEvent) -> LedgerEvent:
        emitted.append(event)
        return event

    return _emit


@pytest.fixture
def jwt_manager() -> JWTManager:
    """Create a JWT manager for tests."""
    return JWTManager(
        secret_key="test-secret-key-for-testing-only",
        algorithm="HS256",
        access_token_expire_minutes=30,
    )
