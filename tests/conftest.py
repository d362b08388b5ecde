"""
Shared fixtures for the escrow test suite.

Provides a controllable clock, a seeded in-memory inventory and a
registry wired to both, so tests can drive trades deterministically.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.escrow.registry import TradeRegistry
from app.infrastructure.escrow.in_memory_inventory import InMemoryInventoryGateway


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self) -> None:
        self.current = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway() -> InMemoryInventoryGateway:
    gw = InMemoryInventoryGateway()
    gw.grant("alice", "X1", {"name": "Sparkmouse", "level": 12, "rarity": "rare"})
    gw.grant("alice", "X2", {"name": "Leafling", "level": 5})
    gw.grant("bob", "Y1", {"name": "Emberpup", "level": 9})
    gw.grant("bob", "Y2", {"name": "Shellby"})
    gw.grant("carol", "Z1", {"name": "Frostfang", "rarity": "epic"})
    gw.grant("dave", "W1", {"name": "Pebblet"})
    return gw


@pytest.fixture
def registry(clock: FakeClock) -> TradeRegistry:
    return TradeRegistry(ttl=timedelta(minutes=10), clock=clock)
