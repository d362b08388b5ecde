"""
Tests for the trade registry.

Covers the one-active-trade-per-actor rule, idempotent open, removal of
finished trades, audit history, and concurrent open attempts.
"""

import threading

import pytest

from app.domain.escrow.entities import Actor, TradeStatus
from app.domain.escrow.errors import (
    AlreadyInTradeError,
    InvalidTransitionError,
    NoActiveSessionError,
    SelfTradeError,
)
from app.domain.escrow.registry import TradeRegistry

ALICE = Actor("alice", "Alice")
BOB = Actor("bob", "Bob")
CAROL = Actor("carol", "Carol")


class TestCreate:
    """Tests for TradeRegistry.create."""

    def test_create_indexes_both_parties(self, registry) -> None:
        """Both participants find the new session."""
        session = registry.create(ALICE, BOB)
        assert registry.find_active_for("alice") is session
        assert registry.find_active_for("bob") is session
        assert registry.find_active_for("carol") is None
        assert registry.get(session.id) is session

    def test_initiator_already_in_trade(self, registry) -> None:
        """An actor with an active trade cannot open another."""
        first = registry.create(ALICE, BOB)
        with pytest.raises(AlreadyInTradeError) as exc_info:
            registry.create(ALICE, CAROL)
        assert exc_info.value.session_id == first.id

    def test_counterparty_already_in_trade(self, registry) -> None:
        """A busy counterparty cannot be pulled into a second trade."""
        registry.create(ALICE, BOB)
        with pytest.raises(AlreadyInTradeError) as exc_info:
            registry.create(CAROL, BOB)
        assert exc_info.value.actor_id == "bob"

    def test_self_trade_rejected(self, registry) -> None:
        """An actor cannot trade with themselves."""
        with pytest.raises(SelfTradeError):
            registry.create(ALICE, Actor("alice"))

    def test_session_ids_are_unique(self, registry) -> None:
        """Every session gets a distinct id."""
        ids = set()
        for i in range(50):
            session = registry.create(Actor(f"a{i}"), Actor(f"b{i}"))
            ids.add(session.id)
        assert len(ids) == 50


class TestFindOrCreate:
    """Tests for the idempotent open path."""

    def test_reuse_returns_existing(self, registry) -> None:
        """Re-opening returns the initiator's current trade."""
        first, created = registry.find_or_create(ALICE, BOB)
        again, created_again = registry.find_or_create(ALICE, CAROL)
        assert created
        assert not created_again
        assert again is first

    def test_strict_mode_raises(self, registry) -> None:
        """With reuse disabled, an initiator already trading gets an error."""
        registry.find_or_create(ALICE, BOB)
        with pytest.raises(AlreadyInTradeError):
            registry.find_or_create(ALICE, CAROL, reuse_existing=False)

    def test_concurrent_opens_create_one_session(self, registry) -> None:
        """Concurrent opens from the same actor yield a single active trade."""
        results = []
        errors = []
        barrier = threading.Barrier(16)

        def attempt(i: int) -> None:
            barrier.wait()
            try:
                results.append(
                    registry.find_or_create(
                        ALICE, Actor(f"target{i}"), reuse_existing=False
                    )
                )
            except AlreadyInTradeError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 1
        assert len(errors) == 15
        assert len(registry.active_sessions()) == 1


class TestRemove:
    """Tests for removal and history."""

    def test_remove_active_rejected(self, registry) -> None:
        """An active session cannot be removed."""
        session = registry.create(ALICE, BOB)
        with pytest.raises(InvalidTransitionError):
            registry.remove(session.id)

    def test_remove_terminal_frees_actors(self, registry, gateway, clock) -> None:
        """After removal both actors may trade again and history keeps the trade."""
        session = registry.create(ALICE, BOB)
        session.cancel("alice", gateway, clock())
        registry.remove(session.id)

        assert registry.find_active_for("alice") is None
        assert registry.history() == [session]
        assert registry.create(ALICE, CAROL).status is TradeStatus.OPEN

    def test_terminal_session_dropped_lazily(self, registry, gateway, clock) -> None:
        """A session that became terminal is no longer reported as active."""
        session = registry.create(ALICE, BOB)
        session.cancel("bob", gateway, clock())
        assert registry.find_active_for("alice") is None
        assert registry.get(session.id) is None

    def test_require_active_for(self, registry) -> None:
        """require_active_for raises for actors without a trade."""
        with pytest.raises(NoActiveSessionError):
            registry.require_active_for("alice")

    def test_history_is_bounded(self, gateway, clock) -> None:
        """Only the most recent finished trades are retained."""
        registry = TradeRegistry(clock=clock, history_size=3)
        for i in range(5):
            session = registry.create(ALICE, BOB)
            session.cancel("alice", gateway, clock())
            registry.commit(session)
        assert len(registry.history()) == 3
