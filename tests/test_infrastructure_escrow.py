"""
Tests for the escrow infrastructure adapters.

Covers the in-memory and SQL inventory gateways, the timeout decorator,
the swap fallback of the gateway port, the SQL session store (including
registry restore after a restart), and the reaper scheduler.
SQL adapters run against a temporary SQLite database.
"""

import threading
import time
from datetime import timedelta

import pytest

from app.application.escrow.expire_sessions import ExpiryReaper
from app.domain.escrow.entities import Actor, TradeStatus
from app.domain.escrow.errors import (
    AssetLockedError,
    AssetNotOwnedError,
    GatewayFailureError,
)
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry
from app.infrastructure.escrow.database import build_engine
from app.infrastructure.escrow.in_memory_inventory import InMemoryInventoryGateway
from app.infrastructure.escrow.reaper_scheduler import ReaperScheduler
from app.infrastructure.escrow.sql_inventory import SqlInventoryGateway
from app.infrastructure.escrow.sql_session_store import SqlTradeSessionStore
from app.infrastructure.escrow.timeout_gateway import TimeoutInventoryGateway


@pytest.fixture
def engine(tmp_path):
    return build_engine(f"sqlite:///{tmp_path / 'escrow.db'}")


@pytest.fixture
def sql_gateway(engine):
    gw = SqlInventoryGateway(engine)
    gw.ensure_schema()
    gw.grant("alice", "X1", {"name": "Sparkmouse", "level": 12})
    gw.grant("alice", "X2", {"name": "Leafling"})
    gw.grant("bob", "Y1", {"name": "Emberpup"})
    return gw


def _owners(gateway, *actor_ids):
    return {
        actor_id: [a.instance_id for a in gateway.list_owned(actor_id)]
        for actor_id in actor_ids
    }


class TestSqlInventoryGateway:
    """Tests for SqlInventoryGateway."""

    def test_list_owned_preserves_order_and_metadata(self, sql_gateway) -> None:
        """Assets come back in acquisition order with their metadata."""
        assets = sql_gateway.list_owned("alice")
        assert [a.instance_id for a in assets] == ["X1", "X2"]
        assert assets[0].metadata == {"name": "Sparkmouse", "level": 12}
        assert assets[0].lock_token is None

    def test_lock_is_exclusive(self, sql_gateway) -> None:
        """A second session cannot lock an escrowed asset."""
        sql_gateway.lock("alice", "X1", "t1")
        sql_gateway.lock("alice", "X1", "t1")
        with pytest.raises(AssetLockedError) as exc_info:
            sql_gateway.lock("alice", "X1", "t2")
        assert exc_info.value.locked_by == "t1"

    def test_lock_requires_ownership(self, sql_gateway) -> None:
        """Locking an asset owned by someone else fails."""
        with pytest.raises(AssetNotOwnedError):
            sql_gateway.lock("alice", "Y1", "t1")
        with pytest.raises(AssetNotOwnedError):
            sql_gateway.lock("alice", "missing", "t1")

    def test_unlock_all_is_idempotent(self, sql_gateway) -> None:
        """unlock_all releases every lock of a session, any number of times."""
        sql_gateway.lock("alice", "X1", "t1")
        sql_gateway.lock("bob", "Y1", "t1")
        sql_gateway.lock("alice", "X2", "t2")
        sql_gateway.unlock_all("t1")
        sql_gateway.unlock_all("t1")
        tokens = {
            a.instance_id: a.lock_token
            for a in sql_gateway.list_owned("alice") + sql_gateway.list_owned("bob")
        }
        assert tokens == {"X1": None, "X2": "t2", "Y1": None}

    def test_transfer_requires_lock(self, sql_gateway) -> None:
        """Only assets locked by the session move; nothing moves otherwise."""
        sql_gateway.lock("alice", "X1", "t1")
        with pytest.raises(GatewayFailureError):
            sql_gateway.transfer("alice", "bob", ["X1", "X2"], "t1")
        assert _owners(sql_gateway, "alice")["alice"] == ["X1", "X2"]

    def test_exchange_swaps_and_clears_locks(self, sql_gateway) -> None:
        """Both legs move in one transaction and lock tokens are cleared."""
        sql_gateway.lock("alice", "X1", "t1")
        sql_gateway.lock("bob", "Y1", "t1")
        sql_gateway.exchange("alice", "bob", ["X1"], ["Y1"], "t1")

        assert _owners(sql_gateway, "alice", "bob") == {
            "alice": ["X2", "Y1"],
            "bob": ["X1"],
        }
        assert not any(
            a.is_locked
            for a in sql_gateway.list_owned("alice") + sql_gateway.list_owned("bob")
        )

    def test_exchange_rolls_back_first_leg(self, sql_gateway) -> None:
        """A failing second leg leaves ownership untouched."""
        sql_gateway.lock("alice", "X1", "t1")
        with pytest.raises(GatewayFailureError):
            sql_gateway.exchange("alice", "bob", ["X1"], ["Y1"], "t1")
        assert _owners(sql_gateway, "alice", "bob") == {
            "alice": ["X1", "X2"],
            "bob": ["Y1"],
        }
        assert sql_gateway.list_owned("alice")[0].lock_token == "t1"

    def test_locks_survive_a_new_gateway(self, engine, sql_gateway) -> None:
        """Escrow is stored on the asset row, so a fresh adapter still sees it."""
        sql_gateway.lock("alice", "X1", "t1")
        reopened = SqlInventoryGateway(engine)
        assert reopened.list_owned("alice")[0].lock_token == "t1"


class _TwoStepGateway(InMemoryInventoryGateway):
    """In-memory gateway using the port's default two-transfer exchange."""

    exchange = InventoryGateway.exchange


class TestDefaultExchange:
    """Tests for the compensating exchange on the gateway port."""

    def test_second_leg_failure_reverts_first(self) -> None:
        """When B's leg fails, A's assets are moved back."""
        two_step = _TwoStepGateway()
        two_step.grant("alice", "X1")
        two_step.grant("bob", "Y1")
        two_step.lock("alice", "X1", "t1")

        with pytest.raises(GatewayFailureError):
            two_step.exchange("alice", "bob", ["X1"], ["Y1"], "t1")

        assert _owners(two_step, "alice", "bob") == {"alice": ["X1"], "bob": ["Y1"]}

    def test_success_moves_both_legs(self) -> None:
        """Without failures both legs are applied."""
        two_step = _TwoStepGateway()
        two_step.grant("alice", "X1")
        two_step.grant("bob", "Y1")
        two_step.lock("alice", "X1", "t1")
        two_step.lock("bob", "Y1", "t1")
        two_step.exchange("alice", "bob", ["X1"], ["Y1"], "t1")
        assert _owners(two_step, "alice", "bob") == {"alice": ["Y1"], "bob": ["X1"]}


class TestInMemoryInventoryGateway:
    """Tests for the reference in-memory gateway."""

    def test_concurrent_locks_one_winner(self, gateway) -> None:
        """Of many sessions racing for one asset, exactly one gets it."""
        barrier = threading.Barrier(8)
        winners = []

        def grab(i: int) -> None:
            barrier.wait()
            try:
                gateway.lock("alice", "X1", f"t{i}")
                winners.append(i)
            except AssetLockedError:
                pass

        threads = [threading.Thread(target=grab, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(winners) == 1

    def test_duplicate_grant_rejected(self, gateway) -> None:
        """Instance ids are never reused."""
        with pytest.raises(ValueError):
            gateway.grant("bob", "X1")


class _SlowGateway(InMemoryInventoryGateway):
    def list_owned(self, actor_id):
        time.sleep(0.5)
        return super().list_owned(actor_id)

    def unlock_all(self, session_id):
        raise RuntimeError("connection reset")


class _SlowLockGateway(InMemoryInventoryGateway):
    def lock(self, actor_id, asset_id, session_id):
        if asset_id == "Y1":
            time.sleep(0.3)
        super().lock(actor_id, asset_id, session_id)


def _lock_tokens(gateway, *actor_ids):
    return {
        a.instance_id: a.lock_token
        for actor_id in actor_ids
        for a in gateway.list_owned(actor_id)
    }


def _wait_until_settled(guarded, session_id, limit=2.0):
    deadline = time.monotonic() + limit
    while guarded.pending_for(session_id) and time.monotonic() < deadline:
        time.sleep(0.02)
    assert guarded.pending_for(session_id) == 0


class TestTimeoutInventoryGateway:
    """Tests for the bounded-timeout decorator."""

    def test_stalled_call_becomes_gateway_failure(self) -> None:
        """A call exceeding the timeout raises GatewayFailureError."""
        guarded = TimeoutInventoryGateway(_SlowGateway(), timeout_seconds=0.05)
        with pytest.raises(GatewayFailureError):
            guarded.list_owned("alice")
        guarded.shutdown()

    def test_backend_error_becomes_gateway_failure(self) -> None:
        """Unexpected backend exceptions are wrapped."""
        guarded = TimeoutInventoryGateway(_SlowGateway(), timeout_seconds=1)
        with pytest.raises(GatewayFailureError) as exc_info:
            guarded.unlock_all("t1")
        assert "RuntimeError" in exc_info.value.reason
        guarded.shutdown()

    def test_late_lock_released_after_cancel(self, registry, clock) -> None:
        """A lock that finishes after its timeout leaves nothing behind a cancelled trade."""
        backend = _SlowLockGateway()
        backend.grant("alice", "X1")
        backend.grant("bob", "Y1")
        guarded = TimeoutInventoryGateway(backend, timeout_seconds=0.05)
        session = registry.create(Actor("alice"), Actor("bob"))
        session.add_offer("alice", "X1", guarded, clock())
        session.add_offer("bob", "Y1", guarded, clock())
        session.set_readiness("alice", True, guarded, clock())

        with pytest.raises(GatewayFailureError):
            session.set_readiness("bob", True, guarded, clock())
        session.cancel("alice", guarded, clock())
        assert session.status is TradeStatus.CANCELLED

        _wait_until_settled(guarded, session.id)
        assert _lock_tokens(backend, "alice", "bob") == {"X1": None, "Y1": None}
        guarded.shutdown()

    def test_session_waits_for_abandoned_lock(self) -> None:
        """New escrow calls for a session fail while its late lock is running."""
        backend = _SlowLockGateway()
        backend.grant("alice", "X1")
        backend.grant("bob", "Y1")
        guarded = TimeoutInventoryGateway(backend, timeout_seconds=0.05)

        with pytest.raises(GatewayFailureError):
            guarded.lock("bob", "Y1", "t1")
        with pytest.raises(GatewayFailureError):
            guarded.lock("alice", "X1", "t1")
        guarded.lock("alice", "X1", "t2")

        _wait_until_settled(guarded, "t1")
        assert _lock_tokens(backend, "alice", "bob") == {"X1": "t2", "Y1": None}
        guarded.unlock_all("t2")
        guarded.lock("alice", "X1", "t1")
        assert _lock_tokens(backend, "alice") == {"X1": "t1"}
        guarded.shutdown()

    def test_domain_errors_pass_through(self, gateway) -> None:
        """Domain errors from the backend are not rewrapped."""
        guarded = TimeoutInventoryGateway(gateway, timeout_seconds=1)
        with pytest.raises(AssetNotOwnedError):
            guarded.lock("alice", "Y1", "t1")
        guarded.lock("alice", "X1", "t1")
        assert guarded.list_owned("alice")[0].lock_token == "t1"
        guarded.shutdown()


class TestSqlTradeSessionStore:
    """Tests for session persistence and restore."""

    def test_registry_restores_active_sessions(self, engine, clock) -> None:
        """A new registry rebuilds the actor index from stored records."""
        store = SqlTradeSessionStore(engine)
        store.ensure_schema()
        gateway = InMemoryInventoryGateway()
        gateway.grant("alice", "X1")

        registry = TradeRegistry(store=store, clock=clock)
        active = registry.create(Actor("alice", "Alice"), Actor("bob", "Bob"))
        with active.lock:
            active.add_offer("alice", "X1", gateway, clock())
            registry.commit(active)
        done = registry.create(Actor("carol"), Actor("dave"))
        with done.lock:
            done.cancel("carol", gateway, clock())
            registry.commit(done)

        restarted = TradeRegistry(store=store, clock=clock)
        assert restarted.load() == 1
        restored = restarted.find_active_for("bob")
        assert restored is not None
        assert restored.id == active.id
        assert restored.a.offered == ["X1"]
        assert restarted.find_active_for("carol") is None

    def test_save_overwrites_record(self, engine, clock) -> None:
        """Saving the same session twice keeps one record."""
        store = SqlTradeSessionStore(engine)
        store.ensure_schema()
        registry = TradeRegistry(store=store, clock=clock)
        session = registry.create(Actor("alice"), Actor("bob"))
        registry.save(session)
        registry.save(session)
        assert [r["id"] for r in store.load_active()] == [session.id]


class TestReaperScheduler:
    """Tests for the APScheduler-driven reaper."""

    def test_run_now_records_history(self, gateway, clock) -> None:
        """run_now sweeps immediately and keeps the result."""
        registry = TradeRegistry(ttl=timedelta(minutes=1), clock=clock)
        session = registry.create(Actor("alice"), Actor("bob"))
        clock.advance(minutes=2)

        scheduler = ReaperScheduler(ExpiryReaper(registry, gateway), interval_seconds=60)
        result = scheduler.run_now()

        assert result.expired == [session.id]
        assert session.status is TradeStatus.EXPIRED
        status = scheduler.get_status()
        assert status["running"] is False
        assert status["recent_sweeps"][0]["expired"] == 1

    def test_start_and_stop(self, registry, gateway) -> None:
        """The scheduler reports its running state and next run."""
        scheduler = ReaperScheduler(ExpiryReaper(registry, gateway), interval_seconds=60)
        scheduler.start()
        try:
            assert scheduler.is_running
            assert scheduler.get_status()["next_run"] is not None
        finally:
            scheduler.stop()
        assert not scheduler.is_running
