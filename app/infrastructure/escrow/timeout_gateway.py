"""
Adapter: Time-bounded inventory gateway.

Wraps another InventoryGateway so no call can stall a trade session
indefinitely. Calls run on a small worker pool and are abandoned after
the configured timeout; timeouts and unexpected backend exceptions
surface as GatewayFailureError. Domain errors pass through unchanged.

An abandoned call keeps running on its worker. Two rules keep it from
changing escrow behind the session's back:
    - a lock() that completes after being abandoned is undone by
      releasing the session's locks, since its caller already treated it
      as failed and rolled back escrow;
    - lock(), transfer() and exchange() for a session wait for that
      session's abandoned calls to settle first, and fail if they have
      not settled within the timeout.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from concurrent.futures import wait
from typing import Any, Callable, Optional

from app.domain.escrow.entities import Asset
from app.domain.escrow.errors import EscrowDomainError, GatewayFailureError
from app.domain.escrow.ports import InventoryGateway

logger = logging.getLogger(__name__)


class _Attempt:
    """Shared state between a caller and the worker running its call."""

    def __init__(self) -> None:
        self.finished = False
        self.abandoned = False


class TimeoutInventoryGateway(InventoryGateway):
    """Decorator applying a bounded timeout to every gateway call."""

    def __init__(
        self,
        inner: InventoryGateway,
        timeout_seconds: float = 5.0,
        max_workers: int = 8,
    ) -> None:
        self._inner = inner
        self._timeout = timeout_seconds
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="inventory-gw"
        )
        self._mutex = threading.Lock()
        self._abandoned: dict[str, set[Future]] = {}

    def shutdown(self) -> None:
        """Stop the worker pool without waiting for abandoned calls."""
        self._pool.shutdown(wait=False, cancel_futures=True)

    def list_owned(self, actor_id: str) -> list[Asset]:
        return self._call("list_owned", self._inner.list_owned, actor_id)

    def lock(self, actor_id: str, asset_id: str, session_id: str) -> None:
        self._settle(session_id)
        self._call(
            "lock",
            self._inner.lock,
            actor_id,
            asset_id,
            session_id,
            session_id=session_id,
            undo=lambda: self._inner.unlock_all(session_id),
        )

    def unlock_all(self, session_id: str) -> None:
        self._call(
            "unlock_all", self._inner.unlock_all, session_id, session_id=session_id
        )

    def transfer(
        self, from_id: str, to_id: str, asset_ids: list[str], session_id: str
    ) -> None:
        self._settle(session_id)
        self._call(
            "transfer",
            self._inner.transfer,
            from_id,
            to_id,
            asset_ids,
            session_id,
            session_id=session_id,
        )

    def exchange(
        self,
        a_id: str,
        b_id: str,
        a_assets: list[str],
        b_assets: list[str],
        session_id: str,
    ) -> None:
        self._settle(session_id)
        self._call(
            "exchange",
            self._inner.exchange,
            a_id,
            b_id,
            a_assets,
            b_assets,
            session_id,
            session_id=session_id,
        )

    def pending_for(self, session_id: str) -> int:
        """Number of abandoned calls for a session still running."""
        with self._mutex:
            return len(self._abandoned.get(session_id, ()))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _settle(self, session_id: str) -> None:
        """Wait for the session's abandoned calls before touching its escrow."""
        with self._mutex:
            pending = set(self._abandoned.get(session_id, ()))
        if not pending:
            return
        _, not_done = wait(pending, timeout=self._timeout)
        if not_done:
            logger.error(
                "Trade #%s: %d earlier inventory call(s) still running",
                session_id,
                len(not_done),
            )
            raise GatewayFailureError(
                "an earlier inventory call is still running", session_id=session_id
            )

    def _run(
        self,
        attempt: _Attempt,
        name: str,
        fn: Callable[..., Any],
        args: tuple,
        undo: Optional[Callable[[], None]],
    ) -> Any:
        try:
            result = fn(*args)
        finally:
            with self._mutex:
                attempt.finished = True
                abandoned = attempt.abandoned
        if abandoned and undo is not None:
            try:
                undo()
                logger.warning("Undid late %s after its caller gave up", name)
            except Exception:
                logger.exception("Could not undo late %s", name)
        return result

    def _forget(self, session_id: str, future: Future) -> None:
        with self._mutex:
            pending = self._abandoned.get(session_id)
            if pending is not None:
                pending.discard(future)
                if not pending:
                    del self._abandoned[session_id]

    def _call(
        self,
        name: str,
        fn: Callable[..., Any],
        *args: Any,
        session_id: Optional[str] = None,
        undo: Optional[Callable[[], None]] = None,
    ) -> Any:
        attempt = _Attempt()
        try:
            future = self._pool.submit(self._run, attempt, name, fn, args, undo)
        except RuntimeError as exc:
            raise GatewayFailureError(
                "inventory gateway is shut down", session_id=session_id
            ) from exc
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeoutError as exc:
            with self._mutex:
                finished = attempt.finished
                if not finished:
                    attempt.abandoned = True
                    if session_id is not None:
                        self._abandoned.setdefault(session_id, set()).add(future)
            if finished:
                # Completed right at the deadline; the result stands.
                return self._result_of(name, future)
            if session_id is not None:
                future.add_done_callback(lambda f: self._forget(session_id, f))
            logger.error("Inventory %s timed out after %.1fs", name, self._timeout)
            raise GatewayFailureError(f"{name} timed out", session_id=session_id) from exc
        except EscrowDomainError:
            raise
        except Exception as exc:
            logger.exception("Inventory %s failed", name)
            raise GatewayFailureError(f"{name} failed: {type(exc).__name__}") from exc

    def _result_of(self, name: str, future: Future) -> Any:
        try:
            return future.result()
        except EscrowDomainError:
            raise
        except Exception as exc:
            logger.exception("Inventory %s failed", name)
            raise GatewayFailureError(f"{name} failed: {type(exc).__name__}") from exc
