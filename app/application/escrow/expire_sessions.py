"""
Use case: Expire trade sessions past their TTL.

Input: None (sweeps every active session)
Output: SweepResult
Side effects: Releases escrow held by overdue trades and moves them to
    EXPIRED. Trusted caller: no actor authorization.
Failure cases: None. A failure on one session is logged and retried on
    the next sweep; it never stops the rest of the sweep.
"""

import logging

from app.application.escrow.dtos import SweepResult
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry

logger = logging.getLogger(__name__)


class ExpiryReaper:
    """Periodic sweep transitioning stale sessions to EXPIRED."""

    def __init__(self, registry: TradeRegistry, gateway: InventoryGateway) -> None:
        self._registry = registry
        self._gateway = gateway

    def sweep(self) -> SweepResult:
        """Expire every active session whose expiry time has passed.

        Returns:
            Which sessions were expired and which failed.
        """
        now = self._registry.now()
        sessions = self._registry.active_sessions()
        result = SweepResult(started_at=now, scanned=len(sessions))

        for session in sessions:
            try:
                with session.lock:
                    if session.expire(now, self._gateway):
                        self._registry.commit(session)
                        result.expired.append(session.id)
                        logger.info("Trade #%s expired.", session.id)
            except Exception:
                result.failed.append(session.id)
                logger.exception("Failed to expire trade #%s", session.id)

        if result.expired or result.failed:
            logger.info(
                "Expiry sweep: scanned=%d, expired=%d, failed=%d",
                result.scanned,
                len(result.expired),
                len(result.failed),
            )
        return result
