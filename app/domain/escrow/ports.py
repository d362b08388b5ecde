"""
Port interfaces (ABCs) for the escrow bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from app.domain.escrow.entities import Asset
from app.domain.escrow.errors import EscrowDomainError, GatewayFailureError

logger = logging.getLogger(__name__)


class InventoryGateway(ABC):
    """Port onto the authoritative actor-to-asset ownership store.

    ``lock`` must be exclusive: two concurrent calls for the same asset
    on behalf of different sessions cannot both succeed. ``transfer`` must
    be atomic per call.
    """

    @abstractmethod
    def list_owned(self, actor_id: str) -> list[Asset]:
        """Return a snapshot of the actor's assets, in acquisition order."""
        raise NotImplementedError

    @abstractmethod
    def lock(self, actor_id: str, asset_id: str, session_id: str) -> None:
        """Escrow an asset for a session.

        Re-locking an asset already held by the same session succeeds.

        Raises:
            AssetNotOwnedError: If the actor does not own the asset.
            AssetLockedError: If another session holds the asset.
        """
        raise NotImplementedError

    @abstractmethod
    def unlock_all(self, session_id: str) -> None:
        """Release every lock tagged with session_id. Idempotent."""
        raise NotImplementedError

    @abstractmethod
    def transfer(
        self, from_id: str, to_id: str, asset_ids: list[str], session_id: str
    ) -> None:
        """Move locked assets to another actor and clear their locks.

        Raises:
            AssetNotOwnedError: If from_id does not own one of the assets.
            GatewayFailureError: If an asset is not locked by session_id.
        """
        raise NotImplementedError

    def exchange(
        self,
        a_id: str,
        b_id: str,
        a_assets: list[str],
        b_assets: list[str],
        session_id: str,
    ) -> None:
        """Swap both sides of a trade as one logical operation.

        Adapters that can run both legs in one transaction should override
        this. The default runs two transfers and moves the first leg back
        if the second one fails.
        """
        self.transfer(a_id, b_id, a_assets, session_id)
        try:
            self.transfer(b_id, a_id, b_assets, session_id)
        except EscrowDomainError:
            logger.error(
                "Second leg of trade #%s failed, reverting first leg.", session_id
            )
            self._revert_leg(a_id, b_id, a_assets, session_id)
            raise

    def _revert_leg(
        self, a_id: str, b_id: str, a_assets: list[str], session_id: str
    ) -> None:
        try:
            for asset_id in a_assets:
                self.lock(b_id, asset_id, session_id)
            self.transfer(b_id, a_id, a_assets, session_id)
        except EscrowDomainError as exc:
            logger.critical(
                "Could not revert first leg of trade #%s: %s", session_id, exc
            )
            raise GatewayFailureError(
                "swap could not be reverted", session_id=session_id
            ) from exc


class TradeSessionStore(ABC):
    """Port for persisting trade session records across restarts."""

    @abstractmethod
    def save(self, record: dict[str, Any]) -> None:
        """Insert or replace the record keyed by record["id"]."""
        raise NotImplementedError

    @abstractmethod
    def load_active(self) -> list[dict[str, Any]]:
        """Return the records of every non-terminal session."""
        raise NotImplementedError
