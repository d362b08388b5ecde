"""
Adapter: In-memory inventory.

Implements InventoryGateway port.
Reference implementation holding the whole asset table behind one mutex,
so lock() is exclusive and transfer()/exchange() are atomic.
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from app.domain.escrow.entities import Asset
from app.domain.escrow.errors import (
    AssetLockedError,
    AssetNotOwnedError,
    GatewayFailureError,
)
from app.domain.escrow.ports import InventoryGateway

logger = logging.getLogger(__name__)


@dataclass
class _AssetRow:
    owner_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    lock_token: Optional[str] = None
    seq: int = 0


class InMemoryInventoryGateway(InventoryGateway):
    """Process-local inventory store."""

    def __init__(self) -> None:
        self._rows: dict[str, _AssetRow] = {}
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def grant(
        self, owner_id: str, instance_id: str, metadata: dict[str, Any] | None = None
    ) -> Asset:
        """Give a new asset to an actor (used by reward drops and seeding).

        Raises:
            ValueError: If the instance id is already in use.
        """
        with self._lock:
            if instance_id in self._rows:
                raise ValueError(f"Asset id already in use: {instance_id}")
            row = _AssetRow(owner_id, dict(metadata or {}), None, next(self._seq))
            self._rows[instance_id] = row
            return self._to_asset(instance_id, row)

    def list_owned(self, actor_id: str) -> list[Asset]:
        with self._lock:
            owned = [(i, r) for i, r in self._rows.items() if r.owner_id == actor_id]
            owned.sort(key=lambda item: item[1].seq)
            return [self._to_asset(i, r) for i, r in owned]

    def lock(self, actor_id: str, asset_id: str, session_id: str) -> None:
        with self._lock:
            row = self._rows.get(asset_id)
            if row is None or row.owner_id != actor_id:
                raise AssetNotOwnedError(actor_id, asset_id)
            if row.lock_token is not None and row.lock_token != session_id:
                raise AssetLockedError(asset_id, row.lock_token)
            row.lock_token = session_id

    def unlock_all(self, session_id: str) -> None:
        with self._lock:
            for row in self._rows.values():
                if row.lock_token == session_id:
                    row.lock_token = None

    def transfer(
        self, from_id: str, to_id: str, asset_ids: list[str], session_id: str
    ) -> None:
        with self._lock:
            self._check_leg(from_id, asset_ids, session_id)
            self._move(to_id, asset_ids)

    def exchange(
        self,
        a_id: str,
        b_id: str,
        a_assets: list[str],
        b_assets: list[str],
        session_id: str,
    ) -> None:
        with self._lock:
            self._check_leg(a_id, a_assets, session_id)
            self._check_leg(b_id, b_assets, session_id)
            self._move(b_id, a_assets)
            self._move(a_id, b_assets)
        logger.debug(
            "Exchanged %d/%d asset(s) for trade #%s",
            len(a_assets),
            len(b_assets),
            session_id,
        )

    # Caller holds self._lock.

    def _check_leg(self, from_id: str, asset_ids: list[str], session_id: str) -> None:
        for asset_id in asset_ids:
            row = self._rows.get(asset_id)
            if row is None or row.owner_id != from_id:
                raise AssetNotOwnedError(from_id, asset_id)
            if row.lock_token != session_id:
                raise GatewayFailureError(
                    f"asset {asset_id} is not locked by trade #{session_id}",
                    session_id=session_id,
                )

    def _move(self, to_id: str, asset_ids: list[str]) -> None:
        for asset_id in asset_ids:
            row = self._rows[asset_id]
            row.owner_id = to_id
            row.lock_token = None
            row.seq = next(self._seq)

    @staticmethod
    def _to_asset(instance_id: str, row: _AssetRow) -> Asset:
        return Asset(
            instance_id=instance_id,
            owner_id=row.owner_id,
            metadata=dict(row.metadata),
            lock_token=row.lock_token,
        )
