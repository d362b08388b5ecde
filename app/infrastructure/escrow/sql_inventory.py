"""
Adapter: SQL inventory.

Implements InventoryGateway port on top of an ``owned_assets`` table.
Each asset row carries its own lock token, so escrow survives a restart.
lock() is a single conditional UPDATE, which makes it exclusive;
transfer() and exchange() each run inside one transaction.
"""

import json
import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from app.domain.escrow.entities import Asset
from app.domain.escrow.errors import (
    AssetLockedError,
    AssetNotOwnedError,
    GatewayFailureError,
)
from app.domain.escrow.ports import InventoryGateway

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS owned_assets (
    instance_id VARCHAR(64) PRIMARY KEY,
    owner_id    VARCHAR(128) NOT NULL,
    metadata    TEXT NOT NULL DEFAULT '{}',
    lock_token  VARCHAR(64),
    seq         INTEGER NOT NULL
)
"""

_NEXT_SEQ = "(SELECT COALESCE(MAX(seq), 0) + 1 FROM owned_assets)"


class SqlInventoryGateway(InventoryGateway):
    """SQLAlchemy implementation of the inventory gateway."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def ensure_schema(self) -> None:
        """Create the owned_assets table if it does not exist."""
        with self._engine.begin() as conn:
            conn.execute(text(_SCHEMA))
            conn.execute(
                text(
                    "CREATE INDEX IF NOT EXISTS ix_owned_assets_owner "
                    "ON owned_assets (owner_id)"
                )
            )
            conn.execute(
                text(
                    "CREATE INDEX IF NOT EXISTS ix_owned_assets_lock "
                    "ON owned_assets (lock_token)"
                )
            )

    def grant(
        self, owner_id: str, instance_id: str, metadata: dict[str, Any] | None = None
    ) -> Asset:
        """Insert a new asset owned by owner_id."""
        with self._engine.begin() as conn:
            conn.execute(
                text(
                    f"""
                    INSERT INTO owned_assets (instance_id, owner_id, metadata, lock_token, seq)
                    VALUES (:iid, :owner, :meta, NULL, {_NEXT_SEQ})
                    """
                ),
                {
                    "iid": instance_id,
                    "owner": owner_id,
                    "meta": json.dumps(metadata or {}),
                },
            )
        return Asset(instance_id, owner_id, dict(metadata or {}))

    def list_owned(self, actor_id: str) -> list[Asset]:
        query = text(
            """
            SELECT instance_id, owner_id, metadata, lock_token
            FROM owned_assets
            WHERE owner_id = :owner
            ORDER BY seq
            """
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"owner": actor_id}).fetchall()

        return [
            Asset(
                instance_id=row[0],
                owner_id=row[1],
                metadata=json.loads(row[2] or "{}"),
                lock_token=row[3],
            )
            for row in rows
        ]

    def lock(self, actor_id: str, asset_id: str, session_id: str) -> None:
        update = text(
            """
            UPDATE owned_assets
            SET lock_token = :sid
            WHERE instance_id = :iid
              AND owner_id = :owner
              AND (lock_token IS NULL OR lock_token = :sid)
            """
        )
        with self._engine.begin() as conn:
            result = conn.execute(
                update, {"sid": session_id, "iid": asset_id, "owner": actor_id}
            )
            if result.rowcount == 1:
                return
            row = conn.execute(
                text(
                    "SELECT owner_id, lock_token FROM owned_assets "
                    "WHERE instance_id = :iid"
                ),
                {"iid": asset_id},
            ).fetchone()

        if row is None or row[0] != actor_id:
            raise AssetNotOwnedError(actor_id, asset_id)
        raise AssetLockedError(asset_id, row[1])

    def unlock_all(self, session_id: str) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(
                text(
                    "UPDATE owned_assets SET lock_token = NULL "
                    "WHERE lock_token = :sid"
                ),
                {"sid": session_id},
            )
            released = result.rowcount
        if released:
            logger.info("Released %d lock(s) for trade #%s", released, session_id)

    def transfer(
        self, from_id: str, to_id: str, asset_ids: list[str], session_id: str
    ) -> None:
        with self._engine.begin() as conn:
            self._move_leg(conn, from_id, to_id, asset_ids, session_id)

    def exchange(
        self,
        a_id: str,
        b_id: str,
        a_assets: list[str],
        b_assets: list[str],
        session_id: str,
    ) -> None:
        with self._engine.begin() as conn:
            self._move_leg(conn, a_id, b_id, a_assets, session_id)
            self._move_leg(conn, b_id, a_id, b_assets, session_id)

    @staticmethod
    def _move_leg(
        conn: Connection,
        from_id: str,
        to_id: str,
        asset_ids: list[str],
        session_id: str,
    ) -> None:
        """Move one side of a trade. Raising rolls back the whole transaction."""
        select = text(
            "SELECT owner_id, lock_token FROM owned_assets WHERE instance_id = :iid"
        )
        update = text(
            f"""
            UPDATE owned_assets
            SET owner_id = :to_id, lock_token = NULL, seq = {_NEXT_SEQ}
            WHERE instance_id = :iid AND owner_id = :from_id AND lock_token = :sid
            """
        )
        for asset_id in asset_ids:
            row = conn.execute(select, {"iid": asset_id}).fetchone()
            if row is None or row[0] != from_id:
                raise AssetNotOwnedError(from_id, asset_id)
            if row[1] != session_id:
                raise GatewayFailureError(
                    f"asset {asset_id} is not locked by trade #{session_id}",
                    session_id=session_id,
                )
            conn.execute(
                update,
                {
                    "to_id": to_id,
                    "iid": asset_id,
                    "from_id": from_id,
                    "sid": session_id,
                },
            )
