"""
Adapter: Trade session store.

Implements TradeSessionStore port.
Persists one JSON record per trade session in the trade_sessions table,
keyed by session id. The actor index is rebuilt from these records on load.
"""

import json
import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine

from app.domain.escrow.entities import TERMINAL_STATUSES
from app.domain.escrow.ports import TradeSessionStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS trade_sessions (
    id         VARCHAR(32) PRIMARY KEY,
    status     VARCHAR(16) NOT NULL,
    record     TEXT NOT NULL,
    updated_at VARCHAR(40) NOT NULL
)
"""


class SqlTradeSessionStore(TradeSessionStore):
    """SQLAlchemy implementation of the trade session store."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def ensure_schema(self) -> None:
        """Create the trade_sessions table if it does not exist."""
        with self._engine.begin() as conn:
            conn.execute(text(_SCHEMA))

    def save(self, record: dict[str, Any]) -> None:
        """Upsert a session record.

        Args:
            record: Session record as produced by TradeSession.to_record().
        """
        query = text(
            """
            INSERT INTO trade_sessions (id, status, record, updated_at)
            VALUES (:id, :status, :record, :updated_at)
            ON CONFLICT (id) DO UPDATE SET
                status = excluded.status,
                record = excluded.record,
                updated_at = excluded.updated_at
            """
        )
        with self._engine.begin() as conn:
            conn.execute(
                query,
                {
                    "id": record["id"],
                    "status": record["status"],
                    "record": json.dumps(record),
                    "updated_at": record["updated_at"],
                },
            )

    def load_active(self) -> list[dict[str, Any]]:
        """Return the records of every session not yet finished."""
        terminal = sorted(s.value for s in TERMINAL_STATUSES)
        params = {f"s{i}": value for i, value in enumerate(terminal)}
        placeholders = ", ".join(f":{key}" for key in params)
        query = text(
            f"SELECT record FROM trade_sessions WHERE status NOT IN ({placeholders})"
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query, params).fetchall()

        records = [json.loads(row[0]) for row in rows]
        logger.info("Loaded %d active trade record(s).", len(records))
        return records
