"""
SQLAlchemy engine factory for the escrow adapters.

SQLite URLs get a busy timeout and cross-thread connections so the
reaper thread and request threads can share one engine.
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url


def build_engine(database_url: str, timeout_seconds: float = 5.0) -> Engine:
    """Build a SQLAlchemy engine from a database URL.

    Args:
        database_url: SQLAlchemy URL (sqlite:///..., postgresql://...).
        timeout_seconds: How long a statement may wait on a busy database.

    Returns:
        A configured Engine.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": timeout_seconds},
        )
    return create_engine(url, pool_pre_ping=True, pool_timeout=timeout_seconds)
