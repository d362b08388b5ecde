"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here. No scattered magic strings.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        trade_ttl_minutes: Lifetime of a trade session from its creation.
        reaper_interval_seconds: How often the expiry sweep runs.
        gateway_timeout_seconds: Upper bound on any inventory gateway call.
        reuse_active_trade_on_open: Opening a trade while already in one
            returns the existing trade instead of failing.
        inventory_backend: "memory" or "sql".
        database_url: SQLAlchemy URL used by the sql backend and session store.
        persist_sessions: Write trade sessions through to the database.
            Requires the sql inventory backend.
        audit_history_size: Finished trades kept in memory for audit.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "TradeEscrow"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    trade_ttl_minutes: float = 10.0
    reaper_interval_seconds: float = 30.0
    gateway_timeout_seconds: float = 5.0
    reuse_active_trade_on_open: bool = True

    inventory_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite:///./data/escrow.db"
    persist_sessions: bool = False
    audit_history_size: int = 200

    @model_validator(mode="after")
    def check_session_persistence(self) -> "Settings":
        # Restored READY/LOCKED sessions rely on asset locks stored with the assets.
        if self.persist_sessions and self.inventory_backend != "sql":
            raise ValueError(
                "persist_sessions requires inventory_backend=\"sql\": "
                "in-memory escrow locks do not survive a restart."
            )
        return self


settings = Settings()
