"""
Pydantic schemas for escrow API request/response validation.

These schemas enforce input validation and define the API contract.
All fields use strict typing with constraints.
No business logic belongs here.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

ACTOR_DESCRIPTION = "Stable actor (user) identifier"
ASSET_DESCRIPTION = "Asset instance identifier"
ID_PATTERN = r"^[A-Za-z0-9_.:@-]+$"
ID_MAX_LEN = 64
NAME_MAX_LEN = 64


def actor_field(**kwargs: Any) -> Any:
    return Field(
        ...,
        min_length=1,
        max_length=ID_MAX_LEN,
        pattern=ID_PATTERN,
        description=ACTOR_DESCRIPTION,
        **kwargs,
    )


class OpenTradeRequest(BaseModel):
    """Request schema for opening a trade.

    Attributes:
        actor_id: Initiating actor.
        target_id: Counterparty actor.
        actor_name: Optional display name of the initiator.
        target_name: Optional display name of the counterparty.
    """

    actor_id: str = actor_field()
    target_id: str = actor_field()
    actor_name: str = Field(default="", max_length=NAME_MAX_LEN)
    target_name: str = Field(default="", max_length=NAME_MAX_LEN)


class OfferRequest(BaseModel):
    """Request schema for offering or withdrawing an asset."""

    actor_id: str = actor_field()
    asset_id: str = Field(
        ...,
        min_length=1,
        max_length=ID_MAX_LEN,
        pattern=ID_PATTERN,
        description=ASSET_DESCRIPTION,
    )


class ReadinessRequest(BaseModel):
    """Request schema for declaring or withdrawing readiness."""

    actor_id: str = actor_field()
    ready: bool = Field(default=True, description="True for ready, False for unready")


class ActorRequest(BaseModel):
    """Request schema for accept and cancel."""

    actor_id: str = actor_field()


class AssetItem(BaseModel):
    """A single asset in a response."""

    instance_id: str
    owner_id: str | None
    metadata: dict[str, Any]
    locked: bool
    label: str


class PartyItem(BaseModel):
    """One side of a trade."""

    actor_id: str
    display_name: str
    offered: list[AssetItem]
    ready: bool
    accepted: bool


class TradeResponse(BaseModel):
    """Response schema for every trade command."""

    session_id: str
    status: str
    a: PartyItem
    b: PartyItem
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    message: str
    summary: str


class InventoryResponse(BaseModel):
    """Response schema for an actor's inventory."""

    actor_id: str
    assets: list[AssetItem]


class SweepItem(BaseModel):
    """Summary of one expiry sweep."""

    started_at: str
    scanned: int
    expired: int
    failed: int


class ReaperStatusResponse(BaseModel):
    """Response schema for the expiry reaper status endpoint."""

    running: bool
    interval_seconds: float
    next_run: str | None
    recent_sweeps: list[SweepItem]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    active_trades: int
    reaper_running: bool


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: str | None = None
