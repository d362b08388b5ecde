"""
Data Transfer Objects for the escrow application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class OpenTradeCommand:
    """Input DTO for opening a trade with another actor.

    Attributes:
        actor_id: Initiating actor.
        target_id: Counterparty actor.
        actor_name: Display name of the initiator.
        target_name: Display name of the counterparty.
    """

    actor_id: str
    target_id: str
    actor_name: str = ""
    target_name: str = ""


@dataclass(frozen=True)
class OfferCommand:
    """Input DTO for offering or withdrawing an asset.

    Attributes:
        actor_id: Acting participant.
        asset_id: Instance id of the asset.
    """

    actor_id: str
    asset_id: str


@dataclass(frozen=True)
class SetReadinessCommand:
    """Input DTO for declaring readiness (or withdrawing it).

    Attributes:
        actor_id: Acting participant.
        ready: True to declare ready, False to take it back.
    """

    actor_id: str
    ready: bool


@dataclass(frozen=True)
class ActorCommand:
    """Input DTO for operations needing only the acting actor (accept, cancel)."""

    actor_id: str


@dataclass(frozen=True)
class ShowTradeQuery:
    """Input DTO for rendering the actor's active trade."""

    actor_id: str


@dataclass(frozen=True)
class ListInventoryQuery:
    """Input DTO for listing the assets an actor owns."""

    actor_id: str


@dataclass(frozen=True)
class AssetView:
    """Output DTO for a single asset.

    Attributes:
        instance_id: Stable instance identifier.
        owner_id: Current owner, or None if no longer found.
        metadata: Descriptive attributes.
        locked: Whether the asset is currently escrowed.
        label: One-line human-readable rendering.
    """

    instance_id: str
    owner_id: str | None
    metadata: dict[str, Any]
    locked: bool
    label: str


@dataclass(frozen=True)
class PartyView:
    """Output DTO for one side of a trade."""

    actor_id: str
    display_name: str
    offered: list[AssetView] = field(default_factory=list)
    ready: bool = False
    accepted: bool = False


@dataclass(frozen=True)
class TradeView:
    """Output DTO describing a trade session after an operation.

    Attributes:
        session_id: Trade identifier.
        status: Current status value.
        a: Initiator's side.
        b: Counterparty's side.
        created_at: Creation timestamp.
        updated_at: Last-update timestamp.
        expires_at: Expiry timestamp.
        message: Human-readable status line for the acting actor.
        summary: Multi-line rendering of the whole trade.
    """

    session_id: str
    status: str
    a: PartyView
    b: PartyView
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    message: str
    summary: str


@dataclass(frozen=True)
class SweepResult:
    """Output DTO of one expiry sweep.

    Attributes:
        started_at: When the sweep began.
        scanned: Number of active sessions inspected.
        expired: Ids of sessions moved to EXPIRED.
        failed: Ids of sessions whose expiry failed (retried next tick).
    """

    started_at: datetime
    scanned: int
    expired: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
