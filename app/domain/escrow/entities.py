"""
Domain entities for the escrow bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class TradeStatus(Enum):
    """Lifecycle status of a trade session."""

    OPEN = "OPEN"
    READY = "READY"
    LOCKED = "LOCKED"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        """Return True once no further mutation is permitted."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {TradeStatus.COMPLETE, TradeStatus.CANCELLED, TradeStatus.EXPIRED}
)


@dataclass(frozen=True)
class Actor:
    """A user able to own assets and take part in trades."""

    actor_id: str
    display_name: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.actor_id


@dataclass(frozen=True)
class Asset:
    """A uniquely identified collectible owned by exactly one actor.

    Attributes:
        instance_id: Stable instance identifier, never reused.
        owner_id: Actor currently owning the asset.
        metadata: Descriptive attributes, opaque to the trade core.
        lock_token: Id of the session holding the asset in escrow, if any.
    """

    instance_id: str
    owner_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    lock_token: Optional[str] = None

    @property
    def is_locked(self) -> bool:
        return self.lock_token is not None


@dataclass
class Party:
    """One actor's side of a trade session."""

    actor_id: str
    display_name: str
    offered: list[str] = field(default_factory=list)
    ready: bool = False
    accepted: bool = False

    @property
    def label(self) -> str:
        return self.display_name or self.actor_id

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.actor_id,
            "display_name": self.display_name,
            "offered": list(self.offered),
            "ready": self.ready,
            "accepted": self.accepted,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Party":
        return cls(
            actor_id=str(record["id"]),
            display_name=record.get("display_name") or "",
            offered=list(dict.fromkeys(record.get("offered") or [])),
            ready=bool(record.get("ready", False)),
            accepted=bool(record.get("accepted", False)),
        )
