"""
Trade session state machine.

One TradeSession is one negotiation between two actors. It owns both
offer lists, the readiness and acceptance flags, and the session's timing.

States:
    OPEN -> READY -> LOCKED -> COMPLETE   (happy path)
    OPEN | READY | LOCKED -> CANCELLED | EXPIRED

Every mutating method takes the session's own lock, so all operations
on one session form a single linear history while different sessions
proceed in parallel. Escrow lives on the assets themselves (their lock
token, held by the InventoryGateway); the session never keeps a copy.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any

from app.domain.escrow.entities import Actor, Party, TradeStatus
from app.domain.escrow.errors import (
    AssetLockedError,
    AssetNotInOfferError,
    AssetNotOwnedError,
    EscrowDomainError,
    GatewayFailureError,
    InvalidTransitionError,
    NoActiveSessionError,
    NotAParticipantError,
)
from app.domain.escrow.ports import InventoryGateway

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=10)

_CLOSING = {TradeStatus.CANCELLED, TradeStatus.EXPIRED}

ALLOWED_TRANSITIONS: dict[TradeStatus, set[TradeStatus]] = {
    TradeStatus.OPEN: {TradeStatus.READY} | _CLOSING,
    TradeStatus.READY: {TradeStatus.OPEN, TradeStatus.LOCKED} | _CLOSING,
    TradeStatus.LOCKED: {TradeStatus.OPEN, TradeStatus.COMPLETE} | _CLOSING,
    TradeStatus.COMPLETE: set(),
    TradeStatus.CANCELLED: set(),
    TradeStatus.EXPIRED: set(),
}


class TradeSession:
    """State machine for exactly one negotiation between two parties."""

    def __init__(
        self,
        session_id: str,
        a: Party,
        b: Party,
        created_at: datetime,
        ttl: timedelta = DEFAULT_TTL,
        status: TradeStatus = TradeStatus.OPEN,
        updated_at: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> None:
        if a.actor_id == b.actor_id:
            raise ValueError("A trade needs two distinct parties.")
        self.id = session_id
        self.status = status
        self.a = a
        self.b = b
        self.created_at = created_at
        self.updated_at = updated_at or created_at
        self.expires_at = expires_at or created_at + ttl
        self._lock = threading.RLock()

    @classmethod
    def open(
        cls,
        session_id: str,
        initiator: Actor,
        counterparty: Actor,
        now: datetime,
        ttl: timedelta = DEFAULT_TTL,
    ) -> "TradeSession":
        """Create a fresh OPEN session with empty offers on both sides."""
        return cls(
            session_id=session_id,
            a=Party(actor_id=initiator.actor_id, display_name=initiator.display_name),
            b=Party(
                actor_id=counterparty.actor_id, display_name=counterparty.display_name
            ),
            created_at=now,
            ttl=ttl,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def parties(self) -> tuple[Party, Party]:
        return self.a, self.b

    def is_participant(self, actor_id: str) -> bool:
        return actor_id in (self.a.actor_id, self.b.actor_id)

    def party_for(self, actor_id: str) -> Party:
        if self.a.actor_id == actor_id:
            return self.a
        if self.b.actor_id == actor_id:
            return self.b
        raise NotAParticipantError(actor_id, self.id)

    def other_party(self, actor_id: str) -> Party:
        return self.b if self.party_for(actor_id) is self.a else self.a

    def is_overdue(self, now: datetime) -> bool:
        return now > self.expires_at

    # ------------------------------------------------------------------
    # Actor operations
    # ------------------------------------------------------------------

    def add_offer(
        self, actor_id: str, asset_id: str, gateway: InventoryGateway, now: datetime
    ) -> None:
        """Append an owned, unescrowed asset to the actor's offer.

        Any change to the offers clears both parties' readiness and
        acceptance and releases escrow already taken by this session.
        """
        with self._lock:
            party = self._party_in_active_session(actor_id)

            asset = next(
                (a for a in gateway.list_owned(actor_id) if a.instance_id == asset_id),
                None,
            )
            if asset is None:
                raise AssetNotOwnedError(actor_id, asset_id)
            if asset.lock_token is not None and asset.lock_token != self.id:
                raise AssetLockedError(asset_id, asset.lock_token)

            self._invalidate_commitments(gateway)
            if asset_id not in party.offered:
                party.offered.append(asset_id)
            self.updated_at = now
            logger.info("Trade #%s: %s offered %s", self.id, actor_id, asset_id)

    def remove_offer(
        self, actor_id: str, asset_id: str, gateway: InventoryGateway, now: datetime
    ) -> None:
        """Withdraw an asset from the actor's offer."""
        with self._lock:
            party = self._party_in_active_session(actor_id)
            if asset_id not in party.offered:
                raise AssetNotInOfferError(self.id, asset_id)

            self._invalidate_commitments(gateway)
            party.offered.remove(asset_id)
            self.updated_at = now
            logger.info("Trade #%s: %s withdrew %s", self.id, actor_id, asset_id)

    def set_readiness(
        self, actor_id: str, ready: bool, gateway: InventoryGateway, now: datetime
    ) -> None:
        """Set the actor's readiness, escrowing all offers once both are ready.

        If escrow cannot be taken for every offered asset, the locks taken
        in this attempt are released, the session stays OPEN, the actor's
        readiness is withdrawn and the error propagates.
        """
        with self._lock:
            party = self._party_in_active_session(actor_id)
            if self.status not in (TradeStatus.OPEN, TradeStatus.READY):
                raise InvalidTransitionError(
                    self.id, "readiness can only change while OPEN or READY."
                )

            both_ready = ready and self.other_party(actor_id).ready
            if not both_ready and self.status is TradeStatus.READY:
                # Flags and status only change once escrow is released.
                gateway.unlock_all(self.id)
                party.ready = ready
                self._transition(TradeStatus.OPEN)
            elif both_ready and self.status is TradeStatus.OPEN:
                party.ready = True
                try:
                    self._escrow_offers(gateway)
                except EscrowDomainError:
                    party.ready = False
                    raise
                self._transition(TradeStatus.READY)
            else:
                party.ready = ready

            self.a.accepted = self.b.accepted = False
            self.updated_at = now

    def accept(self, actor_id: str, gateway: InventoryGateway, now: datetime) -> None:
        """Record the actor's acceptance and swap once both have accepted.

        The swap is gated on both acceptance flags, which are only read
        here under the session lock, so concurrent accepts trigger it once.
        """
        with self._lock:
            party = self._party_in_active_session(actor_id)
            if self.status not in (TradeStatus.READY, TradeStatus.LOCKED):
                raise InvalidTransitionError(
                    self.id, "both sides must be READY before accepting."
                )

            party.accepted = True
            self.updated_at = now
            if self.status is TradeStatus.READY:
                self._transition(TradeStatus.LOCKED)

            if self.a.accepted and self.b.accepted:
                self._swap(gateway)
                self.updated_at = now

    def cancel(self, actor_id: str, gateway: InventoryGateway, now: datetime) -> None:
        """Release all escrow and close the session as CANCELLED."""
        with self._lock:
            self._party_in_active_session(actor_id)
            self._close(TradeStatus.CANCELLED, gateway, now)

    # ------------------------------------------------------------------
    # Reaper operation
    # ------------------------------------------------------------------

    def expire(self, now: datetime, gateway: InventoryGateway) -> bool:
        """Close the session as EXPIRED if it is overdue.

        Returns:
            True if the session transitioned to EXPIRED.
        """
        with self._lock:
            if self.is_terminal or not self.is_overdue(now):
                return False
            self._close(TradeStatus.EXPIRED, gateway, now)
            return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _party_in_active_session(self, actor_id: str) -> Party:
        party = self.party_for(actor_id)
        if self.is_terminal:
            raise NoActiveSessionError(actor_id)
        return party

    def _transition(self, target: TradeStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                self.id, f"cannot move from {self.status.value} to {target.value}."
            )
        logger.info("Trade #%s: %s -> %s", self.id, self.status.value, target.value)
        self.status = target

    def _invalidate_commitments(self, gateway: InventoryGateway) -> None:
        if self.status in (TradeStatus.READY, TradeStatus.LOCKED):
            gateway.unlock_all(self.id)
            self._transition(TradeStatus.OPEN)
        for p in self.parties:
            p.ready = False
            p.accepted = False

    def _escrow_offers(self, gateway: InventoryGateway) -> None:
        try:
            for p in self.parties:
                for asset_id in p.offered:
                    gateway.lock(p.actor_id, asset_id, self.id)
        except EscrowDomainError as exc:
            logger.warning("Trade #%s: escrow failed: %s", self.id, exc.message)
            gateway.unlock_all(self.id)
            raise

    def _verify_escrow(self, gateway: InventoryGateway) -> None:
        for p in self.parties:
            owned = {a.instance_id: a for a in gateway.list_owned(p.actor_id)}
            for asset_id in p.offered:
                asset = owned.get(asset_id)
                if asset is None or asset.lock_token != self.id:
                    raise GatewayFailureError(
                        f"asset {asset_id} is no longer escrowed by this trade",
                        session_id=self.id,
                    )

    def _swap(self, gateway: InventoryGateway) -> None:
        try:
            self._verify_escrow(gateway)
            gateway.exchange(
                self.a.actor_id,
                self.b.actor_id,
                list(self.a.offered),
                list(self.b.offered),
                self.id,
            )
        except GatewayFailureError:
            logger.error("Trade #%s: swap aborted, session stays LOCKED", self.id)
            raise
        except EscrowDomainError as exc:
            logger.error("Trade #%s: swap aborted: %s", self.id, exc.message)
            raise GatewayFailureError(exc.message, session_id=self.id) from exc

        # exchange() clears the lock token of every moved asset
        self._transition(TradeStatus.COMPLETE)
        logger.info(
            "Trade #%s complete: %d asset(s) to %s, %d asset(s) to %s",
            self.id,
            len(self.a.offered),
            self.b.actor_id,
            len(self.b.offered),
            self.a.actor_id,
        )

    def _close(
        self, target: TradeStatus, gateway: InventoryGateway, now: datetime
    ) -> None:
        gateway.unlock_all(self.id)
        self._transition(target)
        self.updated_at = now

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """Serialize to a plain record (one per session, keyed by id)."""
        with self._lock:
            return {
                "id": self.id,
                "status": self.status.value,
                "created_at": self.created_at.isoformat(),
                "updated_at": self.updated_at.isoformat(),
                "expires_at": self.expires_at.isoformat(),
                "a": self.a.to_record(),
                "b": self.b.to_record(),
            }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "TradeSession":
        return cls(
            session_id=record["id"],
            status=TradeStatus(record["status"]),
            a=Party.from_record(record["a"]),
            b=Party.from_record(record["b"]),
            created_at=datetime.fromisoformat(record["created_at"]),
            updated_at=datetime.fromisoformat(record["updated_at"]),
            expires_at=datetime.fromisoformat(record["expires_at"]),
        )
