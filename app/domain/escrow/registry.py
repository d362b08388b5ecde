"""
Trade registry: the collection of active trade sessions.

Indexes sessions by id and by participant, and enforces that an actor
takes part in at most one non-terminal session at a time. A single
short-lived mutex guards the index; session mutations are serialized by
each session's own lock, so different sessions never contend here.
"""

import logging
import secrets
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from app.domain.escrow.entities import Actor
from app.domain.escrow.errors import (
    AlreadyInTradeError,
    InvalidTransitionError,
    NoActiveSessionError,
    SelfTradeError,
)
from app.domain.escrow.ports import TradeSessionStore
from app.domain.escrow.trade_session import DEFAULT_TTL, TradeSession

logger = logging.getLogger(__name__)

SESSION_ID_LENGTH = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradeRegistry:
    """Owns every active TradeSession and the actor -> session index."""

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        store: Optional[TradeSessionStore] = None,
        clock: Callable[[], datetime] = utc_now,
        history_size: int = 200,
    ) -> None:
        self._ttl = ttl
        self._store = store
        self._clock = clock
        self._sessions: dict[str, TradeSession] = {}
        self._by_actor: dict[str, str] = {}
        self._history: deque[TradeSession] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    @property
    def clock(self) -> Callable[[], datetime]:
        return self._clock

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_active_for(self, actor_id: str) -> Optional[TradeSession]:
        """Return the actor's non-terminal session, if any."""
        with self._lock:
            return self._active_for(actor_id)

    def require_active_for(self, actor_id: str) -> TradeSession:
        """Return the actor's non-terminal session.

        Raises:
            NoActiveSessionError: If the actor has none.
        """
        session = self.find_active_for(actor_id)
        if session is None:
            raise NoActiveSessionError(actor_id)
        return session

    def get(self, session_id: str) -> Optional[TradeSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def active_sessions(self) -> list[TradeSession]:
        """Return a snapshot of the sessions currently indexed."""
        with self._lock:
            return [s for s in self._sessions.values() if not s.is_terminal]

    def history(self) -> list[TradeSession]:
        """Return terminal sessions retained for audit, oldest first."""
        with self._lock:
            return list(self._history)

    # ------------------------------------------------------------------
    # Create / remove
    # ------------------------------------------------------------------

    def create(self, initiator: Actor, counterparty: Actor) -> TradeSession:
        """Open a new session between two actors.

        Raises:
            SelfTradeError: If both actors are the same.
            AlreadyInTradeError: If either actor already has an active session.
        """
        with self._lock:
            session = self._create(initiator, counterparty)
        self.save(session)
        return session

    def find_or_create(
        self, initiator: Actor, counterparty: Actor, reuse_existing: bool = True
    ) -> tuple[TradeSession, bool]:
        """Atomically return the initiator's active session or open a new one.

        Returns:
            The session and whether it was newly created.
        """
        with self._lock:
            existing = self._active_for(initiator.actor_id)
            if existing is not None and reuse_existing:
                return existing, False
            session = self._create(initiator, counterparty)
        self.save(session)
        return session, True

    def remove(self, session_id: str) -> None:
        """Move a terminal session out of the active index into history.

        Raises:
            InvalidTransitionError: If the session is still active.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return
            if not session.is_terminal:
                raise InvalidTransitionError(
                    session_id, "only finished trades can be removed."
                )
            self._retire(session)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, session: TradeSession) -> None:
        """Write the session through to the store, if one is configured."""
        if self._store is not None:
            self._store.save(session.to_record())

    def commit(self, session: TradeSession) -> None:
        """Persist a session after a mutation, retiring it once terminal."""
        self.save(session)
        if session.is_terminal:
            self.remove(session.id)

    def load(self) -> int:
        """Rebuild the active index from the store.

        Returns:
            Number of sessions restored.
        """
        if self._store is None:
            return 0
        restored = 0
        records = self._store.load_active()
        with self._lock:
            for record in records:
                session = TradeSession.from_record(record)
                if session.is_terminal:
                    continue
                self._sessions[session.id] = session
                self._by_actor[session.a.actor_id] = session.id
                self._by_actor[session.b.actor_id] = session.id
                restored += 1
        logger.info("Restored %d active trade session(s).", restored)
        return restored

    # ------------------------------------------------------------------
    # Internals (caller holds self._lock)
    # ------------------------------------------------------------------

    def _active_for(self, actor_id: str) -> Optional[TradeSession]:
        session_id = self._by_actor.get(actor_id)
        if session_id is None:
            return None
        session = self._sessions.get(session_id)
        if session is None or session.is_terminal:
            if session is not None:
                self._retire(session)
            else:
                del self._by_actor[actor_id]
            return None
        return session

    def _create(self, initiator: Actor, counterparty: Actor) -> TradeSession:
        if initiator.actor_id == counterparty.actor_id:
            raise SelfTradeError(initiator.actor_id)
        for actor in (initiator, counterparty):
            active = self._active_for(actor.actor_id)
            if active is not None:
                raise AlreadyInTradeError(actor.actor_id, active.id)

        session = TradeSession.open(
            session_id=self._new_session_id(),
            initiator=initiator,
            counterparty=counterparty,
            now=self._clock(),
            ttl=self._ttl,
        )
        self._sessions[session.id] = session
        self._by_actor[initiator.actor_id] = session.id
        self._by_actor[counterparty.actor_id] = session.id
        logger.info(
            "Opened trade #%s between %s and %s",
            session.id,
            initiator.actor_id,
            counterparty.actor_id,
        )
        return session

    def _new_session_id(self) -> str:
        while True:
            session_id = secrets.token_urlsafe(8)[:SESSION_ID_LENGTH]
            if session_id not in self._sessions and all(
                s.id != session_id for s in self._history
            ):
                return session_id

    def _retire(self, session: TradeSession) -> None:
        self._sessions.pop(session.id, None)
        for party in session.parties:
            if self._by_actor.get(party.actor_id) == session.id:
                del self._by_actor[party.actor_id]
        self._history.append(session)
        logger.debug("Retired trade #%s (%s)", session.id, session.status.value)
