"""
Domain-specific errors for the escrow bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""


class EscrowDomainError(Exception):
    """Base error for all escrow domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class NoActiveSessionError(EscrowDomainError):
    """Raised when an actor has no active trade session."""

    def __init__(self, actor_id: str) -> None:
        super().__init__(f"No active trade for {actor_id}. Start one first.")
        self.actor_id = actor_id


class NotAParticipantError(EscrowDomainError):
    """Raised when an actor acts on a session they are not part of."""

    def __init__(self, actor_id: str, session_id: str) -> None:
        super().__init__(f"{actor_id} is not part of trade #{session_id}.")
        self.actor_id = actor_id
        self.session_id = session_id


class AlreadyInTradeError(EscrowDomainError):
    """Raised when an actor already has a non-terminal session."""

    def __init__(self, actor_id: str, session_id: str) -> None:
        super().__init__(f"{actor_id} is already in trade #{session_id}.")
        self.actor_id = actor_id
        self.session_id = session_id


class SelfTradeError(EscrowDomainError):
    """Raised when an actor tries to open a trade with themselves."""

    def __init__(self, actor_id: str) -> None:
        super().__init__(f"{actor_id} cannot trade with themselves.")
        self.actor_id = actor_id


class AssetNotOwnedError(EscrowDomainError):
    """Raised when an actor does not own the asset they reference."""

    def __init__(self, actor_id: str, asset_id: str) -> None:
        super().__init__(f"{actor_id} does not own an asset with id {asset_id}.")
        self.actor_id = actor_id
        self.asset_id = asset_id


class AssetLockedError(EscrowDomainError):
    """Raised when an asset is escrowed by a different session."""

    def __init__(self, asset_id: str, locked_by: str | None = None) -> None:
        super().__init__(f"Asset {asset_id} is locked by another trade.")
        self.asset_id = asset_id
        self.locked_by = locked_by


class InvalidTransitionError(EscrowDomainError):
    """Raised when an operation is not legal in the session's current state."""

    def __init__(self, session_id: str, reason: str) -> None:
        super().__init__(f"Trade #{session_id}: {reason}")
        self.session_id = session_id
        self.reason = reason


class AssetNotInOfferError(InvalidTransitionError):
    """Raised when withdrawing an asset the actor never offered."""

    def __init__(self, session_id: str, asset_id: str) -> None:
        super().__init__(session_id, f"asset {asset_id} is not in your offer.")
        self.asset_id = asset_id


class GatewayFailureError(EscrowDomainError):
    """Raised when the inventory gateway fails or an escrow check breaks."""

    def __init__(self, reason: str, session_id: str | None = None) -> None:
        super().__init__(f"Inventory gateway failure: {reason}")
        self.reason = reason
        self.session_id = session_id
