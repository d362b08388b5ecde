"""
Use case: Declare (or withdraw) readiness in the actor's active trade.

Input: SetReadinessCommand (actor, ready flag)
Output: TradeView
Side effects: When both sides are ready, escrows every offered asset
    and moves the trade to READY. Withdrawing readiness releases escrow
    and moves the trade back to OPEN.
Failure cases: NoActiveSessionError, InvalidTransitionError,
    AssetNotOwnedError, AssetLockedError, GatewayFailureError.
"""

from app.application.escrow.dtos import SetReadinessCommand, TradeView
from app.application.escrow.rendering import build_trade_view
from app.domain.escrow.entities import TradeStatus
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry


class SetReadinessUseCase:
    """Orchestrates readiness changes and the escrow step they trigger."""

    def __init__(self, registry: TradeRegistry, gateway: InventoryGateway) -> None:
        self._registry = registry
        self._gateway = gateway

    def execute(self, command: SetReadinessCommand) -> TradeView:
        """Run the set readiness use case.

        Args:
            command: Acting actor and the desired readiness.

        Returns:
            The trade after the change.
        """
        session = self._registry.require_active_for(command.actor_id)
        with session.lock:
            try:
                session.set_readiness(
                    command.actor_id,
                    command.ready,
                    self._gateway,
                    self._registry.now(),
                )
            finally:
                self._registry.commit(session)

            if session.status is TradeStatus.READY:
                message = f"Both sides are ready. Offers are locked in trade #{session.id}; accept to confirm."
            elif command.ready:
                message = f"You are ready. Waiting for {session.other_party(command.actor_id).label}."
            else:
                message = f"You are no longer ready in trade #{session.id}."
            return build_trade_view(session, self._gateway, message)
