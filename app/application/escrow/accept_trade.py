"""
Use case: Accept the actor's active trade.

Input: ActorCommand (actor)
Output: TradeView
Side effects: Records acceptance and locks the trade; once both sides
    have accepted, swaps every offered asset and completes the trade.
Failure cases: NoActiveSessionError, InvalidTransitionError,
    GatewayFailureError (swap aborted, trade stays LOCKED).
"""

from app.application.escrow.dtos import ActorCommand, TradeView
from app.application.escrow.rendering import build_trade_view
from app.domain.escrow.entities import TradeStatus
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry


class AcceptTradeUseCase:
    """Orchestrates the final confirmation and the atomic swap."""

    def __init__(self, registry: TradeRegistry, gateway: InventoryGateway) -> None:
        self._registry = registry
        self._gateway = gateway

    def execute(self, command: ActorCommand) -> TradeView:
        """Run the accept trade use case.

        Args:
            command: The accepting actor.

        Returns:
            The trade after the acceptance (COMPLETE if the swap ran).
        """
        session = self._registry.require_active_for(command.actor_id)
        with session.lock:
            try:
                session.accept(command.actor_id, self._gateway, self._registry.now())
            finally:
                self._registry.commit(session)

            if session.status is TradeStatus.COMPLETE:
                message = f"Trade #{session.id} complete. Assets have been exchanged."
            else:
                other = session.other_party(command.actor_id)
                message = f"You accepted trade #{session.id}. Waiting for {other.label}."
            return build_trade_view(session, self._gateway, message)
