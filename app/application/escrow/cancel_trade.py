"""
Use case: Cancel the actor's active trade.

Input: ActorCommand (actor)
Output: TradeView
Side effects: Releases every escrow lock held by the trade and moves
    it to CANCELLED.
Failure cases: NoActiveSessionError, GatewayFailureError.
"""

from app.application.escrow.dtos import ActorCommand, TradeView
from app.application.escrow.rendering import build_trade_view
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry


class CancelTradeUseCase:
    """Orchestrates cancelling a trade by either participant."""

    def __init__(self, registry: TradeRegistry, gateway: InventoryGateway) -> None:
        self._registry = registry
        self._gateway = gateway

    def execute(self, command: ActorCommand) -> TradeView:
        """Run the cancel trade use case.

        Waits for any in-flight operation on the trade (including a swap)
        to finish; if that operation completed the trade, the actor no
        longer has an active session.
        """
        session = self._registry.require_active_for(command.actor_id)
        with session.lock:
            session.cancel(command.actor_id, self._gateway, self._registry.now())
            self._registry.commit(session)
            return build_trade_view(
                session, self._gateway, f"Trade #{session.id} cancelled."
            )
