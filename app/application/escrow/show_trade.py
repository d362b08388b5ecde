"""
Use case: Show the actor's active trade.

Input: ShowTradeQuery (actor)
Output: TradeView
Side effects: None (read-only query).
Failure cases: NoActiveSessionError.
"""

from app.application.escrow.dtos import ShowTradeQuery, TradeView
from app.application.escrow.rendering import build_trade_view
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry


class ShowTradeUseCase:
    """Renders both offer lists, flags and status of the active trade."""

    def __init__(self, registry: TradeRegistry, gateway: InventoryGateway) -> None:
        self._registry = registry
        self._gateway = gateway

    def execute(self, query: ShowTradeQuery) -> TradeView:
        session = self._registry.require_active_for(query.actor_id)
        with session.lock:
            return build_trade_view(
                session,
                self._gateway,
                f"Trade #{session.id} expires at {session.expires_at:%H:%M:%S} UTC.",
            )
