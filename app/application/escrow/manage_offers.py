"""
Use cases: Offer and withdraw assets in the actor's active trade.

Input: OfferCommand (actor, asset instance id)
Output: TradeView
Side effects: Changes the actor's offer list, clears both parties'
    readiness and acceptance, releases any escrow taken by the trade.
Failure cases: NoActiveSessionError, AssetNotOwnedError,
    AssetLockedError, AssetNotInOfferError.
"""

from app.application.escrow.dtos import OfferCommand, TradeView
from app.application.escrow.rendering import build_trade_view
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry


class AddOfferUseCase:
    """Orchestrates adding an owned asset to the actor's offer."""

    def __init__(self, registry: TradeRegistry, gateway: InventoryGateway) -> None:
        self._registry = registry
        self._gateway = gateway

    def execute(self, command: OfferCommand) -> TradeView:
        """Run the add offer use case.

        Args:
            command: Acting actor and the asset to offer.

        Returns:
            The trade after the change.
        """
        session = self._registry.require_active_for(command.actor_id)
        with session.lock:
            session.add_offer(
                command.actor_id, command.asset_id, self._gateway, self._registry.now()
            )
            self._registry.commit(session)
            return build_trade_view(
                session,
                self._gateway,
                f"Added #{command.asset_id} to trade #{session.id}.",
            )


class RemoveOfferUseCase:
    """Orchestrates withdrawing an asset from the actor's offer."""

    def __init__(self, registry: TradeRegistry, gateway: InventoryGateway) -> None:
        self._registry = registry
        self._gateway = gateway

    def execute(self, command: OfferCommand) -> TradeView:
        """Run the remove offer use case.

        Args:
            command: Acting actor and the asset to withdraw.

        Returns:
            The trade after the change.
        """
        session = self._registry.require_active_for(command.actor_id)
        with session.lock:
            session.remove_offer(
                command.actor_id, command.asset_id, self._gateway, self._registry.now()
            )
            self._registry.commit(session)
            return build_trade_view(
                session,
                self._gateway,
                f"Removed #{command.asset_id} from trade #{session.id}.",
            )
