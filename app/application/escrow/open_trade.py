"""
Use case: Open a trade between two actors.

Input: OpenTradeCommand (actor, target, display names)
Output: TradeView
Side effects: Registers a new OPEN session (no assets touched).
Failure cases: SelfTradeError, AlreadyInTradeError.
"""

import logging

from app.application.escrow.dtos import OpenTradeCommand, TradeView
from app.application.escrow.rendering import build_trade_view
from app.domain.escrow.entities import Actor
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry

logger = logging.getLogger(__name__)


class OpenTradeUseCase:
    """Orchestrates opening a trade.

    When reuse_existing is set, an initiator who already has an active
    trade gets that trade back instead of an error.
    """

    def __init__(
        self,
        registry: TradeRegistry,
        gateway: InventoryGateway,
        reuse_existing: bool = True,
    ) -> None:
        self._registry = registry
        self._gateway = gateway
        self._reuse_existing = reuse_existing

    def execute(self, command: OpenTradeCommand) -> TradeView:
        """Run the open trade use case.

        Args:
            command: Initiator and counterparty identities.

        Returns:
            The new (or already active) trade.

        Raises:
            SelfTradeError: If the actor targets themselves.
            AlreadyInTradeError: If either actor is busy (or the initiator
                is, with reuse disabled).
        """
        initiator = Actor(command.actor_id, command.actor_name)
        counterparty = Actor(command.target_id, command.target_name)

        session, created = self._registry.find_or_create(
            initiator, counterparty, reuse_existing=self._reuse_existing
        )

        with session.lock:
            other = session.other_party(command.actor_id)
            if created:
                message = (
                    f"Opened trade #{session.id} with {other.label}. "
                    "Offer assets, then mark ready and accept."
                )
            else:
                logger.info(
                    "Reusing trade #%s for %s", session.id, command.actor_id
                )
                message = f"You already have trade #{session.id} open with {other.label}."
            return build_trade_view(session, self._gateway, message)
