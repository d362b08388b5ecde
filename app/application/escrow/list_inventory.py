"""
Use case: List the assets an actor owns.

Input: ListInventoryQuery (actor)
Output: list[AssetView]
Side effects: None (read-only query).
Failure cases: GatewayFailureError.
"""

from app.application.escrow.dtos import AssetView, ListInventoryQuery
from app.application.escrow.rendering import asset_view
from app.domain.escrow.ports import InventoryGateway


class ListInventoryUseCase:
    """Returns a display snapshot of an actor's inventory."""

    def __init__(self, gateway: InventoryGateway) -> None:
        self._gateway = gateway

    def execute(self, query: ListInventoryQuery) -> list[AssetView]:
        return [asset_view(a) for a in self._gateway.list_owned(query.actor_id)]
