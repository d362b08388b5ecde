"""
FastAPI router for the escrow bounded context.

One route per trade command. All routes delegate to use cases.
No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

from fastapi import APIRouter, Depends, Query

from app.application.escrow.accept_trade import AcceptTradeUseCase
from app.application.escrow.cancel_trade import CancelTradeUseCase
from app.application.escrow.dtos import (
    ActorCommand,
    AssetView,
    ListInventoryQuery,
    OfferCommand,
    OpenTradeCommand,
    PartyView,
    SetReadinessCommand,
    ShowTradeQuery,
    TradeView,
)
from app.application.escrow.list_inventory import ListInventoryUseCase
from app.application.escrow.manage_offers import AddOfferUseCase, RemoveOfferUseCase
from app.application.escrow.open_trade import OpenTradeUseCase
from app.application.escrow.set_readiness import SetReadinessUseCase
from app.application.escrow.show_trade import ShowTradeUseCase
from app.infrastructure.escrow.reaper_scheduler import ReaperScheduler
from app.interfaces.escrow.dependencies import (
    get_accept_trade_use_case,
    get_add_offer_use_case,
    get_cancel_trade_use_case,
    get_list_inventory_use_case,
    get_open_trade_use_case,
    get_reaper_scheduler,
    get_remove_offer_use_case,
    get_set_readiness_use_case,
    get_show_trade_use_case,
)
from app.interfaces.escrow.schemas import (
    ActorRequest,
    AssetItem,
    ErrorResponse,
    InventoryResponse,
    OfferRequest,
    OpenTradeRequest,
    PartyItem,
    ReadinessRequest,
    ReaperStatusResponse,
    TradeResponse,
)

router = APIRouter(prefix="/escrow", tags=["escrow"])

TRADE_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _asset_item(asset: AssetView) -> AssetItem:
    return AssetItem(
        instance_id=asset.instance_id,
        owner_id=asset.owner_id,
        metadata=asset.metadata,
        locked=asset.locked,
        label=asset.label,
    )


def _party_item(party: PartyView) -> PartyItem:
    return PartyItem(
        actor_id=party.actor_id,
        display_name=party.display_name,
        offered=[_asset_item(a) for a in party.offered],
        ready=party.ready,
        accepted=party.accepted,
    )


def _trade_response(view: TradeView) -> TradeResponse:
    return TradeResponse(
        session_id=view.session_id,
        status=view.status,
        a=_party_item(view.a),
        b=_party_item(view.b),
        created_at=view.created_at,
        updated_at=view.updated_at,
        expires_at=view.expires_at,
        message=view.message,
        summary=view.summary,
    )


@router.post(
    "/trades",
    response_model=TradeResponse,
    responses=TRADE_ERRORS,
    summary="Open a trade",
    description="Open a trade with another actor, or return the caller's active trade.",
)
def open_trade(
    request: OpenTradeRequest,
    use_case: OpenTradeUseCase = Depends(get_open_trade_use_case),
) -> TradeResponse:
    """Open a trade between the caller and a target actor."""
    command = OpenTradeCommand(
        actor_id=request.actor_id,
        target_id=request.target_id,
        actor_name=request.actor_name,
        target_name=request.target_name,
    )
    return _trade_response(use_case.execute(command))


@router.post(
    "/trades/offers",
    response_model=TradeResponse,
    responses=TRADE_ERRORS,
    summary="Offer an asset",
    description="Add an owned asset to the caller's side of their active trade.",
)
def offer_asset(
    request: OfferRequest,
    use_case: AddOfferUseCase = Depends(get_add_offer_use_case),
) -> TradeResponse:
    """Offer an asset in the active trade."""
    command = OfferCommand(actor_id=request.actor_id, asset_id=request.asset_id)
    return _trade_response(use_case.execute(command))


@router.post(
    "/trades/offers/withdraw",
    response_model=TradeResponse,
    responses=TRADE_ERRORS,
    summary="Withdraw an asset",
    description="Remove an asset from the caller's side of their active trade.",
)
def withdraw_asset(
    request: OfferRequest,
    use_case: RemoveOfferUseCase = Depends(get_remove_offer_use_case),
) -> TradeResponse:
    """Withdraw an offered asset from the active trade."""
    command = OfferCommand(actor_id=request.actor_id, asset_id=request.asset_id)
    return _trade_response(use_case.execute(command))


@router.post(
    "/trades/readiness",
    response_model=TradeResponse,
    responses=TRADE_ERRORS,
    summary="Set readiness",
    description="Declare or withdraw readiness. Offers are escrowed once both sides are ready.",
)
def set_readiness(
    request: ReadinessRequest,
    use_case: SetReadinessUseCase = Depends(get_set_readiness_use_case),
) -> TradeResponse:
    """Set the caller's readiness in the active trade."""
    command = SetReadinessCommand(actor_id=request.actor_id, ready=request.ready)
    return _trade_response(use_case.execute(command))


@router.post(
    "/trades/accept",
    response_model=TradeResponse,
    responses=TRADE_ERRORS,
    summary="Accept the trade",
    description="Confirm the trade. The swap runs once both sides have accepted.",
)
def accept_trade(
    request: ActorRequest,
    use_case: AcceptTradeUseCase = Depends(get_accept_trade_use_case),
) -> TradeResponse:
    """Accept the active trade."""
    return _trade_response(use_case.execute(ActorCommand(actor_id=request.actor_id)))


@router.post(
    "/trades/cancel",
    response_model=TradeResponse,
    responses=TRADE_ERRORS,
    summary="Cancel the trade",
    description="Cancel the active trade and release all escrowed assets.",
)
def cancel_trade(
    request: ActorRequest,
    use_case: CancelTradeUseCase = Depends(get_cancel_trade_use_case),
) -> TradeResponse:
    """Cancel the active trade."""
    return _trade_response(use_case.execute(ActorCommand(actor_id=request.actor_id)))


@router.get(
    "/trades/active",
    response_model=TradeResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Show the active trade",
    description="Render both offer lists, readiness, acceptance and status.",
)
def show_trade(
    actor_id: str = Query(..., min_length=1, max_length=64),
    use_case: ShowTradeUseCase = Depends(get_show_trade_use_case),
) -> TradeResponse:
    """Show the caller's active trade."""
    return _trade_response(use_case.execute(ShowTradeQuery(actor_id=actor_id)))


@router.get(
    "/inventory/{actor_id}",
    response_model=InventoryResponse,
    responses={503: {"model": ErrorResponse}},
    summary="List owned assets",
    description="Snapshot of the assets an actor owns, with escrow flags.",
)
def list_inventory(
    actor_id: str,
    use_case: ListInventoryUseCase = Depends(get_list_inventory_use_case),
) -> InventoryResponse:
    """List an actor's assets."""
    assets = use_case.execute(ListInventoryQuery(actor_id=actor_id))
    return InventoryResponse(
        actor_id=actor_id, assets=[_asset_item(a) for a in assets]
    )


@router.get(
    "/reaper",
    response_model=ReaperStatusResponse,
    summary="Expiry reaper status",
    description="Scheduler state and the most recent expiry sweeps.",
)
def reaper_status(
    scheduler: ReaperScheduler = Depends(get_reaper_scheduler),
) -> ReaperStatusResponse:
    """Return the expiry reaper status."""
    return ReaperStatusResponse(**scheduler.get_status())
