"""
Health check router.

Provides a simple health endpoint for liveness/readiness probes.
Reports the version, the number of open trades and whether the
expiry reaper is running. No business logic.
"""

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.domain.escrow.registry import TradeRegistry
from app.infrastructure.escrow.reaper_scheduler import ReaperScheduler
from app.interfaces.escrow.dependencies import get_reaper_scheduler, get_trade_registry
from app.interfaces.escrow.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application health status and version.",
)
def health_check(
    registry: TradeRegistry = Depends(get_trade_registry),
    scheduler: ReaperScheduler = Depends(get_reaper_scheduler),
) -> HealthResponse:
    """Return current application health status."""
    return HealthResponse(
        status="ok",
        version=settings.version,
        active_trades=len(registry.active_sessions()),
        reaper_running=scheduler.is_running,
    )
