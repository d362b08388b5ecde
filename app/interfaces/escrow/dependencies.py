"""
Dependency injection for the escrow bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
The gateway, registry and reaper scheduler are process-wide singletons:
every request must see the same trades and the same escrow state.
These are the composition root for the escrow context.
"""

import logging
from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.engine import Engine

from app.application.escrow.accept_trade import AcceptTradeUseCase
from app.application.escrow.cancel_trade import CancelTradeUseCase
from app.application.escrow.expire_sessions import ExpiryReaper
from app.application.escrow.list_inventory import ListInventoryUseCase
from app.application.escrow.manage_offers import AddOfferUseCase, RemoveOfferUseCase
from app.application.escrow.open_trade import OpenTradeUseCase
from app.application.escrow.set_readiness import SetReadinessUseCase
from app.application.escrow.show_trade import ShowTradeUseCase
from app.core.config import settings
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.registry import TradeRegistry
from app.infrastructure.escrow.database import build_engine
from app.infrastructure.escrow.in_memory_inventory import InMemoryInventoryGateway
from app.infrastructure.escrow.reaper_scheduler import ReaperScheduler
from app.infrastructure.escrow.sql_inventory import SqlInventoryGateway
from app.infrastructure.escrow.sql_session_store import SqlTradeSessionStore
from app.infrastructure.escrow.timeout_gateway import TimeoutInventoryGateway

logger = logging.getLogger(__name__)


@lru_cache
def get_db_engine() -> Engine:
    """Build the SQLAlchemy engine from application settings."""
    return build_engine(settings.database_url, settings.gateway_timeout_seconds)


@lru_cache
def get_inventory_gateway() -> TimeoutInventoryGateway:
    """Build the configured inventory backend behind a bounded timeout."""
    if settings.inventory_backend == "sql":
        backend = SqlInventoryGateway(engine=get_db_engine())
        backend.ensure_schema()
    else:
        backend = InMemoryInventoryGateway()
    logger.info("Inventory backend: %s", settings.inventory_backend)
    return TimeoutInventoryGateway(backend, timeout_seconds=settings.gateway_timeout_seconds)


@lru_cache
def get_trade_registry() -> TradeRegistry:
    """Build the trade registry, restoring persisted sessions if enabled."""
    store = None
    if settings.persist_sessions:
        store = SqlTradeSessionStore(engine=get_db_engine())
        store.ensure_schema()

    registry = TradeRegistry(
        ttl=timedelta(minutes=settings.trade_ttl_minutes),
        store=store,
        history_size=settings.audit_history_size,
    )
    registry.load()
    return registry


@lru_cache
def get_reaper_scheduler() -> ReaperScheduler:
    """Build the background scheduler driving the expiry reaper."""
    reaper = ExpiryReaper(registry=get_trade_registry(), gateway=get_inventory_gateway())
    return ReaperScheduler(reaper, interval_seconds=settings.reaper_interval_seconds)


def get_open_trade_use_case(
    registry: TradeRegistry = Depends(get_trade_registry),
    gateway: InventoryGateway = Depends(get_inventory_gateway),
) -> OpenTradeUseCase:
    """Build OpenTradeUseCase with its dependencies."""
    return OpenTradeUseCase(
        registry=registry,
        gateway=gateway,
        reuse_existing=settings.reuse_active_trade_on_open,
    )


def get_add_offer_use_case(
    registry: TradeRegistry = Depends(get_trade_registry),
    gateway: InventoryGateway = Depends(get_inventory_gateway),
) -> AddOfferUseCase:
    """Build AddOfferUseCase with its dependencies."""
    return AddOfferUseCase(registry=registry, gateway=gateway)


def get_remove_offer_use_case(
    registry: TradeRegistry = Depends(get_trade_registry),
    gateway: InventoryGateway = Depends(get_inventory_gateway),
) -> RemoveOfferUseCase:
    """Build RemoveOfferUseCase with its dependencies."""
    return RemoveOfferUseCase(registry=registry, gateway=gateway)


def get_set_readiness_use_case(
    registry: TradeRegistry = Depends(get_trade_registry),
    gateway: InventoryGateway = Depends(get_inventory_gateway),
) -> SetReadinessUseCase:
    """Build SetReadinessUseCase with its dependencies."""
    return SetReadinessUseCase(registry=registry, gateway=gateway)


def get_accept_trade_use_case(
    registry: TradeRegistry = Depends(get_trade_registry),
    gateway: InventoryGateway = Depends(get_inventory_gateway),
) -> AcceptTradeUseCase:
    """Build AcceptTradeUseCase with its dependencies."""
    return AcceptTradeUseCase(registry=registry, gateway=gateway)


def get_cancel_trade_use_case(
    registry: TradeRegistry = Depends(get_trade_registry),
    gateway: InventoryGateway = Depends(get_inventory_gateway),
) -> CancelTradeUseCase:
    """Build CancelTradeUseCase with its dependencies."""
    return CancelTradeUseCase(registry=registry, gateway=gateway)


def get_show_trade_use_case(
    registry: TradeRegistry = Depends(get_trade_registry),
    gateway: InventoryGateway = Depends(get_inventory_gateway),
) -> ShowTradeUseCase:
    """Build ShowTradeUseCase with its dependencies."""
    return ShowTradeUseCase(registry=registry, gateway=gateway)


def get_list_inventory_use_case(
    gateway: InventoryGateway = Depends(get_inventory_gateway),
) -> ListInventoryUseCase:
    """Build ListInventoryUseCase with its dependencies."""
    return ListInventoryUseCase(gateway=gateway)
