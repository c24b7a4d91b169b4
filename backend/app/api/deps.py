from typing import Optional

from fastapi import Depends

from app.adapters.ghl_client import GHLClient
from app.adapters.notifier import LowStockNotifier
from app.adapters.stripe_terminal import StripeTerminalAdapter
from app.adapters.token_store import TokenStore
from app.config import settings
from app.services.inventory_service import InventoryService, inventory_cache
from app.services.sync_scheduler import SyncScheduler

_scheduler: Optional[SyncScheduler] = None


def build_ghl_client() -> GHLClient:
    return GHLClient(settings, TokenStore(settings.TOKEN_FILE))


def get_ghl_client() -> GHLClient:
    return build_ghl_client()


def get_notifier() -> LowStockNotifier:
    return LowStockNotifier.from_settings(settings)


def get_terminal_adapter() -> StripeTerminalAdapter:
    return StripeTerminalAdapter(
        settings.STRIPE_SECRET_KEY,
        currency=settings.STRIPE_CURRENCY,
        publishable_key=settings.STRIPE_PUBLISHABLE_KEY,
        environment=settings.ENVIRONMENT,
    )


def get_inventory_service(
    client: GHLClient = Depends(get_ghl_client),
    notifier: LowStockNotifier = Depends(get_notifier),
) -> InventoryService:
    return InventoryService(client, settings, inventory_cache, notifier)


def _scheduled_sync():
    return InventoryService(build_ghl_client(), settings, inventory_cache).sync_products()


def get_sync_scheduler() -> SyncScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = SyncScheduler(_scheduled_sync, settings.SYNC_INTERVAL_SECONDS)
    return _scheduler
