import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from app.adapters.ghl_client import GHLError
from app.api.deps import get_inventory_service, get_sync_scheduler
from app.services.inventory_service import InventoryService
from app.services.sync_scheduler import SyncScheduler

log = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/products")
def sync_products(svc: InventoryService = Depends(get_inventory_service)):
    log.info("Manual product sync requested")
    try:
        products = svc.sync_products()
    except GHLError as e:
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Sync failed",
                "details": str(e),
                "suggestion": "Check GHL credentials and network connection",
            },
        )
    return {
        "success": True,
        "message": f"Successfully synchronized {len(products)} products",
        "products": len(products),
        "lastSync": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/status")
def sync_status(
    svc: InventoryService = Depends(get_inventory_service),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    return svc.sync_status(sync_active=scheduler.running)


@router.post("/start")
def start(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    scheduler.start()
    return {
        "success": True,
        "message": "Product synchronization service started",
        "interval": f"{scheduler.interval_seconds} seconds",
    }


@router.post("/stop")
def stop(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    scheduler.stop()
    return {"success": True, "message": "Product synchronization service stopped"}
