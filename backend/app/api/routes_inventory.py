import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from app.adapters.ghl_client import GHLAPIError, GHLAuthError, GHLError
from app.api.deps import get_inventory_service
from app.repositories.json_store import JsonStoreError
from app.schemas.pos_schema import UpdateInventoryRequest
from app.services.inventory_service import (
    InventoryException,
    InventoryService,
    InventoryUnavailable,
    ItemNotFound,
)

log = logging.getLogger(__name__)

router = APIRouter(tags=["inventory"])


def _raise(e: InventoryException):
    if isinstance(e, (InventoryUnavailable, ItemNotFound)):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


def sync_quietly(svc: InventoryService):
    try:
        svc.sync_products()
    except GHLError as e:
        log.error("Post-update sync failed: %s", e)


@router.get("/inventory")
def get_inventory(refresh: bool = False, svc: InventoryService = Depends(get_inventory_service)):
    return svc.get_inventory(force_refresh=refresh)


@router.post("/update-inventory")
def update_inventory(
    payload: UpdateInventoryRequest,
    background: BackgroundTasks,
    forceGhl: bool = False,
    svc: InventoryService = Depends(get_inventory_service),
):
    cart = [line.model_dump() for line in payload.cart]
    log.info("Inventory update request received (%s lines)", len(cart))
    try:
        result = svc.update_inventory(cart, force_ghl=forceGhl)
    except GHLAuthError as e:
        raise HTTPException(
            status_code=401,
            detail={"error": str(e), "suggestion": "Re-authorize GHL access via /auth"},
        )
    except GHLError as e:
        body = e.body if isinstance(e, GHLAPIError) else str(e)
        log.error("GHL update-inventory failed: %s", body)
        raise HTTPException(
            status_code=500,
            detail={
                "error": body,
                "suggestion": "Consider using local inventory mode or re-authorize GHL access",
            },
        )
    except (JsonStoreError, ValueError) as e:
        log.error("Local inventory update failed: %s", e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Local inventory update failed", "details": str(e)},
        )
    if result["method"] != "local":
        background.add_task(sync_quietly, svc)
    return result


@router.get("/inventory/{item_id}")
def get_item(item_id: str, svc: InventoryService = Depends(get_inventory_service)):
    try:
        return svc.get_local_item(item_id)
    except InventoryException as e:
        _raise(e)


@router.put("/inventory/{item_id}/quantity")
def set_quantity(item_id: str, payload: dict, svc: InventoryService = Depends(get_inventory_service)):
    """payload: { "quantity": 12 }"""
    try:
        return svc.set_local_quantity(item_id, payload.get("quantity"))
    except InventoryException as e:
        _raise(e)


@router.post("/inventory/add-product")
def add_product(payload: dict, svc: InventoryService = Depends(get_inventory_service)):
    """payload: { "name": "...", "price": 2.5, "quantity": 20, "description": "..." }"""
    try:
        return svc.add_local_product(
            payload.get("name"), payload.get("price"), payload.get("quantity"), payload.get("description")
        )
    except InventoryException as e:
        _raise(e)


@router.delete("/inventory/{item_id}")
def delete_item(item_id: str, svc: InventoryService = Depends(get_inventory_service)):
    try:
        return svc.delete_local_item(item_id)
    except InventoryException as e:
        _raise(e)


@router.put("/inventory/{item_id}")
def update_item(item_id: str, payload: dict, svc: InventoryService = Depends(get_inventory_service)):
    try:
        return svc.update_local_item(item_id, payload)
    except InventoryException as e:
        _raise(e)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="price and quantity must be numbers")
