import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from app.adapters.ghl_client import GHLAPIError, GHLClient, GHLError
from app.api.deps import get_ghl_client, get_inventory_service
from app.services.inventory_service import InventoryService

log = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])

SUCCESS_PAGE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px; border: 1px solid #ddd; border-radius: 8px;">
  <h2 style="color: #28a745;">GHL OAuth Successful!</h2>
  <p><strong>Tokens saved successfully.</strong></p>
  <p><strong>Valid until:</strong> {valid_until}</p>
  <p>Your POS system will now sync products from GoHighLevel automatically.</p>
  <p><strong>Automatic token refresh:</strong> Enabled</p>
  <hr style="margin: 20px 0;">
  <p><small>You can close this window and return to your POS system.</small></p>
</div>
"""


def sync_after_auth(inventory: InventoryService):
    try:
        products = inventory.sync_products()
        log.info("Initial sync completed with fresh tokens (%s products)", len(products))
    except GHLError as e:
        log.error("Initial sync failed even with fresh tokens: %s", e)


@router.get("/auth")
def auth(client: GHLClient = Depends(get_ghl_client)):
    return RedirectResponse(client.authorize_url(), status_code=302)


@router.get("/callback")
def callback(
    background: BackgroundTasks,
    code: Optional[str] = None,
    client: GHLClient = Depends(get_ghl_client),
    inventory: InventoryService = Depends(get_inventory_service),
):
    if not code:
        return PlainTextResponse("Missing code", status_code=400)
    try:
        tokens = client.exchange_code(code)
    except GHLAPIError as e:
        log.error("OAuth error: %s", e.body)
        return PlainTextResponse(f"OAuth Exchange failed: {e.body}", status_code=500)
    except GHLError as e:
        log.error("OAuth error: %s", e)
        return PlainTextResponse(f"OAuth Exchange failed: {e}", status_code=500)

    valid_until = datetime.fromtimestamp(tokens["expires_at"] / 1000).strftime("%Y-%m-%d %H:%M:%S")
    background.add_task(sync_after_auth, inventory)
    return HTMLResponse(SUCCESS_PAGE.format(valid_until=valid_until))


@router.get("/tokens/status")
def tokens_status(client: GHLClient = Depends(get_ghl_client)):
    return client.token_status()
