import logging
import threading
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.adapters.ghl_client import GHLClient, GHLError
from app.adapters.notifier import LowStockNotifier
from app.repositories.json_store import JsonFileStore, JsonStoreError
from app.repositories.local_inventory_repo import LocalInventoryRepository

log = logging.getLogger(__name__)

DEMO_INVENTORY = [
    {"id": "demo-1", "name": "Sample Product 1", "price": 1.00, "quantity": 10, "priceId": "price-1"},
    {"id": "demo-2", "name": "Sample Product 2", "price": 2.50, "quantity": 15, "priceId": "price-2"},
    {"id": "demo-3", "name": "Sample Product 3", "price": 2.00, "quantity": 20, "priceId": "price-3"},
    {"id": "demo-4", "name": "Sample Product 4", "price": 4.50, "quantity": 8, "priceId": "price-4"},
    {"id": "demo-5", "name": "Sample Product 5", "price": 2.50, "quantity": 12, "priceId": "price-5"},
]
for _item in DEMO_INVENTORY:
    _item.update(description="Demo product for testing", image=None, source="demo")

# quantity assumed for snapshot rows that never recorded one
DEFAULT_LOCAL_QUANTITY = 20


class InventoryException(Exception):
    pass


class InventoryUnavailable(InventoryException):
    pass


class ItemNotFound(InventoryException):
    pass


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InventoryCache:
    """Process-wide copy of the last inventory served, shared by requests and the sync job."""

    def __init__(self):
        self._lock = threading.Lock()
        self.products: Optional[List[Dict]] = None
        self.last_sync: Optional[float] = None

    def set(self, products: List[Dict], synced: bool = True) -> None:
        with self._lock:
            self.products = products
            if synced:
                self.last_sync = time.time()

    def is_fresh(self, max_age_seconds: float) -> bool:
        return (
            self.products is not None
            and self.last_sync is not None
            and time.time() - self.last_sync <= max_age_seconds
        )

    def last_sync_iso(self) -> Optional[str]:
        if self.last_sync is None:
            return None
        return datetime.fromtimestamp(self.last_sync, timezone.utc).isoformat()

    def adjust(self, product_id: str, price_id: str, quantity: Optional[int] = None, sold: int = 0) -> None:
        """Set (or decrement by `sold`) the cached quantity of one product/price pair."""
        with self._lock:
            for p in self.products or []:
                if p.get("id") == product_id and p.get("priceId") == price_id:
                    if quantity is None:
                        quantity = max(0, (p.get("quantity") or 0) - sold)
                    p["quantity"] = quantity
                    return

    def reset(self) -> None:
        with self._lock:
            self.products = None
            self.last_sync = None


inventory_cache = InventoryCache()


def normalize_ghl_product(p: Dict, index: int) -> Dict:
    """Flatten a GHL product onto its first price."""
    prices = p.get("prices") or []
    price = prices[0] if prices else {"amount": 0, "availableQuantity": 0, "id": f"no-price-{index}"}
    try:
        amount = float(price.get("amount") or 0)
    except (TypeError, ValueError):
        amount = 0.0
    try:
        quantity = int(price.get("availableQuantity") or 0)
    except (TypeError, ValueError):
        quantity = 0
    name = p.get("name")
    return {
        "id": p.get("id") or p.get("_id") or f"ghl-product-{index}",
        "name": name or f"Product {index + 1}",
        "price": amount,
        "quantity": quantity,
        "priceId": price.get("id") or price.get("_id") or f"no-price-{index}",
        "description": p.get("description") or f"GHL Product: {name or 'Unnamed'}",
        "image": p.get("image"),
        "lastSynced": _iso_now(),
        "source": "ghl",
    }


def snapshot_to_inventory(items: List[Dict]) -> List[Dict]:
    inventory = []
    for i, item in enumerate(items):
        name = item.get("name")
        try:
            price = float(item.get("price") or 0)
        except (TypeError, ValueError):
            price = 0.0
        inventory.append(
            {
                "id": item.get("productId") or item.get("id") or f"product-{i}",
                "name": name or f"Product {i + 1}",
                "price": price,
                "quantity": DEFAULT_LOCAL_QUANTITY if item.get("quantity") is None else item["quantity"],
                "priceId": item.get("priceId") or f"price-{i}",
                "description": item.get("description") or f"Product: {name or 'Unnamed'}",
                "image": item.get("image"),
                "source": "local",
            }
        )
    return inventory


class InventoryService:
    """
    Catalog served from GoHighLevel with layered fallbacks (in-memory cache,
    sync-cache.json, the ghl-items.json snapshot, demo items), plus stock
    decrements after a sale.
    """

    def __init__(
        self,
        client: GHLClient,
        settings,
        cache: InventoryCache = inventory_cache,
        notifier: Optional[LowStockNotifier] = None,
    ):
        self.client = client
        self.settings = settings
        self.cache = cache
        self.notifier = notifier or LowStockNotifier.from_settings(settings)
        self.local = LocalInventoryRepository(JsonFileStore(settings.LOCAL_INVENTORY_FILE))
        self.sync_store = JsonFileStore(settings.SYNC_CACHE_FILE)

    # sync

    def fetch_products(self) -> List[Dict]:
        log.info("Fetching products from GHL")
        products = [normalize_ghl_product(p, i) for i, p in enumerate(self.client.list_products())]
        log.info("Fetched %s products from GHL", len(products))
        return products

    def _read_sync_cache(self) -> Dict:
        try:
            return self.sync_store.read(default=None) or {"lastSync": None, "products": []}
        except (JsonStoreError, ValueError) as e:
            log.error("Error reading sync cache: %s", e)
            return {"lastSync": None, "products": []}

    def sync_products(self) -> List[Dict]:
        try:
            products = self.fetch_products()
        except GHLError as e:
            log.error("Product synchronization failed: %s", e)
            if self.cache.products:
                log.info("Returning cached inventory due to sync failure")
                return self.cache.products
            cached = self._read_sync_cache().get("products") or []
            if cached:
                log.info("Returning inventory from sync cache")
                self.cache.set(cached, synced=False)
                return cached
            raise

        self.cache.set(products)
        try:
            self.sync_store.write({"lastSync": self.cache.last_sync_iso(), "products": products})
            self.local.replace_all(
                [
                    {
                        "name": p["name"],
                        "productId": p["id"],
                        "priceId": p["priceId"],
                        "price": p["price"],
                        "quantity": p["quantity"],
                        "description": p["description"],
                        "lastSynced": p["lastSynced"],
                    }
                    for p in products
                ]
            )
        except JsonStoreError as e:
            log.error("Error saving sync cache: %s", e)
        log.info("Product sync completed, %s products synchronized", len(products))
        return products

    def get_inventory(self, force_refresh: bool = False) -> List[Dict]:
        """Never raises: each failing tier falls through to the next one."""
        max_age = self.settings.INVENTORY_MAX_AGE_SECONDS
        if not force_refresh and self.cache.is_fresh(max_age):
            log.debug("Returning cached inventory (fresh)")
            return self.cache.products

        try:
            return self.sync_products()
        except (GHLError, JsonStoreError, ValueError) as e:
            log.warning("Live sync failed: %s", e)

        if self.cache.products:
            return self.cache.products

        try:
            if self.local.exists():
                log.info("Using local ghl-items.json file (fallback)")
                inventory = snapshot_to_inventory(self.local.all())
                self.cache.set(inventory, synced=False)
                return inventory
        except (JsonStoreError, ValueError) as e:
            log.error("Local inventory unreadable: %s", e)

        log.info("Falling back to demo inventory")
        return [dict(item) for item in DEMO_INVENTORY]

    def sync_status(self, sync_active: bool) -> Dict:
        cache = self._read_sync_cache()
        return {
            "lastSync": self.cache.last_sync_iso() or cache.get("lastSync"),
            "cachedProducts": len(self.cache.products or cache.get("products") or []),
            "syncActive": sync_active,
            "syncInterval": f"{self.settings.SYNC_INTERVAL_SECONDS} seconds",
            "tokenStatus": "available" if self.client.tokens.exists() else "missing",
            "backendBaseUrl": self.settings.GHL_BASE_URL,
            "locationId": self.settings.GHL_LOCATION_ID,
        }

    # sales

    def _is_low(self, quantity: int) -> bool:
        return 0 < quantity <= self.settings.LOW_STOCK_THRESHOLD

    def _send_alerts(self, low_stock: List[Dict]) -> None:
        for item in low_stock:
            self.notifier.send_low_stock_alert(item["name"], item["quantity"], item["threshold"])

    def update_inventory(self, cart: List[Dict], force_ghl: bool = False) -> Dict:
        """
        Decrement stock for a completed sale. Uses the local snapshot when it
        exists (unless `force_ghl`), otherwise updates each GHL price.
        """
        if self.local.exists() and not force_ghl:
            return self._update_local(cart)
        return self._update_ghl(cart)

    def _update_local(self, cart: List[Dict]) -> Dict:
        log.info("Using local inventory file for updates")
        threshold = self.settings.LOW_STOCK_THRESHOLD
        low_stock = []
        for change in self.local.decrement(cart):
            line = change["line"]
            if change["item"] is None:
                log.warning("Item not found in local inventory: %s", line.get("name"))
                continue
            log.info("Updated %s: %s -> %s units", line.get("name"), change["old"], change["new"])
            if self._is_low(change["new"]):
                low_stock.append({"name": line.get("name") or change["item"].get("name"), "quantity": change["new"], "threshold": threshold})
            self.cache.adjust(line.get("id"), line.get("priceId"), sold=int(line.get("quantity", 0)))

        self._send_alerts(low_stock)
        return {
            "success": True,
            "method": "local",
            "lowStockAlerts": len(low_stock),
            "message": (
                f"Local inventory updated. {len(low_stock)} low stock alert(s) sent."
                if low_stock
                else "Local inventory updated successfully."
            ),
        }

    def _update_ghl(self, cart: List[Dict]) -> Dict:
        threshold = self.settings.LOW_STOCK_THRESHOLD
        retries_before = self.client.retries
        low_stock = []
        for line in cart:
            product_id, price_id = line.get("id"), line.get("priceId")
            if not product_id or not price_id:
                log.error("Missing id/priceId for item %s, skipping", line.get("name"))
                continue
            price = self.client.get_price(product_id, price_id)
            current = int(price.get("availableQuantity") or 0)
            new_qty = max(0, current - int(line.get("quantity", 0)))
            self.client.set_price_quantity(product_id, price_id, new_qty)
            log.info("Updated GHL %s: %s -> %s units", line.get("name"), current, new_qty)
            if self._is_low(new_qty):
                low_stock.append({"name": line.get("name"), "quantity": new_qty, "threshold": threshold})
            self.cache.adjust(product_id, price_id, quantity=new_qty)

        self._send_alerts(low_stock)
        retried = self.client.retries > retries_before
        if low_stock:
            prefix = "Inventory updated after token refresh." if retried else "GHL inventory updated."
            message = f"{prefix} {len(low_stock)} low stock alert(s) sent."
        elif retried:
            message = "Inventory updated successfully after token refresh."
        else:
            message = "GHL inventory updated successfully."
        return {
            "success": True,
            "method": "ghl_retry" if retried else "ghl",
            "lowStockAlerts": len(low_stock),
            "message": message,
        }

    # ghl-items.json snapshot CRUD

    def _require_local(self):
        if not self.local.exists():
            raise InventoryUnavailable("Inventory not available")

    def get_local_item(self, item_id: str) -> Dict:
        self._require_local()
        item = self.local.get(item_id)
        if not item:
            raise ItemNotFound("Item not found")
        return item

    def set_local_quantity(self, item_id: str, quantity) -> Dict:
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity < 0:
            raise InventoryException("Invalid quantity. Must be a non-negative number.")
        self._require_local()
        item, old = self.local.set_quantity(item_id, int(quantity))
        if not item:
            raise ItemNotFound("Item not found")
        log.info("Manual quantity update: %s - %s -> %s units", item["name"], old, item["quantity"])
        return {
            "success": True,
            "item": item,
            "message": f"Updated {item['name']} quantity from {old} to {item['quantity']}",
        }

    def add_local_product(self, name, price, quantity, description: Optional[str] = None) -> Dict:
        if not name or not str(name).strip() or not _is_number(price) or not _is_number(quantity):
            raise InventoryException("Missing required fields. Name, price, and quantity are required.")
        if price < 0 or quantity < 0:
            raise InventoryException("Price and quantity must be non-negative numbers.")
        self._require_local()
        item = self.local.add(name, price, quantity, description)
        if item is None:
            raise InventoryException(
                f'Product "{name}" already exists. Use a different name or update the existing product.'
            )
        log.info("New product added: %s - $%s (%s units)", item["name"], item["price"], item["quantity"])
        return {"success": True, "product": item, "message": f'Successfully added "{item["name"]}" to inventory'}

    def delete_local_item(self, item_id: str) -> Dict:
        self._require_local()
        item = self.local.delete(item_id)
        if not item:
            raise ItemNotFound("Item not found")
        log.info("Product deleted: %s", item["name"])
        return {"success": True, "message": f'Successfully deleted "{item["name"]}" from inventory'}

    def update_local_item(self, item_id: str, data: Dict) -> Dict:
        self._require_local()
        changes = {}
        if data.get("name") is not None:
            changes["name"] = data["name"]
        if data.get("price") is not None:
            changes["price"] = float(data["price"])
        if data.get("quantity") is not None:
            changes["quantity"] = int(data["quantity"])
        if data.get("description") is not None:
            changes["description"] = data["description"]
        item, old = self.local.update(item_id, changes)
        if not item:
            raise ItemNotFound("Item not found")
        log.info("Product updated: %s (was %s)", item["name"], old.get("name"))
        return {"success": True, "item": item, "message": f'Successfully updated "{item["name"]}"'}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
