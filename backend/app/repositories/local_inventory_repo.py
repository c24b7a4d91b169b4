import random
import string
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.repositories.json_store import JsonFileStore


def _matches(item: Dict, item_id: str) -> bool:
    return item.get("productId") == item_id or item.get("priceId") == item_id


class LocalInventoryRepository:
    """
    The `ghl-items.json` snapshot: a flat list of
    {name, productId, priceId, price, quantity, description, lastSynced}
    used as the offline inventory when GHL is unreachable.
    """

    def __init__(self, store: JsonFileStore):
        self.store = store

    def exists(self) -> bool:
        return self.store.exists()

    def all(self) -> List[Dict]:
        return self.store.read(default=[]) or []

    def replace_all(self, items: List[Dict]) -> None:
        self.store.write(items)

    def get(self, item_id: str) -> Optional[Dict]:
        return next((it for it in self.all() if _matches(it, item_id)), None)

    def set_quantity(self, item_id: str, quantity: int):
        """Returns (item, old_quantity) or (None, None) when not found."""
        found = {}

        def _apply(items):
            items = items or []
            for it in items:
                if _matches(it, item_id):
                    found["old"] = it.get("quantity") or 0
                    it["quantity"] = quantity
                    found["item"] = it
                    break
            return items

        self.store.update(_apply, default=[])
        return found.get("item"), found.get("old")

    def add(self, name: str, price: float, quantity: int, description: Optional[str] = None) -> Optional[Dict]:
        """Append a manual product. Returns None if the name is already taken."""
        ts = int(time.time() * 1000)
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
        name = name.strip()
        new_item = {
            "name": name,
            "productId": f"manual-{ts}-{suffix}",
            "priceId": f"price-{ts}-{suffix}",
            "price": float(price),
            "quantity": int(quantity),
            "description": (description or "").strip() or f"Manual product: {name}",
            "isManual": True,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        duplicate = {}

        def _apply(items):
            items = items or []
            if any((it.get("name") or "").lower() == name.lower() for it in items):
                duplicate["hit"] = True
                return items
            items.append(new_item)
            return items

        self.store.update(_apply, default=[])
        return None if duplicate else new_item

    def delete(self, item_id: str) -> Optional[Dict]:
        removed = {}

        def _apply(items):
            items = items or []
            for i, it in enumerate(items):
                if _matches(it, item_id):
                    removed["item"] = items.pop(i)
                    break
            return items

        self.store.update(_apply, default=[])
        return removed.get("item")

    def update(self, item_id: str, changes: Dict):
        """Returns (updated_item, previous_copy) or (None, None)."""
        result = {}

        def _apply(items):
            items = items or []
            for it in items:
                if _matches(it, item_id):
                    result["old"] = dict(it)
                    for key, value in changes.items():
                        if value is None:
                            continue
                        it[key] = value.strip() if isinstance(value, str) else value
                    it["updatedAt"] = datetime.now(timezone.utc).isoformat()
                    result["item"] = it
                    break
            return items

        self.store.update(_apply, default=[])
        return result.get("item"), result.get("old")

    def decrement(self, cart: List[Dict]) -> List[Dict]:
        """
        Take sold quantities off matching snapshot rows (matched on productId and
        priceId, clamped at 0). Returns [{line, old, new}] for matched lines;
        unmatched lines have item None.
        """
        changes = []

        def _apply(items):
            items = items or []
            for line in cart:
                match = next(
                    (
                        it for it in items
                        if it.get("productId") == line.get("id") and it.get("priceId") == line.get("priceId")
                    ),
                    None,
                )
                if match is None:
                    changes.append({"line": line, "item": None, "old": None, "new": None})
                    continue
                old = match.get("quantity")
                if old is None:
                    old = 20
                new = max(0, old - int(line.get("quantity", 0)))
                match["quantity"] = new
                changes.append({"line": line, "item": match, "old": old, "new": new})
            return items

        self.store.update(_apply, default=[])
        return changes
