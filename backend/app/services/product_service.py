import logging
import random
import re
import string
import time
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.product import PRODUCT_SOURCES, PRODUCT_TYPES, Product
from app.repositories.folder_repo import FolderRepository
from app.repositories.product_repo import ProductRepository
from app.services.folder_service import FolderService
from app.utils.transactions import smart_transaction

log = logging.getLogger(__name__)

DEFAULT_PRODUCTS = [
    {"name": "250ml Soft Drink Can - Coke Zero", "price": 2.00, "description": "Refreshing zero-calorie cola drink", "category": "Beverages"},
    {"name": "Slushie 12 oz - Coke", "price": 2.50, "description": "Frozen coke slushie, 12 oz size", "category": "Frozen Drinks"},
    {"name": "Slushie 12 oz - Berry Blast", "price": 2.50, "description": "Frozen berry flavored slushie, 12 oz size", "category": "Frozen Drinks"},
    {"name": "Slushie 12 oz - Mixed", "price": 2.50, "description": "Mixed flavor frozen slushie, 12 oz size", "category": "Frozen Drinks"},
    {"name": "Slushie 16 oz - Coke", "price": 4.50, "description": "Frozen coke slushie, 16 oz size", "category": "Frozen Drinks"},
    {"name": "Slushie 16 oz - Berry Blast", "price": 4.50, "description": "Frozen berry flavored slushie, 16 oz size", "category": "Frozen Drinks"},
    {"name": "Slushie 16 oz - Mixed", "price": 4.50, "description": "Mixed flavor frozen slushie, 16 oz size", "category": "Frozen Drinks"},
    {"name": "250ml Soft Drink Can - Fanta", "price": 2.00, "description": "Orange flavored soft drink", "category": "Beverages"},
    {"name": "250ml Soft Drink Can - Coke", "price": 2.00, "description": "Classic coca-cola soft drink", "category": "Beverages"},
    {"name": "250ml Soft Drink Can - Sprite", "price": 2.00, "description": "Lemon-lime flavored soft drink", "category": "Beverages"},
    {"name": "250ml Pop Top - Apple", "price": 2.50, "description": "Apple juice with pop top lid", "category": "Juices"},
    {"name": "250ml Pop Top - Apple & Blackcurrant", "price": 2.50, "description": "Apple and blackcurrant juice with pop top lid", "category": "Juices"},
    {"name": "250ml Bottled Water", "price": 1.00, "description": "Pure bottled water", "category": "Water"},
    {"name": "South Ripley", "price": 0.00, "description": "South Ripley location service", "category": "Services", "productType": "SERVICE"},
    {"name": "The Heights Estate in Pimpama", "price": 0.00, "description": "The Heights Estate in Pimpama location service", "category": "Services", "productType": "SERVICE"},
    {"name": "YM Community NDIS Housing", "price": 0.00, "description": "YM Community NDIS Housing service", "category": "Services", "productType": "SERVICE"},
    {"name": "Board Room Booking", "price": 0.00, "description": "Board room booking service with multiple pricing options", "category": "Services", "productType": "DIGITAL"},
]

# API field name -> model attribute
FIELD_MAP = {
    "name": "name",
    "quantity": "quantity",
    "description": "description",
    "productId": "product_id",
    "priceId": "price_id",
    "image": "image",
    "source": "source",
    "productType": "product_type",
    "availableInStore": "available_in_store",
    "isActive": "is_active",
    "category": "category",
    "sku": "sku",
}


class ProductServiceException(Exception):
    pass


class ProductNotFound(ProductServiceException):
    pass


class InsufficientStock(ProductServiceException):
    pass


def slugify(name: str) -> str:
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def to_cents(price) -> int:
    return int(round(float(price or 0) * 100))


class ProductService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepository(db)
        self.folders = FolderRepository(db)

    def initialize_default_products(self) -> List[Product]:
        existing = self.repo.count_all()
        if existing > 0:
            log.info("Found %s existing products in database", existing)
            return self.repo.list_active()
        return self.create_many(DEFAULT_PRODUCTS, id_prefix="mongodb")

    def create_many(self, entries: List[Dict], id_prefix: str = "mongodb", source: str = "mongodb") -> List[Product]:
        folder_svc = FolderService(self.db)
        folders = self.folders.list_active()
        ts = int(time.time() * 1000)
        created = []
        with smart_transaction(self.db):
            for i, data in enumerate(entries):
                if self.repo.get_by_name(data["name"], include_inactive=True):
                    log.warning("Skipping %s: already exists", data["name"])
                    continue
                folder = folder_svc.match_folder(data.get("category"), folders)
                p = Product(
                    name=data["name"],
                    price_cents=to_cents(data.get("price")),
                    quantity=int(data.get("quantity", 20)),
                    description=data.get("description"),
                    category=data.get("category"),
                    product_type=data.get("productType", "PHYSICAL"),
                    product_id=data.get("productId") or f"{id_prefix}-product-{ts}-{i}",
                    price_id=data.get("priceId") or f"{id_prefix}-price-{ts}-{i}",
                    sku=data.get("sku") or slugify(data["name"]),
                    source=source,
                    folder_id=folder.id if folder else None,
                    folder_name=folder.name if folder else None,
                )
                created.append(self.repo.add(p))
        for p in created:
            log.info("Created: %s - %s", p.name, p.formatted_price)
        log.info("Initialized %s products", len(created))
        return created

    def get_all_products(self) -> List[Product]:
        return self.repo.list_active()

    def get_product_by_id(self, product_id) -> Optional[Product]:
        ref = str(product_id)
        if ref.isdigit():
            p = self.repo.get(int(ref))
            if p:
                return p
        return self.repo.get_by_ref(ref)

    def _require(self, product_id) -> Product:
        p = self.get_product_by_id(product_id)
        if not p:
            raise ProductNotFound(f"Product not found: {product_id}")
        return p

    def _validate(self, data: Dict):
        if "price" in data and data["price"] is not None and float(data["price"]) < 0:
            raise ProductServiceException("Price and quantity must be non-negative numbers.")
        if "quantity" in data and data["quantity"] is not None and int(data["quantity"]) < 0:
            raise ProductServiceException("Price and quantity must be non-negative numbers.")
        if data.get("source") is not None and data["source"] not in PRODUCT_SOURCES:
            raise ProductServiceException(f"Invalid source: {data['source']}")
        if data.get("productType") is not None and data["productType"] not in PRODUCT_TYPES:
            raise ProductServiceException(f"Invalid productType: {data['productType']}")

    def _resolve_folder(self, data: Dict):
        folder_id = data.get("folderId")
        if folder_id:
            folder = self.folders.get(int(folder_id))
            if not folder:
                raise ProductServiceException("Folder not found")
            return folder
        return FolderService(self.db).match_folder(data.get("category"))

    def create_product(self, data: Dict) -> Product:
        name = (data.get("name") or "").strip()
        if not name or data.get("price") is None:
            raise ProductServiceException(
                "Missing required fields. Name, price, and quantity are required."
            )
        self._validate(data)
        if self.repo.get_by_name(name, include_inactive=True):
            raise ProductServiceException(
                f'Product "{name}" already exists. Use a different name or update the existing product.'
            )
        ts = int(time.time() * 1000)
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
        folder = self._resolve_folder(data)
        try:
            with smart_transaction(self.db):
                p = Product(
                    name=name,
                    price_cents=to_cents(data["price"]),
                    quantity=int(data["quantity"]) if data.get("quantity") is not None else 20,
                    description=(data.get("description") or "").strip() or None,
                    product_id=data.get("productId") or f"mongodb-product-{ts}-{suffix}",
                    price_id=data.get("priceId") or f"mongodb-price-{ts}-{suffix}",
                    sku=data.get("sku") or slugify(name),
                    image=data.get("image"),
                    category=data.get("category"),
                    product_type=data.get("productType") or "PHYSICAL",
                    source="mongodb",
                    folder_id=folder.id if folder else None,
                    folder_name=folder.name if folder else None,
                )
                self.repo.add(p)
        except IntegrityError as e:
            raise ProductServiceException(f"Product could not be saved: {e.orig}")
        log.info("Created product %s - %s (%s units)", p.name, p.formatted_price, p.quantity)
        return p

    def update_product(self, product_id, data: Dict) -> Product:
        p = self._require(product_id)
        self._validate(data)
        if data.get("name"):
            clash = self.repo.get_by_name(data["name"], include_inactive=True)
            if clash and clash.id != p.id:
                raise ProductServiceException(f'Product "{data["name"].strip()}" already exists.')
        with smart_transaction(self.db):
            for key, attr in FIELD_MAP.items():
                value = data.get(key)
                if value is None:
                    continue
                setattr(p, attr, value.strip() if isinstance(value, str) else value)
            if data.get("price") is not None:
                p.price_cents = to_cents(data["price"])
            if data.get("folderId"):
                folder = self._resolve_folder({"folderId": data["folderId"]})
                p.folder_id = folder.id
                p.folder_name = folder.name
        return p

    def delete_product(self, product_id) -> Product:
        p = self._require(product_id)
        with smart_transaction(self.db):
            p.is_active = False
        log.info("Soft-deleted product %s", p.name)
        return p

    def update_quantity(self, product_id, quantity: int) -> Product:
        p = self._require(product_id)
        with smart_transaction(self.db):
            p.quantity = max(0, int(quantity))
        return p

    def bulk_update_quantities(self, updates: List[Dict]) -> List[Product]:
        return [self.update_quantity(u["id"], u["quantity"]) for u in updates]

    def process_sale(self, cart_items: List[Dict]) -> List[Dict]:
        """
        Take sold quantities off stock. cart_items: [{id, quantity}].
        Either every line is applied or none is.
        """
        results = []
        with smart_transaction(self.db):
            for item in cart_items:
                qty = int(item.get("quantity", 0))
                if qty <= 0:
                    raise ProductServiceException("Quantity must be positive")
                p = self.get_product_by_id(item["id"])
                if not p:
                    raise ProductNotFound(f"Product not found: {item['id']}")
                if not self.repo.decrement_quantity(p.id, qty):
                    self.db.refresh(p)
                    raise InsufficientStock(
                        f"Insufficient stock for {p.name}. Available: {p.quantity}, Requested: {qty}"
                    )
                self.db.refresh(p)
                results.append(
                    {
                        "product": p,
                        "oldQuantity": p.quantity + qty,
                        "newQuantity": p.quantity,
                        "soldQuantity": qty,
                    }
                )
        return results

    def search_products(self, q: str) -> List[Product]:
        return self.repo.search(q)

    def get_products_by_category(self, category: str) -> List[Product]:
        return self.repo.list_by_category(category)

    def get_low_stock_products(self, threshold: int = 5) -> List[Product]:
        return self.repo.list_low_stock(threshold)

    def export_products(self) -> List[Dict]:
        return [
            {
                "name": p.name,
                "productId": p.product_id,
                "priceId": p.price_id,
                "price": p.price,
                "quantity": p.quantity,
                "description": p.description,
                "category": p.category,
                "sku": p.sku,
                "productType": p.product_type,
                "source": p.source,
                "lastSynced": p.last_synced.isoformat() if p.last_synced else None,
            }
            for p in self.repo.list_active()
        ]

    def reset_inventory(self) -> List[Product]:
        """Drop every product row and seed the defaults again."""
        with smart_transaction(self.db):
            deleted = self.repo.delete_all()
        log.info("Deleted %s existing products", deleted)
        return self.initialize_default_products()
