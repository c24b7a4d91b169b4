from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from app.models.product import Product


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return self.db.query(Product).filter(Product.is_active == True)

    def get(self, pk: int) -> Optional[Product]:
        return self._active().filter(Product.id == pk).first()

    def get_by_ref(self, ref: str) -> Optional[Product]:
        """Look up an active product by external productId or priceId."""
        return (
            self._active()
            .filter(or_(Product.product_id == ref, Product.price_id == ref))
            .first()
        )

    def get_by_name(self, name: str, include_inactive: bool = False) -> Optional[Product]:
        qry = self.db.query(Product) if include_inactive else self._active()
        return qry.filter(func.lower(Product.name) == name.strip().lower()).first()

    def list_active(self) -> List[Product]:
        return self._active().order_by(Product.name).all()

    def list_by_folder(self, folder_id: int) -> List[Product]:
        return self._active().filter(Product.folder_id == folder_id).order_by(Product.name).all()

    def count_active(self, folder_id: Optional[int] = None) -> int:
        qry = self.db.query(func.count(Product.id)).filter(Product.is_active == True)
        if folder_id is not None:
            qry = qry.filter(Product.folder_id == folder_id)
        return qry.scalar() or 0

    def count_all(self) -> int:
        return self.db.query(func.count(Product.id)).scalar() or 0

    def search(self, q: str) -> List[Product]:
        like = f"%{q}%"
        return (
            self._active()
            .filter(
                or_(
                    Product.name.ilike(like),
                    Product.description.ilike(like),
                    Product.category.ilike(like),
                    Product.sku.ilike(like),
                )
            )
            .order_by(Product.name)
            .all()
        )

    def list_by_category(self, category: str) -> List[Product]:
        return (
            self._active()
            .filter(Product.category.ilike(f"%{category}%"))
            .order_by(Product.name)
            .all()
        )

    def list_low_stock(self, threshold: int) -> List[Product]:
        return (
            self._active()
            .filter(Product.quantity <= threshold)
            .order_by(Product.quantity, Product.name)
            .all()
        )

    def add(self, product: Product) -> Product:
        self.db.add(product)
        self.db.flush()
        return product

    def decrement_quantity(self, pk: int, amount: int) -> bool:
        """
        Atomically take `amount` units off a product. Returns False when the
        row does not have enough stock, leaving it untouched.
        """
        result = self.db.execute(
            update(Product)
            .where(Product.id == pk, Product.is_active == True, Product.quantity >= amount)
            .values(quantity=Product.quantity - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def reassign_folder(self, from_folder_id: int, folder_id: Optional[int], folder_name: Optional[str]) -> int:
        products = self.list_by_folder(from_folder_id)
        for p in products:
            p.folder_id = folder_id
            p.folder_name = folder_name
        self.db.flush()
        return len(products)

    def rename_folder(self, folder_id: int, folder_name: str) -> None:
        self.db.query(Product).filter(Product.folder_id == folder_id).update(
            {Product.folder_name: folder_name}, synchronize_session=False
        )

    def deactivate_in_folder(self, folder_id: int) -> int:
        n = (
            self.db.query(Product)
            .filter(Product.folder_id == folder_id, Product.is_active == True)
            .update({Product.is_active: False}, synchronize_session=False)
        )
        self.db.flush()
        return n

    def delete_all(self) -> int:
        n = self.db.query(Product).delete(synchronize_session=False)
        self.db.flush()
        return n
