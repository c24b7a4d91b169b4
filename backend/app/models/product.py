from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db import Base

PRODUCT_SOURCES = ("mongodb", "ghl", "manual", "local")
PRODUCT_TYPES = ("PHYSICAL", "DIGITAL", "SERVICE")


def _utcnow():
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(256), unique=True, index=True, nullable=False)
    price_cents = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=20)
    description = Column(Text, nullable=True)
    product_id = Column(String(128), unique=True, index=True, nullable=False)
    price_id = Column(String(128), nullable=False)
    image = Column(String(512), nullable=True)
    source = Column(String(16), nullable=False, default="mongodb", index=True)
    product_type = Column(String(16), nullable=False, default="PHYSICAL")
    available_in_store = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    category = Column(String(128), nullable=True, index=True)
    folder_id = Column(Integer, ForeignKey("folders.id"), nullable=True, index=True)
    folder_name = Column(String(64), nullable=True, index=True)
    sku = Column(String(256), nullable=True)
    last_synced = Column(DateTime(timezone=True), default=_utcnow)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    folder = relationship("Folder", back_populates="products")

    @property
    def price(self) -> float:
        return (self.price_cents or 0) / 100.0

    @property
    def formatted_price(self) -> str:
        return f"AU${self.price:.2f}"

    def to_dict(self):
        return {
            "id": self.id,
            "_id": self.id,
            "name": self.name,
            "price": self.price,
            "formattedPrice": self.formatted_price,
            "quantity": self.quantity,
            "description": self.description,
            "productId": self.product_id,
            "priceId": self.price_id,
            "image": self.image,
            "source": self.source,
            "productType": self.product_type,
            "availableInStore": self.available_in_store,
            "isActive": self.is_active,
            "category": self.category,
            "folderId": self.folder_id,
            "folderName": self.folder_name,
            "sku": self.sku,
            "lastSynced": self.last_synced.isoformat() if self.last_synced else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Product id={self.id} name={self.name}>"
