from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.db import Base

DEFAULT_COLOR = "#667eea"
DEFAULT_ICON = "📁"
UNASSIGNED = "Unassigned"

DEFAULT_FOLDERS = [
    {"name": "Beverages", "description": "Soft drinks, juices, and refreshing beverages", "color": "#4facfe", "icon": "🥤", "order": 1},
    {"name": "Frozen Drinks", "description": "Slushies and frozen beverages", "color": "#43e97b", "icon": "🧊", "order": 2},
    {"name": "Juices", "description": "Fresh juices and fruit drinks", "color": "#fa709a", "icon": "🧃", "order": 3},
    {"name": "Water", "description": "Bottled water and hydration products", "color": "#00d2ff", "icon": "💧", "order": 4},
    {"name": "Services", "description": "Service-based products and bookings", "color": "#667eea", "icon": "🛎️", "order": 5},
    {"name": "General", "description": "Other products and miscellaneous items", "color": "#764ba2", "icon": "📦", "order": 6},
    {"name": UNASSIGNED, "description": "Products without a specific category", "color": "#9ca3af", "icon": "📂", "order": 7},
]


def _utcnow():
    return datetime.now(timezone.utc)


class Folder(Base):
    __tablename__ = "folders"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, index=True, nullable=False)
    description = Column(String(200), nullable=True, default="")
    color = Column(String(7), nullable=False, default=DEFAULT_COLOR)
    icon = Column(String(10), nullable=False, default=DEFAULT_ICON)
    order = Column(Integer, nullable=False, default=0, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_default = Column(Boolean, nullable=False, default=False)
    product_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    products = relationship("Product", back_populates="folder")

    def to_dict(self):
        return {
            "id": self.id,
            "_id": self.id,
            "name": self.name,
            "description": self.description or "",
            "color": self.color or DEFAULT_COLOR,
            "icon": self.icon,
            "order": self.order,
            "isActive": self.is_active,
            "isDefault": self.is_default,
            "productCount": self.product_count,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Folder id={self.id} name={self.name}>"
