from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from app.db import Base


class Payment(Base):
    __tablename__ = "payments"
    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    items = Column(JSON, nullable=True)
    total_cents = Column(Integer, nullable=False, default=0)
    method = Column(String(32), nullable=True)  # cash, card

    @property
    def total(self) -> float:
        return (self.total_cents or 0) / 100.0

    def to_dict(self):
        return {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "items": self.items or [],
            "total": self.total,
            "method": self.method,
        }
