from typing import List

from sqlalchemy.orm import Session

from app.models.payment import Payment


class PaymentRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, items: list, total_cents: int, method: str) -> Payment:
        p = Payment(items=items, total_cents=total_cents, method=method)
        self.db.add(p)
        self.db.flush()
        return p

    def recent(self, limit: int = 50) -> List[Payment]:
        return self.db.query(Payment).order_by(Payment.date.desc(), Payment.id.desc()).limit(limit).all()
