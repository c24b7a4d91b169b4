import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.payment import Payment
from app.repositories.payment_repo import PaymentRepository
from app.utils.transactions import smart_transaction

log = logging.getLogger(__name__)


class PaymentServiceException(Exception):
    pass


class PaymentService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepository(db)

    def log_payment(self, items: Optional[List[Dict]], total, method: Optional[str]) -> Payment:
        try:
            total_cents = int(round(float(total or 0) * 100))
        except (TypeError, ValueError):
            raise PaymentServiceException(f"Invalid total: {total!r}")
        with smart_transaction(self.db):
            payment = self.repo.create(items or [], total_cents, method)
        log.info("Logged %s payment of %s (%s lines)", method, payment.total, len(payment.items or []))
        return payment

    def list_payments(self, limit: int = 50) -> List[Payment]:
        return self.repo.recent(limit)
