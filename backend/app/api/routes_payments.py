from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas.pos_schema import LogPaymentRequest
from app.services.payment_service import PaymentService, PaymentServiceException

router = APIRouter(tags=["payments"])


@router.post("/log-payment")
def log_payment(payload: LogPaymentRequest, db: Session = Depends(get_db)):
    try:
        payment = PaymentService(db).log_payment(payload.items, payload.total, payload.method)
    except PaymentServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "id": payment.id}


@router.get("/payments")
def list_payments(limit: int = 50, db: Session = Depends(get_db)):
    limit = max(1, min(limit, 500))
    return [p.to_dict() for p in PaymentService(db).list_payments(limit)]
