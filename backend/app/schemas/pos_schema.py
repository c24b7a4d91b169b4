from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CartLine(BaseModel):
    id: Optional[str] = None
    priceId: Optional[str] = None
    name: Optional[str] = None
    quantity: int = Field(..., ge=0)
    price: Optional[float] = None


class UpdateInventoryRequest(BaseModel):
    cart: List[CartLine]


class PaymentIntentRequest(BaseModel):
    amount: int = Field(..., gt=0)


class LogPaymentRequest(BaseModel):
    items: List[Dict[str, Any]] = []
    total: float = Field(..., ge=0)
    method: Optional[str] = None


class MembershipUpgrade(BaseModel):
    phoneNumber: str = Field(..., min_length=1)
    customerData: Dict[str, Any] = {}
    membershipType: str = Field(..., min_length=1)
