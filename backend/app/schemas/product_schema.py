from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

ProductType = Literal["PHYSICAL", "DIGITAL", "SERVICE"]


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    price: float = Field(..., ge=0)
    quantity: int = Field(20, ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    image: Optional[str] = None
    productType: Optional[ProductType] = None
    folderId: Optional[int] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=256)
    price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    image: Optional[str] = None
    productType: Optional[ProductType] = None
    availableInStore: Optional[bool] = None
    folderId: Optional[int] = None


class QuantityUpdate(BaseModel):
    quantity: int


class QuantityLine(BaseModel):
    id: Union[int, str]
    quantity: int


class BulkQuantityUpdate(BaseModel):
    updates: List[QuantityLine]


class SaleRequest(BaseModel):
    cartItems: List[QuantityLine] = Field(..., min_length=1)
