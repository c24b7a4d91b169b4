import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas.folder_schema import FolderMove
from app.schemas.product_schema import (
    BulkQuantityUpdate,
    ProductCreate,
    ProductUpdate,
    QuantityUpdate,
    SaleRequest,
)
from app.services.folder_service import FolderNotFound, FolderService, FolderServiceException
from app.services.product_service import ProductNotFound, ProductService, ProductServiceException

log = logging.getLogger(__name__)

router = APIRouter(prefix="/mongodb", tags=["products"])


def _raise(e: Exception):
    if isinstance(e, (ProductNotFound, FolderNotFound)):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.get("/inventory")
def list_products(db: Session = Depends(get_db)):
    return [p.to_dict() for p in ProductService(db).get_all_products()]


@router.post("/inventory/add-product")
def add_product(payload: ProductCreate, db: Session = Depends(get_db)):
    try:
        product = ProductService(db).create_product(payload.model_dump())
    except ProductServiceException as e:
        _raise(e)
    return {
        "success": True,
        "product": product.to_dict(),
        "message": f'Successfully added "{product.name}" to inventory',
    }


# fixed paths are declared before /inventory/{product_id}
@router.get("/inventory/search")
def search_products(q: str = "", db: Session = Depends(get_db)):
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    return [p.to_dict() for p in ProductService(db).search_products(q.strip())]


@router.get("/inventory/low-stock")
def low_stock(threshold: int = 5, db: Session = Depends(get_db)):
    return [p.to_dict() for p in ProductService(db).get_low_stock_products(threshold)]


@router.get("/inventory/export")
def export_products(db: Session = Depends(get_db)):
    return ProductService(db).export_products()


@router.get("/inventory/category/{category}")
def products_by_category(category: str, db: Session = Depends(get_db)):
    return [p.to_dict() for p in ProductService(db).get_products_by_category(category)]


@router.put("/inventory/bulk-quantities")
def bulk_quantities(payload: BulkQuantityUpdate, db: Session = Depends(get_db)):
    try:
        products = ProductService(db).bulk_update_quantities([u.model_dump() for u in payload.updates])
    except ProductServiceException as e:
        _raise(e)
    return {"success": True, "products": [p.to_dict() for p in products]}


@router.post("/inventory/process-sale")
def process_sale(payload: SaleRequest, db: Session = Depends(get_db)):
    try:
        results = ProductService(db).process_sale([line.model_dump() for line in payload.cartItems])
    except ProductServiceException as e:
        _raise(e)
    return {
        "success": True,
        "results": [
            {
                "product": r["product"].to_dict(),
                "oldQuantity": r["oldQuantity"],
                "newQuantity": r["newQuantity"],
                "soldQuantity": r["soldQuantity"],
            }
            for r in results
        ],
    }


@router.get("/inventory/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)):
    product = ProductService(db).get_product_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product.to_dict()


@router.put("/inventory/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, db: Session = Depends(get_db)):
    try:
        product = ProductService(db).update_product(product_id, payload.model_dump(exclude_unset=True))
    except ProductServiceException as e:
        _raise(e)
    return {"success": True, "product": product.to_dict(), "message": f'Successfully updated "{product.name}"'}


@router.delete("/inventory/{product_id}")
def delete_product(product_id: str, db: Session = Depends(get_db)):
    try:
        product = ProductService(db).delete_product(product_id)
    except ProductServiceException as e:
        _raise(e)
    return {"success": True, "message": f'Successfully deleted "{product.name}" from inventory'}


@router.put("/inventory/{product_id}/quantity")
def update_quantity(product_id: str, payload: QuantityUpdate, db: Session = Depends(get_db)):
    try:
        product = ProductService(db).update_quantity(product_id, payload.quantity)
    except ProductServiceException as e:
        _raise(e)
    return {"success": True, "product": product.to_dict()}


def _move(product_id: str, folder_id: int, db: Session):
    product = ProductService(db).get_product_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    try:
        product = FolderService(db).move_product_to_folder(product, folder_id)
    except FolderServiceException as e:
        _raise(e)
    return {"success": True, "product": product.to_dict()}


@router.put("/inventory/{product_id}/move-folder")
def move_to_folder(product_id: str, payload: FolderMove, db: Session = Depends(get_db)):
    return _move(product_id, payload.folderId, db)


@router.put("/products/{product_id}/folder")
def set_product_folder(product_id: str, payload: FolderMove, db: Session = Depends(get_db)):
    return _move(product_id, payload.folderId, db)
