from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas.folder_schema import FolderCreate, FolderReorder, FolderUpdate
from app.services.folder_service import FolderNotFound, FolderService, FolderServiceException

router = APIRouter(prefix="/mongodb/folders", tags=["folders"])


def _raise(e: FolderServiceException):
    if isinstance(e, FolderNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.get("")
def list_folders(db: Session = Depends(get_db)):
    folders = FolderService(db).get_all_folders()
    return {"success": True, "folders": [f.to_dict() for f in folders]}


@router.post("")
def create_folder(payload: FolderCreate, db: Session = Depends(get_db)):
    try:
        folder = FolderService(db).create_folder(payload.model_dump())
    except FolderServiceException as e:
        _raise(e)
    return {"success": True, "folder": folder.to_dict(), "message": f'Folder "{folder.name}" created'}


# fixed paths are declared before /{folder_id}
@router.put("/reorder")
def reorder_folders(payload: FolderReorder, db: Session = Depends(get_db)):
    folders = FolderService(db).reorder_folders(payload.folderIds)
    return {"success": True, "folders": [f.to_dict() for f in folders]}


@router.get("/stats")
def folder_stats(db: Session = Depends(get_db)):
    return {"success": True, "stats": FolderService(db).get_folder_stats()}


@router.post("/sync")
def sync_folders(db: Session = Depends(get_db)):
    result = FolderService(db).sync_products_with_folders()
    return {"success": True, **result}


@router.get("/{folder_id}")
def get_folder(folder_id: int, db: Session = Depends(get_db)):
    folder = FolderService(db).get_folder_by_id(folder_id)
    if not folder:
        raise HTTPException(status_code=404, detail="Folder not found")
    return {"success": True, "folder": folder.to_dict()}


@router.put("/{folder_id}")
def update_folder(folder_id: int, payload: FolderUpdate, db: Session = Depends(get_db)):
    try:
        folder = FolderService(db).update_folder(folder_id, payload.model_dump(exclude_unset=True))
    except FolderServiceException as e:
        _raise(e)
    return {"success": True, "folder": folder.to_dict()}


@router.delete("/{folder_id}")
def delete_folder(
    folder_id: int,
    deleteProducts: bool = False,
    moveProducts: bool = False,
    db: Session = Depends(get_db),
):
    """
    ?deleteProducts=true soft-deletes the folder's products with it; otherwise
    (moveProducts=true or no flag) they are moved to Unassigned.
    """
    svc = FolderService(db)
    try:
        if deleteProducts:
            result = svc.delete_folder_and_products(folder_id)
        else:
            result = svc.delete_folder(folder_id)
    except FolderServiceException as e:
        _raise(e)
    result["folder"] = result["folder"].to_dict()
    return {"success": True, **result}


@router.get("/{folder_id}/products")
def folder_products(folder_id: int, db: Session = Depends(get_db)):
    svc = FolderService(db)
    if not svc.get_folder_by_id(folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")
    products = svc.get_products_by_folder(folder_id)
    return {"success": True, "products": [p.to_dict() for p in products]}
