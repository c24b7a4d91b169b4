import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.folder import DEFAULT_COLOR, DEFAULT_FOLDERS, DEFAULT_ICON, UNASSIGNED, Folder
from app.models.product import Product
from app.repositories.folder_repo import FolderRepository
from app.repositories.product_repo import ProductRepository
from app.utils.transactions import smart_transaction

log = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "color", "icon", "order")


class FolderServiceException(Exception):
    pass


class FolderNotFound(FolderServiceException):
    pass


class FolderService:
    def __init__(self, db: Session):
        self.db = db
        self.folders = FolderRepository(db)
        self.products = ProductRepository(db)

    def _refresh_count(self, folder: Folder) -> Folder:
        folder.product_count = self.products.count_active(folder.id)
        return folder

    def _require(self, folder_id: int) -> Folder:
        folder = self.folders.get(folder_id)
        if not folder:
            raise FolderNotFound("Folder not found")
        return folder

    def initialize_default_folders(self) -> List[Folder]:
        existing = self.folders.count()
        if existing > 0:
            log.debug("Found %s existing folders", existing)
            return self.folders.list_active()

        created = []
        with smart_transaction(self.db):
            for data in DEFAULT_FOLDERS:
                if self.folders.get_by_name(data["name"], active_only=False):
                    continue
                created.append(self.folders.add(Folder(is_default=True, **data)))
        log.info("Created %s default folders", len(created))
        return created

    def get_all_folders(self) -> List[Folder]:
        with smart_transaction(self.db):
            folders = self.folders.list_active()
            for f in folders:
                self._refresh_count(f)
        return folders

    def get_folder_by_id(self, folder_id: int) -> Optional[Folder]:
        folder = self.folders.get(folder_id)
        if folder:
            with smart_transaction(self.db):
                self._refresh_count(folder)
        return folder

    def create_folder(self, data: Dict) -> Folder:
        name = (data.get("name") or "").strip()
        if not name:
            raise FolderServiceException("Folder name is required")
        if self.folders.get_by_name(name):
            raise FolderServiceException("A folder with this name already exists")

        with smart_transaction(self.db):
            order = self.folders.next_order()
            # names are unique across soft-deleted rows too, so bring the old row back
            folder = self.folders.get_by_name(name, active_only=False)
            if folder is None:
                folder = Folder(name=name)
                self.db.add(folder)
            folder.name = name
            folder.description = (data.get("description") or "").strip()
            folder.color = data.get("color") or DEFAULT_COLOR
            folder.icon = data.get("icon") or DEFAULT_ICON
            folder.order = order
            folder.is_active = True
            folder.is_default = False
            folder.product_count = 0
            self.db.flush()
        log.info("Created folder: %s", folder.name)
        return folder

    def update_folder(self, folder_id: int, data: Dict) -> Folder:
        folder = self._require(folder_id)
        new_name = data.get("name")
        if new_name is not None:
            new_name = new_name.strip()
            if not new_name:
                raise FolderServiceException("Folder name is required")
            data = {**data, "name": new_name}
        renamed = new_name is not None and new_name != folder.name
        if renamed and self.folders.get_by_name(new_name, exclude_id=folder.id):
            raise FolderServiceException("A folder with this name already exists")
        if renamed and self.folders.get_by_name(new_name, active_only=False, exclude_id=folder.id):
            raise FolderServiceException(
                "A deleted folder still holds this name; recreate it instead"
            )

        with smart_transaction(self.db):
            for field in UPDATABLE_FIELDS:
                if data.get(field) is not None:
                    setattr(folder, field, data[field])
            if renamed:
                self.products.rename_folder(folder.id, folder.name)
            self._refresh_count(folder)
        log.info("Updated folder: %s", folder.name)
        return folder

    def ensure_unassigned_folder(self) -> Folder:
        folder = self.folders.get_by_name(UNASSIGNED)
        if folder:
            return folder
        with smart_transaction(self.db):
            order = self.folders.next_order(active_only=True)
            folder = self.folders.get_by_name(UNASSIGNED, active_only=False)
            if folder is None:
                folder = Folder(name=UNASSIGNED)
                self.db.add(folder)
            folder.description = "Default folder for products without a specific category"
            folder.color = "#9ca3af"
            folder.icon = "📦"
            folder.order = order
            folder.is_default = True
            folder.is_active = True
            self.db.flush()
        log.info("Created Unassigned folder")
        return folder

    def delete_folder(self, folder_id: int) -> Dict:
        """Soft-delete a folder, moving its active products to Unassigned."""
        folder = self._require(folder_id)
        product_count = self.products.count_active(folder.id)
        moved = 0
        if product_count > 0:
            if folder.name == UNASSIGNED:
                raise FolderServiceException(
                    "Cannot delete the Unassigned folder while it still has products"
                )
            target = self.ensure_unassigned_folder()
            with smart_transaction(self.db):
                moved = self.products.reassign_folder(folder.id, target.id, target.name)
                self._refresh_count(target)
            log.info("Moved %s products to Unassigned folder", moved)

        with smart_transaction(self.db):
            folder.is_active = False
            folder.product_count = 0
        log.info("Deleted folder: %s", folder.name)
        return {
            "folder": folder,
            "message": f'Successfully deleted folder "{folder.name}" and moved {moved} product(s) to Unassigned folder',
            "movedProductsCount": moved,
        }

    def delete_folder_and_products(self, folder_id: int) -> Dict:
        """Soft-delete a folder together with every active product inside it."""
        folder = self._require(folder_id)
        with smart_transaction(self.db):
            deleted = self.products.deactivate_in_folder(folder.id)
            folder.is_active = False
            folder.product_count = 0
        log.info("Deleted folder %s and %s products", folder.name, deleted)
        return {
            "folder": folder,
            "message": f'Successfully deleted folder "{folder.name}" and {deleted} product(s)',
            "deletedProductsCount": deleted,
        }

    def reorder_folders(self, folder_ids: List[int]) -> List[Folder]:
        with smart_transaction(self.db):
            for position, folder_id in enumerate(folder_ids, start=1):
                folder = self.db.get(Folder, folder_id)
                if folder is not None:
                    folder.order = position
        log.info("Reordered %s folders", len(folder_ids))
        return self.get_all_folders()

    def get_folder_stats(self) -> Dict:
        folders = self.get_all_folders()
        return {
            "totalFolders": len(folders),
            "totalProducts": self.products.count_active(),
            "folders": [
                {
                    "id": f.id,
                    "name": f.name,
                    "productCount": f.product_count,
                    "color": f.color,
                    "icon": f.icon,
                }
                for f in folders
            ],
        }

    def move_product_to_folder(self, product: Product, folder_id: int) -> Product:
        folder = self._require(folder_id)
        old_folder_id = product.folder_id
        with smart_transaction(self.db):
            product.folder_id = folder.id
            product.folder_name = folder.name
            self.db.flush()
            if old_folder_id and old_folder_id != folder.id:
                old = self.folders.get(old_folder_id)
                if old:
                    self._refresh_count(old)
            self._refresh_count(folder)
        log.info("Moved product %s to folder %s", product.name, folder.name)
        return product

    def get_products_by_folder(self, folder_id: int) -> List[Product]:
        return self.products.list_by_folder(folder_id)

    def match_folder(self, category: Optional[str], folders: Optional[List[Folder]] = None) -> Optional[Folder]:
        """
        Pick the folder for a category: exact name match, then a substring
        match in either direction, then General.
        """
        if folders is None:
            folders = self.folders.list_active()
        by_name = {f.name.lower(): f for f in folders}
        if not category:
            return None
        cat = category.strip().lower()
        target = by_name.get(cat)
        if target is None:
            for name, f in by_name.items():
                if name in cat or cat in name:
                    target = f
                    break
        return target or by_name.get("general")

    def sync_products_with_folders(self) -> Dict:
        products = self.products.list_active()
        folders = self.folders.list_active()
        synced = 0
        with smart_transaction(self.db):
            for p in products:
                if p.folder_id or not p.category:
                    continue
                target = self.match_folder(p.category, folders)
                if target:
                    p.folder_id = target.id
                    p.folder_name = target.name
                    synced += 1
            self.db.flush()
            for f in folders:
                self._refresh_count(f)
        log.info("Synced %s products with folders", synced)
        return {"syncedCount": synced, "totalProducts": len(products)}
