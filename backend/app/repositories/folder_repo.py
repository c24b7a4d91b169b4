from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.folder import Folder


class FolderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, folder_id: int) -> Optional[Folder]:
        return (
            self.db.query(Folder)
            .filter(Folder.id == folder_id, Folder.is_active == True)
            .first()
        )

    def get_by_name(self, name: str, active_only: bool = True, exclude_id: Optional[int] = None) -> Optional[Folder]:
        qry = self.db.query(Folder).filter(func.lower(Folder.name) == name.strip().lower())
        if active_only:
            qry = qry.filter(Folder.is_active == True)
        if exclude_id is not None:
            qry = qry.filter(Folder.id != exclude_id)
        return qry.first()

    def list_active(self) -> List[Folder]:
        return (
            self.db.query(Folder)
            .filter(Folder.is_active == True)
            .order_by(Folder.order, Folder.name)
            .all()
        )

    def count(self) -> int:
        return self.db.query(func.count(Folder.id)).scalar() or 0

    def next_order(self, active_only: bool = False) -> int:
        qry = self.db.query(func.max(Folder.order))
        if active_only:
            qry = qry.filter(Folder.is_active == True)
        last = qry.scalar()
        return (last or 0) + 1

    def add(self, folder: Folder) -> Folder:
        self.db.add(folder)
        self.db.flush()
        return folder
