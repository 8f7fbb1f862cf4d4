from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from conference_cms.database import models
from conference_cms.repositories.interfaces import IFileUploadRepository

class SqlalchemyFileUploadRepository(IFileUploadRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _active(self):
        return self.db.query(models.FileUpload).filter(models.FileUpload.deleted_at.is_(None))

    def create(self, file_model: models.FileUpload) -> models.FileUpload:
        self.db.add(file_model)
        self.db.commit()
        self.db.refresh(file_model)
        return file_model

    def find_by_id(self, file_id: int) -> Optional[models.FileUpload]:
        return self._active().filter(models.FileUpload.id == file_id).first()

    def list_all(self) -> List[models.FileUpload]:
        return self._active().options(joinedload(models.FileUpload.creator)).order_by(
            models.FileUpload.created_at.desc(), models.FileUpload.id.desc()
        ).all()

    def list_by_owner(self, owner: models.FileOwner) -> List[models.FileUpload]:
        return self._active().filter(
            models.FileUpload.owner_type == owner.type,
            models.FileUpload.owner_id == owner.id,
        ).order_by(models.FileUpload.id.asc()).all()

    def reassign(self, file: models.FileUpload, owner: models.FileOwner) -> models.FileUpload:
        try:
            self.db.query(models.FileUpload).filter(models.FileUpload.id == file.id).update({
                models.FileUpload.owner_type: owner.type,
                models.FileUpload.owner_id: owner.id,
            }, synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(file)
        return file

    def soft_delete(self, file: models.FileUpload, deleted_at: datetime) -> bool:
        if file:
            file.deleted_at = deleted_at
            self.db.commit()
            return True
        return False

    def count(self, created_by: Optional[int] = None) -> int:
        query = self._active()
        if created_by is not None:
            query = query.filter(models.FileUpload.created_by == created_by)
        return query.count()
