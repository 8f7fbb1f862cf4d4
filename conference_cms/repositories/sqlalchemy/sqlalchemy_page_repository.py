from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, func
from sqlalchemy.orm import Session, joinedload
from conference_cms.database import models
from conference_cms.repositories.interfaces import IPageRepository

class SqlalchemyPageRepository(IPageRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _active(self):
        return self.db.query(models.Page).filter(models.Page.deleted_at.is_(None))

    def _newest_first(self, query):
        return query.order_by(models.Page.created_at.desc(), models.Page.id.desc())

    def create_with_contents(self, page_model: models.Page, contents: List[models.Content]) -> models.Page:
        try:
            self.db.add(page_model)
            self.db.flush()
            for content in contents:
                content.page_id = page_model.id
            self.db.add_all(contents)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(page_model)
        return page_model

    def find_by_id(self, page_id: int) -> Optional[models.Page]:
        return self._active().filter(models.Page.id == page_id).first()

    def find_in_conference(self, conference_id: int, page_id: int) -> Optional[models.Page]:
        return self._active().filter(
            models.Page.id == page_id,
            models.Page.conference_id == conference_id,
        ).first()

    def slug_exists(self, conference_id: int, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = self._active().filter(
            models.Page.conference_id == conference_id,
            models.Page.slug == slug,
        )
        if exclude_id is not None:
            query = query.filter(models.Page.id != exclude_id)
        return query.first() is not None

    def list_by_conference(self, conference_id: int, published_only: bool = False) -> List[models.Page]:
        query = self._active().filter(models.Page.conference_id == conference_id)
        if published_only:
            query = query.filter(models.Page.status == models.PUBLISHED)
        return self._newest_first(query.options(joinedload(models.Page.creator))).all()

    def list_all(self) -> List[models.Page]:
        query = self._active().options(joinedload(models.Page.conference), joinedload(models.Page.creator))
        return self._newest_first(query).all()

    def list_for_editor(self, user_id: int) -> List[models.Page]:
        query = self._active().join(
            models.EditorConference,
            models.EditorConference.conference_id == models.Page.conference_id,
        ).filter(models.EditorConference.user_id == user_id).options(joinedload(models.Page.conference))
        return self._newest_first(query).all()

    def count_by_conference(self) -> List[Dict[str, Any]]:
        rows = self.db.query(
            models.Conference.id, models.Conference.name, func.count(models.Page.id)
        ).outerjoin(
            models.Page,
            and_(models.Page.conference_id == models.Conference.id, models.Page.deleted_at.is_(None)),
        ).filter(
            models.Conference.deleted_at.is_(None)
        ).group_by(models.Conference.id, models.Conference.name).order_by(models.Conference.name.asc()).all()
        return [{"id": row[0], "name": row[1], "pages_count": row[2]} for row in rows]

    def count(self, editor_id: Optional[int] = None) -> int:
        query = self._active()
        if editor_id is not None:
            query = query.join(
                models.EditorConference,
                models.EditorConference.conference_id == models.Page.conference_id,
            ).filter(models.EditorConference.user_id == editor_id)
        return query.count()

    def save(self, page: models.Page) -> models.Page:
        self.db.commit()
        self.db.refresh(page)
        return page

    def update_with_contents(self, page: models.Page, contents: List[models.Content], deleted_at: datetime) -> models.Page:
        try:
            old_ids = [row[0] for row in self.db.query(models.Content.id).filter(
                models.Content.page_id == page.id,
                models.Content.deleted_at.is_(None),
            ).all()]
            if old_ids:
                self.db.query(models.Content).filter(
                    models.Content.id.in_(old_ids)
                ).update({models.Content.deleted_at: deleted_at}, synchronize_session=False)
                # 삭제되는 콘텐츠의 파일이 존재하지 않는 소유자를 가리키지 않도록 페이지로 이전
                self.db.query(models.FileUpload).filter(
                    models.FileUpload.owner_type == models.OwnerType.CONTENT,
                    models.FileUpload.owner_id.in_(old_ids),
                ).update({
                    models.FileUpload.owner_type: models.OwnerType.PAGE,
                    models.FileUpload.owner_id: page.id,
                }, synchronize_session=False)

            for content in contents:
                content.page_id = page.id
            self.db.add_all(contents)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(page)
        return page

    def soft_delete(self, page: models.Page, deleted_at: datetime) -> bool:
        if not page:
            return False
        try:
            self.db.query(models.Content).filter(
                models.Content.page_id == page.id,
                models.Content.deleted_at.is_(None),
            ).update({models.Content.deleted_at: deleted_at}, synchronize_session=False)
            page.deleted_at = deleted_at
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True
