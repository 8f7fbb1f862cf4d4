from datetime import datetime
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session
from conference_cms.database import models
from conference_cms.repositories.interfaces import IContentRepository

class SqlalchemyContentRepository(IContentRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _active(self):
        return self.db.query(models.Content).filter(models.Content.deleted_at.is_(None))

    def create(self, content_model: models.Content) -> models.Content:
        self.db.add(content_model)
        self.db.commit()
        self.db.refresh(content_model)
        return content_model

    def find_by_id(self, content_id: int) -> Optional[models.Content]:
        return self._active().filter(models.Content.id == content_id).first()

    def list_by_page(self, page_id: int) -> List[models.Content]:
        return self._active().filter(models.Content.page_id == page_id).order_by(
            models.Content.order.asc(), models.Content.id.asc()
        ).all()

    def save(self, content: models.Content) -> models.Content:
        self.db.commit()
        self.db.refresh(content)
        return content

    def soft_delete(self, content: models.Content, deleted_at: datetime) -> bool:
        if not content:
            return False
        try:
            # 삭제되는 콘텐츠의 파일은 같은 트랜잭션에서 페이지 소유로 이전
            self.db.query(models.FileUpload).filter(
                models.FileUpload.owner_type == models.OwnerType.CONTENT,
                models.FileUpload.owner_id == content.id,
            ).update({
                models.FileUpload.owner_type: models.OwnerType.PAGE,
                models.FileUpload.owner_id: content.page_id,
            }, synchronize_session=False)
            content.deleted_at = deleted_at
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def reorder(self, page_id: int, ordered_ids: Sequence[int]) -> int:
        updated = 0
        try:
            for index, content_id in enumerate(ordered_ids):
                updated += self._active().filter(
                    models.Content.id == content_id,
                    models.Content.page_id == page_id,
                ).update({models.Content.order: index}, synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        # bulk UPDATE는 세션의 객체를 갱신하지 않으므로 다음 조회에서 다시 읽도록 만료
        self.db.expire_all()
        return updated

    def count(self, editor_id: Optional[int] = None) -> int:
        query = self._active()
        if editor_id is not None:
            query = query.join(models.Page, models.Page.id == models.Content.page_id).join(
                models.EditorConference,
                models.EditorConference.conference_id == models.Page.conference_id,
            ).filter(
                models.Page.deleted_at.is_(None),
                models.EditorConference.user_id == editor_id,
            )
        return query.count()
