from datetime import datetime
from typing import Iterable, List, Optional, Set
from sqlalchemy.orm import Session
from conference_cms.database import models
from conference_cms.repositories.interfaces import IConferenceRepository

class SqlalchemyConferenceRepository(IConferenceRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _active(self):
        return self.db.query(models.Conference).filter(models.Conference.deleted_at.is_(None))

    def create(self, conference_model: models.Conference) -> models.Conference:
        self.db.add(conference_model)
        self.db.commit()
        self.db.refresh(conference_model)
        return conference_model

    def find_by_id(self, conference_id: int) -> Optional[models.Conference]:
        return self._active().filter(models.Conference.id == conference_id).first()

    def find_by_slug(self, slug: str) -> Optional[models.Conference]:
        return self._active().filter(models.Conference.slug == slug).first()

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(models.Conference.id).filter(models.Conference.slug == slug)
        if exclude_id is not None:
            query = query.filter(models.Conference.id != exclude_id)
        return query.first() is not None

    def list_all(self) -> List[models.Conference]:
        return self._active().order_by(models.Conference.start_date.asc(), models.Conference.id.asc()).all()

    def existing_ids(self, conference_ids: Iterable[int]) -> Set[int]:
        ids = set(conference_ids)
        if not ids:
            return set()
        rows = self._active().with_entities(models.Conference.id).filter(models.Conference.id.in_(ids)).all()
        return {row[0] for row in rows}

    def save(self, conference: models.Conference) -> models.Conference:
        self.db.commit()
        self.db.refresh(conference)
        return conference

    def soft_delete_cascade(self, conference: models.Conference, deleted_at: datetime) -> bool:
        if not conference:
            return False
        try:
            page_ids = [row[0] for row in self.db.query(models.Page.id).filter(
                models.Page.conference_id == conference.id,
                models.Page.deleted_at.is_(None),
            ).all()]
            if page_ids:
                self.db.query(models.Content).filter(
                    models.Content.page_id.in_(page_ids),
                    models.Content.deleted_at.is_(None),
                ).update({models.Content.deleted_at: deleted_at}, synchronize_session=False)
                self.db.query(models.Page).filter(
                    models.Page.id.in_(page_ids)
                ).update({models.Page.deleted_at: deleted_at}, synchronize_session=False)

            self.db.query(models.EditorConference).filter(
                models.EditorConference.conference_id == conference.id
            ).delete(synchronize_session=False)

            conference.deleted_at = deleted_at
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def count(self) -> int:
        return self._active().count()

    def list_assigned_ids(self, user_id: int) -> Set[int]:
        rows = self.db.query(models.EditorConference.conference_id).filter(
            models.EditorConference.user_id == user_id
        ).all()
        return {row[0] for row in rows}

    def list_for_user(self, user_id: int) -> List[models.Conference]:
        return self._active().join(
            models.EditorConference,
            models.EditorConference.conference_id == models.Conference.id,
        ).filter(models.EditorConference.user_id == user_id).order_by(models.Conference.id.asc()).all()

    def replace_assignments(self, user_id: int, conference_ids: Iterable[int]) -> None:
        # 중복 id는 unique 제약을 위반하므로 순서를 유지한 채 제거
        unique_ids = list(dict.fromkeys(conference_ids))
        try:
            self.db.query(models.EditorConference).filter(
                models.EditorConference.user_id == user_id
            ).delete(synchronize_session=False)
            self.db.add_all([
                models.EditorConference(user_id=user_id, conference_id=conference_id)
                for conference_id in unique_ids
            ])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def remove_assignments(self, user_id: int, conference_ids: Iterable[int]) -> int:
        ids = set(conference_ids)
        if not ids:
            return 0
        try:
            removed = self.db.query(models.EditorConference).filter(
                models.EditorConference.user_id == user_id,
                models.EditorConference.conference_id.in_(ids),
            ).delete(synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return removed
