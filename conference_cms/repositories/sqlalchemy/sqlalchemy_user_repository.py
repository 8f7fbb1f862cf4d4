from typing import List, Optional
from sqlalchemy.orm import Session
from conference_cms.database import models
from conference_cms.repositories.interfaces import IUserRepository

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, user_model: models.User) -> models.User:
        self.db.add(user_model)
        self.db.commit()
        self.db.refresh(user_model)
        return user_model

    def find_by_id(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def find_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.email == email).first()

    def list_all(self) -> List[models.User]:
        return self.db.query(models.User).order_by(models.User.id.asc()).all()

    def save(self, user: models.User) -> models.User:
        self.db.commit()
        self.db.refresh(user)
        return user

    def replace_roles(self, user: models.User, roles: List[models.Role]) -> models.User:
        try:
            user.roles = list(roles)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def delete(self, user: models.User) -> bool:
        if not user:
            return False
        try:
            user.roles = []
            self.db.query(models.EditorConference).filter(
                models.EditorConference.user_id == user.id
            ).delete(synchronize_session=False)
            self.db.delete(user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def count(self) -> int:
        return self.db.query(models.User).count()
