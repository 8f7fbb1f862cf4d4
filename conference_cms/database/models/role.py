from sqlalchemy import Column, Integer, String
from ..database import Base

ADMIN = "admin"
EDITOR = "editor"
ROLE_NAMES = (ADMIN, EDITOR)


class Role(Base):
    """
    사용자에게 부여되는 권한 묶음을 정의합니다. ('admin', 'editor')
    RBAC(역할 기반 접근 제어)의 핵심 요소입니다.
    """
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
