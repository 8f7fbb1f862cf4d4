from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, func
from ..database import Base


class UserRole(Base):
    """
    사용자(User)와 역할(Role) 사이의 다대다(many-to-many) 관계를 연결하는 연관 테이블입니다.
    (user_id, role_id) 쌍은 유일합니다.
    """
    __tablename__ = 'user_roles'
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    role_id = Column(Integer, ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True)


class EditorConference(Base):
    """
    어떤 editor가 어떤 컨퍼런스를 관리할 수 있는지를 정의하는 배정 테이블입니다.
    어느 한쪽 부모가 삭제되면 함께 삭제됩니다.
    """
    __tablename__ = 'editor_conferences'
    __table_args__ = (UniqueConstraint('user_id', 'conference_id', name='uq_editor_conference'),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    conference_id = Column(Integer, ForeignKey('conferences.id', ondelete='CASCADE'), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
