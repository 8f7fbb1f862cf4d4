from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from ..database import Base


class User(Base):
    """
    시스템에 로그인하여 컨퍼런스, 페이지, 파일을 관리하는 사용자를 나타냅니다.
    사용자는 0개 이상의 역할(Role)을 가지며, editor는 배정된 컨퍼런스만 관리합니다.
    """
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # 가장 먼저 부여된 역할이 화면 표시용 '대표 역할'이 되도록 role id 순으로 정렬
    roles = relationship("Role", secondary="user_roles", order_by="Role.id", lazy="selectin")
    conferences = relationship(
        "Conference",
        secondary="editor_conferences",
        primaryjoin="User.id == EditorConference.user_id",
        secondaryjoin="and_(Conference.id == EditorConference.conference_id, Conference.deleted_at.is_(None))",
        order_by="Conference.id",
        viewonly=True,
    )

    @property
    def role_names(self):
        return [role.name for role in self.roles]
