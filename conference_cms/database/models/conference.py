from sqlalchemy import Column, Integer, String, Text, Date, DateTime, func
from sqlalchemy.orm import relationship
from ..database import Base

CONFERENCE_STATUSES = ("draft", "published", "archived")

# 협력 대학교 소재지. 컨퍼런스 location은 반드시 이 목록 중 하나여야 합니다.
PARTNER_LOCATIONS = (
    "Ljubljana, Slovenia",
    "Zagreb, Croatia",
    "Osijek, Croatia",
    "Vienna, Austria",
    "Padua, Italy",
    "Prague, Czech Republic",
    "Gödöllő, Hungary",
    "Nitra, Slovakia",
)


class Conference(Base):
    """
    하나의 컨퍼런스 사이트를 나타냅니다.
    여러 페이지(Page)를 소유하며, 배정 테이블을 통해 여러 editor를 가집니다.
    """
    __tablename__ = "conferences"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text)
    location = Column(String)
    start_date = Column(Date, index=True)
    end_date = Column(Date, index=True)
    status = Column(String, nullable=False, default="draft", index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    pages = relationship(
        "Page",
        primaryjoin="and_(Conference.id == Page.conference_id, Page.deleted_at.is_(None))",
        order_by="Page.created_at.desc()",
        viewonly=True,
    )
    editors = relationship(
        "User",
        secondary="editor_conferences",
        primaryjoin="Conference.id == EditorConference.conference_id",
        secondaryjoin="User.id == EditorConference.user_id",
        viewonly=True,
    )
