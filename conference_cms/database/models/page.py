from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

PAGE_STATUSES = ("draft", "published", "archived")
PAGE_LAYOUTS = ("default", "full-width", "sidebar")
PUBLISHED = "published"


class Page(Base):
    """
    컨퍼런스에 속한 하나의 웹 페이지입니다.
    순서가 있는 콘텐츠 블록(Content)을 소유하며, 삭제는 soft delete로 처리됩니다.
    """
    __tablename__ = "pages"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, index=True)
    meta_description = Column(String)
    layout = Column(String, nullable=False, default="default")
    status = Column(String, nullable=False, default="draft", index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    conference_id = Column(Integer, ForeignKey("conferences.id"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    conference = relationship("Conference")
    creator = relationship("User", foreign_keys=[created_by])
    updater = relationship("User", foreign_keys=[updated_by])
    contents = relationship(
        "Content",
        primaryjoin="and_(Page.id == Content.page_id, Content.deleted_at.is_(None))",
        order_by="Content.order",
        viewonly=True,
    )

    @property
    def is_published(self):
        return self.status == PUBLISHED
