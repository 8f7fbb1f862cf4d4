from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from ..database import Base

# 페이지 편집기 블록 타입과 개별 콘텐츠 API 타입을 모두 포함
CONTENT_TYPES = ("wysiwyg", "markdown", "html", "text", "image", "video", "file")
BLOCK_TYPES = ("text", "image", "video", "file")
RICH_TEXT_TYPES = ("wysiwyg", "markdown", "html")


class Content(Base):
    """
    페이지 안의 콘텐츠 블록 하나를 나타냅니다.
    order 값이 페이지 내 표시 순서를 결정합니다.
    """
    __tablename__ = "contents"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, default="")
    type = Column(String, nullable=False)
    body = Column(Text, nullable=False, default="")
    order = Column(Integer, nullable=False, default=0)
    settings = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    page_id = Column(Integer, ForeignKey("pages.id"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    page = relationship("Page")
    creator = relationship("User", foreign_keys=[created_by])
