import enum
from dataclasses import dataclass

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Index, func
from sqlalchemy.orm import relationship
from ..database import Base


class OwnerType(enum.Enum):
    """파일을 소유할 수 있는 엔티티 종류. 이 집합 밖의 타입은 저장될 수 없습니다."""
    CONTENT = "content"
    PAGE = "page"
    USER = "user"


@dataclass(frozen=True)
class FileOwner:
    """(엔티티 종류, id) 쌍으로 표현되는 파일 소유자."""
    type: OwnerType
    id: int

    @classmethod
    def content(cls, content_id: int) -> "FileOwner":
        return cls(OwnerType.CONTENT, content_id)

    @classmethod
    def page(cls, page_id: int) -> "FileOwner":
        return cls(OwnerType.PAGE, page_id)

    @classmethod
    def user(cls, user_id: int) -> "FileOwner":
        return cls(OwnerType.USER, user_id)

    def to_dict(self):
        return {"type": self.type.value, "id": self.id}


class FileUpload(Base):
    """
    업로드된 파일의 메타데이터입니다.
    실제 바이트는 디스크(storage)에 저장되고, 소유자는 (owner_type, owner_id) 쌍으로 기록됩니다.
    """
    __tablename__ = "file_uploads"
    __table_args__ = (Index("ix_file_uploads_owner", "owner_type", "owner_id"),)

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String, nullable=False, unique=True)
    original_filename = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    path = Column(String, nullable=False)
    disk = Column(String, nullable=False, default="public")
    owner_type = Column(Enum(OwnerType, values_callable=lambda e: [m.value for m in e], name="owner_type"), nullable=True)
    owner_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    creator = relationship("User", foreign_keys=[created_by])

    @property
    def owner(self):
        if self.owner_type is None or self.owner_id is None:
            return None
        return FileOwner(self.owner_type, self.owner_id)

    def is_owned_by(self, owner: FileOwner) -> bool:
        return self.owner == owner
