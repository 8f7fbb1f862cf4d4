from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from conference_cms.database import models

class IFileUploadRepository(ABC):
    @abstractmethod
    def create(self, file_model: models.FileUpload) -> models.FileUpload:
        """새로운 파일 메타데이터를 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, file_id: int) -> Optional[models.FileUpload]:
        """고유 ID로 삭제되지 않은 파일을 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.FileUpload]:
        """모든 파일을 최신순으로 조회합니다."""
        pass

    @abstractmethod
    def list_by_owner(self, owner: models.FileOwner) -> List[models.FileUpload]:
        """특정 소유자가 가진 파일을 조회합니다."""
        pass

    @abstractmethod
    def reassign(self, file: models.FileUpload, owner: models.FileOwner) -> models.FileUpload:
        """(owner_type, owner_id)를 하나의 UPDATE 문으로 함께 변경합니다."""
        pass

    @abstractmethod
    def soft_delete(self, file: models.FileUpload, deleted_at: datetime) -> bool:
        """파일 메타데이터를 soft delete합니다."""
        pass

    @abstractmethod
    def count(self, created_by: Optional[int] = None) -> int:
        """파일 수를 조회합니다. created_by가 주어지면 해당 사용자가 올린 파일만 셉니다."""
        pass
