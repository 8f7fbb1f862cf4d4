from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence
from conference_cms.database import models

class IContentRepository(ABC):
    @abstractmethod
    def create(self, content_model: models.Content) -> models.Content:
        """새로운 콘텐츠 블록을 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, content_id: int) -> Optional[models.Content]:
        """고유 ID로 삭제되지 않은 콘텐츠 블록을 조회합니다."""
        pass

    @abstractmethod
    def list_by_page(self, page_id: int) -> List[models.Content]:
        """페이지의 콘텐츠 블록을 order 순으로 조회합니다."""
        pass

    @abstractmethod
    def save(self, content: models.Content) -> models.Content:
        """변경된 콘텐츠 블록을 저장합니다."""
        pass

    @abstractmethod
    def soft_delete(self, content: models.Content, deleted_at: datetime) -> bool:
        """콘텐츠 블록을 soft delete하고, 그 파일들을 같은 트랜잭션에서 페이지 소유로 옮깁니다."""
        pass

    @abstractmethod
    def reorder(self, page_id: int, ordered_ids: Sequence[int]) -> int:
        """
        각 id의 order를 목록 내 위치로 갱신합니다.
        page_id 조건으로 필터링하므로 다른 페이지의 id는 무시됩니다. 갱신된 행 수를 반환합니다.
        """
        pass

    @abstractmethod
    def count(self, editor_id: Optional[int] = None) -> int:
        """콘텐츠 블록 수를 조회합니다. editor_id가 주어지면 해당 editor가 관리하는 블록만 셉니다."""
        pass
