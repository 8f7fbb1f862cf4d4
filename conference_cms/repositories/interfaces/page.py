from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from conference_cms.database import models

class IPageRepository(ABC):
    @abstractmethod
    def create_with_contents(self, page_model: models.Page, contents: List[models.Content]) -> models.Page:
        """페이지와 콘텐츠 블록을 하나의 트랜잭션으로 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, page_id: int) -> Optional[models.Page]:
        """고유 ID로 삭제되지 않은 페이지를 조회합니다."""
        pass

    @abstractmethod
    def find_in_conference(self, conference_id: int, page_id: int) -> Optional[models.Page]:
        """특정 컨퍼런스에 속한 페이지만 조회합니다."""
        pass

    @abstractmethod
    def slug_exists(self, conference_id: int, slug: str, exclude_id: Optional[int] = None) -> bool:
        """같은 컨퍼런스 안에서 slug가 이미 사용 중인지 확인합니다."""
        pass

    @abstractmethod
    def list_by_conference(self, conference_id: int, published_only: bool = False) -> List[models.Page]:
        """컨퍼런스의 페이지 목록을 최신순으로 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Page]:
        """모든 컨퍼런스의 페이지를 최신순으로 조회합니다."""
        pass

    @abstractmethod
    def list_for_editor(self, user_id: int) -> List[models.Page]:
        """editor에게 배정된 컨퍼런스들의 페이지를 조회합니다."""
        pass

    @abstractmethod
    def count_by_conference(self) -> List[Dict[str, Any]]:
        """컨퍼런스별 페이지 수를 조회합니다. (예: [{'id': 1, 'name': '...', 'pages_count': 3}])"""
        pass

    @abstractmethod
    def count(self, editor_id: Optional[int] = None) -> int:
        """페이지 수를 조회합니다. editor_id가 주어지면 해당 editor가 관리하는 페이지만 셉니다."""
        pass

    @abstractmethod
    def save(self, page: models.Page) -> models.Page:
        """변경된 페이지 정보를 저장합니다."""
        pass

    @abstractmethod
    def update_with_contents(self, page: models.Page, contents: List[models.Content], deleted_at: datetime) -> models.Page:
        """
        페이지 변경 사항을 저장하면서 기존 콘텐츠를 모두 soft delete하고 새 콘텐츠로 교체합니다.
        기존 콘텐츠가 소유하던 파일은 페이지 소유로 옮겨집니다. (하나의 트랜잭션)
        """
        pass

    @abstractmethod
    def soft_delete(self, page: models.Page, deleted_at: datetime) -> bool:
        """페이지와 그 콘텐츠를 soft delete합니다."""
        pass
