from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Set
from conference_cms.database import models

class IConferenceRepository(ABC):
    @abstractmethod
    def create(self, conference_model: models.Conference) -> models.Conference:
        """새로운 컨퍼런스를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, conference_id: int) -> Optional[models.Conference]:
        """고유 ID로 삭제되지 않은 컨퍼런스를 조회합니다."""
        pass

    @abstractmethod
    def find_by_slug(self, slug: str) -> Optional[models.Conference]:
        """slug로 삭제되지 않은 컨퍼런스를 조회합니다."""
        pass

    @abstractmethod
    def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        """slug가 이미 사용 중인지 확인합니다. (soft delete된 행 포함, unique 제약 때문)"""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Conference]:
        """삭제되지 않은 모든 컨퍼런스를 조회합니다."""
        pass

    @abstractmethod
    def existing_ids(self, conference_ids: Iterable[int]) -> Set[int]:
        """주어진 id 중 실제로 존재하는 컨퍼런스 id만 반환합니다."""
        pass

    @abstractmethod
    def save(self, conference: models.Conference) -> models.Conference:
        """변경된 컨퍼런스 정보를 저장합니다."""
        pass

    @abstractmethod
    def soft_delete_cascade(self, conference: models.Conference, deleted_at: datetime) -> bool:
        """
        컨퍼런스와 그 페이지, 콘텐츠를 soft delete하고 editor 배정을 제거합니다.
        하나의 트랜잭션으로 처리되며, 실패 시 이전 상태로 롤백됩니다.
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """삭제되지 않은 컨퍼런스 수를 조회합니다."""
        pass

    # --- editor 배정 ---

    @abstractmethod
    def list_assigned_ids(self, user_id: int) -> Set[int]:
        """사용자에게 배정된 컨퍼런스 id 집합을 조회합니다."""
        pass

    @abstractmethod
    def list_for_user(self, user_id: int) -> List[models.Conference]:
        """사용자에게 배정된 컨퍼런스 목록을 조회합니다."""
        pass

    @abstractmethod
    def replace_assignments(self, user_id: int, conference_ids: Iterable[int]) -> None:
        """
        사용자의 배정을 모두 제거한 뒤 주어진 id로 다시 배정합니다.
        (전체 교체, 하나의 트랜잭션)
        """
        pass

    @abstractmethod
    def remove_assignments(self, user_id: int, conference_ids: Iterable[int]) -> int:
        """주어진 id의 배정만 제거하고 나머지는 유지합니다. 제거된 행 수를 반환합니다."""
        pass
