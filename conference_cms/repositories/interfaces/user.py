from abc import ABC, abstractmethod
from typing import List, Optional
from conference_cms.database import models

class IUserRepository(ABC):
    @abstractmethod
    def create(self, user_model: models.User) -> models.User:
        """새로운 사용자를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[models.User]:
        """고유 ID로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[models.User]:
        """이메일로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.User]:
        """모든 사용자의 목록을 역할과 함께 조회합니다."""
        pass

    @abstractmethod
    def save(self, user: models.User) -> models.User:
        """변경된 사용자 정보를 저장합니다."""
        pass

    @abstractmethod
    def replace_roles(self, user: models.User, roles: List[models.Role]) -> models.User:
        """사용자의 역할을 모두 제거한 뒤 주어진 역할로 교체합니다. (하나의 트랜잭션)"""
        pass

    @abstractmethod
    def delete(self, user: models.User) -> bool:
        """사용자와 역할/컨퍼런스 배정을 함께 삭제합니다."""
        pass

    @abstractmethod
    def count(self) -> int:
        """전체 사용자 수를 조회합니다."""
        pass
