"""
권한 검사 게이트와 역할/소유권 판단 함수들.

모든 변경(mutating) 작업은 부작용을 일으키기 전에 authorize()를 정확히 한 번 통과해야 합니다.
현재 사용자, 현재 시각, 캐시 핸들은 전역 상태가 아니라 AuthContext로 명시적으로 전달됩니다.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from conference_cms.database import models
from conference_cms.services.exceptions import ForbiddenError

Predicate = Callable[[models.User], bool]


@dataclass
class AuthContext:
    """요청 하나에 대한 실행 문맥. user가 None이면 익명 요청입니다."""
    user: Optional[models.User] = None
    now: datetime = field(default_factory=datetime.now)
    cache: Any = None

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def authorize(ctx: AuthContext, predicate: Predicate, message: str = "This action is unauthorized.") -> bool:
    """
    predicate(현재 사용자)를 평가하여 True일 때만 통과시킵니다.

    Raises:
        ForbiddenError: 익명 요청이거나 predicate가 True가 아닐 때.
    """
    if ctx is None or ctx.user is None:
        raise ForbiddenError(message)
    if predicate(ctx.user) is not True:
        raise ForbiddenError(message)
    return True


def has_role(user: Optional[models.User], name: str) -> bool:
    if user is None:
        return False
    return any(role.name == name for role in user.roles)


def has_any_role(user: Optional[models.User], names: Iterable[str]) -> bool:
    if isinstance(names, str):
        names = [names]
    wanted = set(names)
    if user is None:
        return False
    return any(role.name in wanted for role in user.roles)


def is_admin(user: Optional[models.User]) -> bool:
    return has_role(user, models.ADMIN)


def is_editor(user: Optional[models.User]) -> bool:
    return has_role(user, models.EDITOR)


def primary_role(user: models.User) -> str:
    """
    화면 표시용 대표 역할을 반환합니다. 첫 번째 역할, 역할이 없으면 'user'.
    권한 판단에는 사용하지 않습니다.
    """
    return user.roles[0].name if user.roles else "user"


def is_assigned_to(user: Optional[models.User], conference_id: int) -> bool:
    if user is None:
        return False
    return any(conference.id == conference_id for conference in user.conferences)


# --- 게이트에 넘길 predicate 팩토리 ---

def role_required(*names: str) -> Predicate:
    return lambda user: has_any_role(user, names)


def admin_only() -> Predicate:
    return is_admin


def creator_or_admin(entity) -> Predicate:
    """현재 사용자가 entity의 생성자이거나 admin일 때만 허용합니다."""
    return lambda user: user.id == entity.created_by or is_admin(user)


def can_manage_conference(conference_id: int) -> Predicate:
    """admin, 또는 해당 컨퍼런스에 배정된 editor."""
    return lambda user: is_admin(user) or (is_editor(user) and is_assigned_to(user, conference_id))


def can_view_unpublished(user: Optional[models.User], conference_id: int) -> bool:
    """미게시(draft/archived) 페이지를 볼 수 있는지 여부."""
    if user is None:
        return False
    return can_manage_conference(conference_id)(user)
