# tests/conftest.py
from datetime import datetime
from types import SimpleNamespace

import pytest

from conference_cms.database import models
from conference_cms.services.authorization import AuthContext
from conference_cms.services.cache_service import TTLCache, build_default_registry

NOW = datetime(2025, 5, 20, 12, 0, 0)

ROLE_IDS = {models.ADMIN: 1, models.EDITOR: 2}


def make_user(user_id=1, *role_names, conference_ids=()):
    """
    권한 판단에 필요한 속성만 가진 가짜 사용자를 만듭니다.
    conferences는 ORM에서 viewonly 관계이므로 단순 객체로 흉내 냅니다.
    """
    roles = [models.Role(id=ROLE_IDS[name], name=name) for name in sorted(role_names, key=ROLE_IDS.get)]
    return SimpleNamespace(
        id=user_id,
        name=f"User {user_id}",
        email=f"user{user_id}@university-cms.com",
        password_hash="",
        roles=roles,
        role_names=[role.name for role in roles],
        conferences=[SimpleNamespace(id=cid) for cid in conference_ids],
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def admin_user():
    return make_user(1, models.ADMIN)


@pytest.fixture
def editor_user():
    """컨퍼런스 10번에 배정된 editor."""
    return make_user(2, models.EDITOR, conference_ids=(10,))


@pytest.fixture
def plain_user():
    return make_user(3)


@pytest.fixture
def registry():
    return build_default_registry(TTLCache(ttl_seconds=600))


@pytest.fixture
def ctx_for(registry):
    """사용자별 AuthContext를 만드는 팩토리. None이면 익명 요청입니다."""
    def _make(user):
        return AuthContext(user=user, now=NOW, cache=registry)
    return _make


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def now():
    return NOW
