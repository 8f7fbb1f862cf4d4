# tests/services/test_authorization.py
import pytest
from types import SimpleNamespace

from conference_cms.services.authorization import (
    AuthContext, authorize, has_role, has_any_role, is_admin, is_editor, primary_role,
    role_required, creator_or_admin, can_manage_conference, can_view_unpublished
)
from conference_cms.services.exceptions import ForbiddenError
from conference_cms.database import models

# ===================================================================
#  authorize() 게이트 테스트
# ===================================================================
class TestAuthorizeGate:
    def test_passes_only_when_predicate_is_true(self, ctx_for, admin_user):
        """predicate가 정확히 True를 반환할 때만 통과합니다."""
        # === Arrange ===
        ctx = ctx_for(admin_user)

        # === Act & Assert ===
        assert authorize(ctx, lambda user: True) is True
        with pytest.raises(ForbiddenError):
            authorize(ctx, lambda user: False)
        # truthy 값이라도 True가 아니면 거부
        with pytest.raises(ForbiddenError):
            authorize(ctx, lambda user: 1)

    def test_anonymous_is_rejected_without_evaluating_predicate(self, ctx_for):
        """익명 요청이면 predicate를 평가하지 않고 ForbiddenError가 발생합니다."""
        # === Arrange ===
        calls = []

        def predicate(user):
            calls.append(user)
            return True

        # === Act & Assert ===
        with pytest.raises(ForbiddenError):
            authorize(ctx_for(None), predicate)
        assert calls == []

    def test_custom_message_is_used(self, ctx_for, plain_user):
        with pytest.raises(ForbiddenError, match="You do not have permission"):
            authorize(ctx_for(plain_user), role_required(models.ADMIN), "You do not have permission")

    def test_side_effect_is_not_performed_on_rejection(self, ctx_for, plain_user):
        """게이트를 통과하지 못하면 뒤따르는 작업은 실행되지 않습니다."""
        performed = []

        def guarded():
            authorize(ctx_for(plain_user), role_required(models.ADMIN))
            performed.append("done")

        with pytest.raises(ForbiddenError):
            guarded()
        assert performed == []


# ===================================================================
#  역할 predicate 테스트
# ===================================================================
class TestRolePredicates:
    @pytest.mark.parametrize("role_names, expected", [
        ((), False),
        ((models.EDITOR,), False),
        ((models.ADMIN,), True),
        ((models.ADMIN, models.EDITOR), True),
    ])
    def test_is_admin_matches_role_membership(self, user_factory, role_names, expected):
        """is_admin(U)는 'admin'이 U의 역할 집합에 있는지와 같습니다."""
        user = user_factory(5, *role_names)
        assert is_admin(user) is expected
        assert has_role(user, models.ADMIN) is expected

    def test_multi_role_user_is_checked_against_full_role_set(self, user_factory):
        """대표 역할과 무관하게 모든 역할이 권한 판단에 사용됩니다."""
        # === Arrange ===
        user = user_factory(5, models.ADMIN, models.EDITOR)

        # === Assert ===
        assert primary_role(user) == models.ADMIN
        assert is_editor(user) is True
        assert is_admin(user) is True

    def test_primary_role_defaults_to_user(self, plain_user):
        assert primary_role(plain_user) == "user"

    def test_has_any_role_accepts_single_name(self, editor_user):
        assert has_any_role(editor_user, models.EDITOR) is True
        assert has_any_role(editor_user, [models.ADMIN]) is False
        assert has_any_role(None, [models.ADMIN]) is False


# ===================================================================
#  predicate 팩토리 테스트
# ===================================================================
class TestPredicateFactories:
    def test_creator_or_admin(self, user_factory):
        """생성자이거나 admin인 경우만 허용하고 나머지 조합은 모두 거부합니다."""
        # === Arrange ===
        entity = SimpleNamespace(created_by=7)
        creator = user_factory(7, models.EDITOR)
        other_editor = user_factory(8, models.EDITOR)
        admin = user_factory(1, models.ADMIN)
        creator_without_role = user_factory(7)

        predicate = creator_or_admin(entity)

        # === Assert ===
        assert predicate(creator) is True
        assert predicate(admin) is True
        assert predicate(creator_without_role) is True
        assert predicate(other_editor) is False

    def test_can_manage_conference(self, admin_user, editor_user, user_factory):
        """admin은 모든 컨퍼런스를, editor는 배정된 컨퍼런스만 관리할 수 있습니다."""
        unassigned_editor = user_factory(9, models.EDITOR)

        assert can_manage_conference(10)(admin_user) is True
        assert can_manage_conference(99)(admin_user) is True
        assert can_manage_conference(10)(editor_user) is True
        assert can_manage_conference(99)(editor_user) is False
        assert can_manage_conference(10)(unassigned_editor) is False

    def test_can_view_unpublished(self, editor_user, plain_user):
        assert can_view_unpublished(None, 10) is False
        assert can_view_unpublished(plain_user, 10) is False
        assert can_view_unpublished(editor_user, 10) is True
        assert can_view_unpublished(editor_user, 11) is False

    def test_auth_context_properties(self, now, editor_user):
        ctx = AuthContext(user=editor_user, now=now)
        assert ctx.user_id == editor_user.id
        assert ctx.is_authenticated is True
        assert AuthContext().user_id is None
        assert AuthContext().is_authenticated is False
