# tests/services/test_identity_service.py
import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, ANY

from conference_cms.services.identity_service import IdentityService, TokenStore
from conference_cms.services.passwords import hash_password, verify_password
from conference_cms.services.exceptions import *
from conference_cms.repositories.interfaces import IUserRepository, IRoleRepository
from conference_cms.database import models

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_user_repo() -> MagicMock:
    """IUserRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IUserRepository)

@pytest.fixture
def mock_role_repo() -> MagicMock:
    """IRoleRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IRoleRepository)

@pytest.fixture
def token_store() -> TokenStore:
    return TokenStore(ttl_hours=24)

@pytest.fixture
def identity_service(mock_user_repo: MagicMock, mock_role_repo: MagicMock, token_store: TokenStore) -> IdentityService:
    """테스트에 사용될 IdentityService 인스턴스를 생성하고, 의존성을 주입합니다."""
    return IdentityService(mock_user_repo, mock_role_repo, token_store)

REGISTER_DATA = {
    "name": "Jane Editor",
    "email": "jane@university-cms.com",
    "password": "secret-pass",
    "password_confirmation": "secret-pass",
    "role": "editor",
}

# ===================================================================
#  인증(Auth) 테스트
# ===================================================================
class TestAuth:
    def test_register_success(self, identity_service: IdentityService, mock_user_repo: MagicMock,
                              mock_role_repo: MagicMock, user_factory):
        """회원가입 성공 시 사용자 정보와 토큰이 반환됩니다."""
        # === Arrange ===
        mock_user_repo.find_by_email.return_value = None
        mock_role_repo.find_by_name.return_value = models.Role(id=2, name="editor")
        mock_user_repo.create.return_value = user_factory(11, models.EDITOR)

        # === Act ===
        result = identity_service.register(REGISTER_DATA)

        # === Assert ===
        assert result["user"]["id"] == 11
        assert result["user"]["role"] == "editor"
        assert "token" in result and "expires_at" in result
        mock_role_repo.find_by_name.assert_called_once_with("editor")
        created = mock_user_repo.create.call_args.args[0]
        # 검증: 비밀번호는 평문이 아니라 해시로 저장
        assert created.password_hash != "secret-pass"
        assert verify_password("secret-pass", created.password_hash)

    def test_register_rejects_mismatched_confirmation(self, identity_service: IdentityService, mock_user_repo: MagicMock):
        # === Arrange ===
        data = dict(REGISTER_DATA, password_confirmation="other-pass")

        # === Act & Assert ===
        with pytest.raises(ValidationError) as exc_info:
            identity_service.register(data)
        assert "__root__" in exc_info.value.errors
        mock_user_repo.create.assert_not_called()

    def test_register_rejects_taken_email(self, identity_service: IdentityService, mock_user_repo: MagicMock, user_factory):
        mock_user_repo.find_by_email.return_value = user_factory(4)

        with pytest.raises(ValidationError) as exc_info:
            identity_service.register(REGISTER_DATA)
        assert exc_info.value.errors == {"email": ["The email has already been taken."]}
        mock_user_repo.create.assert_not_called()

    def test_register_rejects_unknown_role(self, identity_service: IdentityService):
        with pytest.raises(ValidationError) as exc_info:
            identity_service.register(dict(REGISTER_DATA, role="superuser"))
        assert "role" in exc_info.value.errors

    def test_register_as_admin_logs_warning(self, identity_service: IdentityService, mock_user_repo: MagicMock,
                                            mock_role_repo: MagicMock, user_factory, caplog):
        """공개 회원가입으로 admin 계정이 만들어지면 경고 로그를 남깁니다."""
        # === Arrange ===
        mock_user_repo.find_by_email.return_value = None
        mock_role_repo.find_by_name.return_value = models.Role(id=1, name="admin")
        mock_user_repo.create.return_value = user_factory(12, models.ADMIN)

        # === Act ===
        with caplog.at_level("WARNING", logger="conference_cms.services.identity_service"):
            result = identity_service.register(dict(REGISTER_DATA, role="admin"))

        # === Assert ===
        assert result["user"]["role"] == "admin"
        assert "Public registration created admin account 12" in caplog.text

    def test_login_success_and_token_resolves_user(self, identity_service: IdentityService,
                                                   mock_user_repo: MagicMock, user_factory):
        """로그인으로 받은 토큰으로 사용자를 다시 찾을 수 있어야 합니다."""
        # === Arrange ===
        user = user_factory(5, models.ADMIN)
        user.password_hash = hash_password("password")
        mock_user_repo.find_by_email.return_value = user
        mock_user_repo.find_by_id.return_value = user

        # === Act ===
        result = identity_service.login({"email": user.email, "password": "password"})
        resolved = identity_service.resolve_user(result["token"])

        # === Assert ===
        assert resolved is user
        assert identity_service.validate_token(result["token"]) == 5
        mock_user_repo.find_by_id.assert_called_once_with(5)

    def test_login_fails_with_wrong_password(self, identity_service: IdentityService,
                                             mock_user_repo: MagicMock, user_factory):
        """잘못된 비밀번호로 인증 실패 시나리오를 테스트합니다."""
        # === Arrange ===
        user = user_factory(5, models.ADMIN)
        user.password_hash = hash_password("correct-password")
        mock_user_repo.find_by_email.return_value = user

        # === Act & Assert ===
        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            identity_service.authenticate(user.email, "wrong-password")

    def test_login_fails_for_unknown_email(self, identity_service: IdentityService, mock_user_repo: MagicMock):
        mock_user_repo.find_by_email.return_value = None
        with pytest.raises(AuthenticationError):
            identity_service.authenticate("nobody@university-cms.com", "password")

    def test_logout_revokes_all_tokens(self, identity_service: IdentityService, token_store: TokenStore,
                                       ctx_for, editor_user):
        # === Arrange ===
        first = token_store.issue(editor_user.id)["token"]
        second = token_store.issue(editor_user.id)["token"]
        other = token_store.issue(99)["token"]

        # === Act ===
        revoked = identity_service.logout(ctx_for(editor_user))

        # === Assert ===
        assert revoked == 2
        for token in (first, second):
            with pytest.raises(TokenInvalidError):
                token_store.validate(token)
        assert token_store.validate(other)["user_id"] == 99

    def test_get_current_user_requires_authentication(self, identity_service: IdentityService, ctx_for, editor_user):
        with pytest.raises(TokenInvalidError):
            identity_service.get_current_user(ctx_for(None))
        data = identity_service.get_current_user(ctx_for(editor_user))
        assert data["roles"] == ["editor"]
        assert "password_hash" not in data


class TestTokenStore:
    def test_expired_token_is_rejected_and_removed(self):
        # === Arrange ===
        store = TokenStore(ttl_hours=1)
        issued_at = datetime(2025, 5, 20, 12, 0, 0)
        token = store.issue(3, now=issued_at)["token"]

        # === Act & Assert ===
        assert store.validate(token, now=issued_at + timedelta(minutes=59))["user_id"] == 3
        with pytest.raises(TokenInvalidError, match="expired"):
            store.validate(token, now=issued_at + timedelta(hours=2))
        with pytest.raises(TokenInvalidError, match="not found"):
            store.validate(token, now=issued_at)

    def test_unknown_token(self):
        with pytest.raises(TokenInvalidError):
            TokenStore().validate("does-not-exist")

# ===================================================================
#  사용자 관리(User Management) 테스트
# ===================================================================
class TestUserManagement:
    def test_list_users_is_admin_only(self, identity_service: IdentityService, mock_user_repo: MagicMock,
                                      ctx_for, admin_user, editor_user):
        # === Arrange ===
        mock_user_repo.list_all.return_value = [admin_user, editor_user]

        # === Act ===
        users = identity_service.list_users(ctx_for(admin_user))

        # === Assert ===
        assert [u["role"] for u in users] == ["admin", "editor"]
        with pytest.raises(ForbiddenError):
            identity_service.list_users(ctx_for(editor_user))

    def test_create_user_success(self, identity_service: IdentityService, mock_user_repo: MagicMock,
                                 mock_role_repo: MagicMock, ctx_for, admin_user, user_factory):
        """사용자 생성 성공 시나리오를 테스트합니다."""
        # === Arrange ===
        mock_user_repo.find_by_email.return_value = None
        mock_role_repo.find_by_name.return_value = models.Role(id=2, name="editor")
        mock_user_repo.create.return_value = user_factory(12, models.EDITOR)

        # === Act ===
        user = identity_service.create_user(ctx_for(admin_user), REGISTER_DATA)

        # === Assert ===
        assert user["id"] == 12
        mock_user_repo.create.assert_called_once_with(ANY)

    def test_update_user_replaces_role(self, identity_service: IdentityService, mock_user_repo: MagicMock,
                                       mock_role_repo: MagicMock, ctx_for, admin_user, user_factory):
        """role이 주어지면 기존 역할을 모두 떼고 하나만 붙입니다."""
        # === Arrange ===
        target = user_factory(6, models.ADMIN, models.EDITOR)
        admin_role = models.Role(id=1, name="admin")
        mock_user_repo.find_by_id.return_value = target
        mock_user_repo.save.return_value = target
        mock_role_repo.find_by_name.return_value = admin_role
        mock_user_repo.replace_roles.return_value = user_factory(6, models.ADMIN)

        # === Act ===
        result = identity_service.update_user(ctx_for(admin_user), 6, {"name": "Renamed", "role": "admin"})

        # === Assert ===
        assert target.name == "Renamed"
        assert result["roles"] == ["admin"]
        mock_user_repo.replace_roles.assert_called_once_with(target, [admin_role])

    def test_update_user_rejects_email_of_other_user(self, identity_service: IdentityService, mock_user_repo: MagicMock,
                                                     ctx_for, admin_user, user_factory):
        mock_user_repo.find_by_id.return_value = user_factory(6)
        mock_user_repo.find_by_email.return_value = user_factory(7)

        with pytest.raises(ValidationError):
            identity_service.update_user(ctx_for(admin_user), 6, {"email": "user7@university-cms.com"})
        mock_user_repo.save.assert_not_called()

    def test_delete_user_success(self, identity_service: IdentityService, mock_user_repo: MagicMock,
                                 token_store: TokenStore, ctx_for, admin_user, user_factory):
        """사용자 삭제 시 토큰도 함께 폐기됩니다."""
        # === Arrange ===
        target = user_factory(8, models.EDITOR)
        mock_user_repo.find_by_id.return_value = target
        token = token_store.issue(8)["token"]

        # === Act ===
        result = identity_service.delete_user(ctx_for(admin_user), 8)

        # === Assert ===
        assert result is True
        mock_user_repo.delete.assert_called_once_with(target)
        with pytest.raises(TokenInvalidError):
            token_store.validate(token)

    def test_get_user_not_found(self, identity_service: IdentityService, mock_user_repo: MagicMock, ctx_for, admin_user):
        mock_user_repo.find_by_id.return_value = None
        with pytest.raises(UserNotFoundError):
            identity_service.get_user(ctx_for(admin_user), 404)

    def test_non_admin_cannot_delete(self, identity_service: IdentityService, mock_user_repo: MagicMock,
                                     ctx_for, editor_user):
        with pytest.raises(ForbiddenError):
            identity_service.delete_user(ctx_for(editor_user), 1)
        mock_user_repo.find_by_id.assert_not_called()
        mock_user_repo.delete.assert_not_called()
