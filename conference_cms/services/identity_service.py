import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional

from conference_cms.database import models
from conference_cms.repositories.interfaces import IUserRepository, IRoleRepository
from conference_cms.schemas import (
    validate_payload, RegisterRequest, LoginRequest, CreateUserRequest, UpdateUserRequest,
)
from conference_cms.services.authorization import AuthContext, authorize, admin_only
from conference_cms.services.passwords import hash_password, verify_password
from conference_cms.services.serializers import user_to_dict
from conference_cms.services.exceptions import (
    ValidationError, UserNotFoundError, RoleNotFoundError,
    AuthenticationError, TokenInvalidError
)

logger = logging.getLogger(__name__)


class TokenStore:
    """발급된 bearer 토큰을 보관합니다. 애플리케이션 단위로 하나만 생성해 주입합니다."""

    def __init__(self, ttl_hours: int = 24):
        self.ttl = timedelta(hours=ttl_hours)
        self._tokens: Dict[str, Dict[str, Any]] = {}

    def issue(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, str]:
        now = now or datetime.now()
        token = uuid.uuid4().hex
        expires_at = now + self.ttl
        self._tokens[token] = {'user_id': user_id, 'expires_at': expires_at}
        return {"token": token, "expires_at": expires_at.isoformat()}

    def validate(self, token: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        토큰의 유효성을 검증하고, 유효하면 토큰 데이터를 반환합니다.

        Raises:
            TokenInvalidError: 토큰을 찾을 수 없거나 만료되었을 때.
        """
        token_data = self._tokens.get(token)
        if not token_data:
            raise TokenInvalidError("Token not found or invalid.")

        if (now or datetime.now()) > token_data['expires_at']:
            del self._tokens[token]
            raise TokenInvalidError("Token has expired.")

        return token_data

    def revoke_user(self, user_id: int) -> int:
        revoked = [token for token, data in self._tokens.items() if data['user_id'] == user_id]
        for token in revoked:
            del self._tokens[token]
        return len(revoked)


class IdentityService:
    """사용자, 역할, 인증(토큰) 등 신원 및 접근 관리 서비스를 제공합니다."""

    def __init__(self, user_repo: IUserRepository, role_repo: IRoleRepository, token_store: TokenStore):
        """
        IdentityService를 초기화합니다.

        Args:
            user_repo: 사용자 데이터에 접근하기 위한 리포지토리.
            role_repo: 역할 데이터에 접근하기 위한 리포지토리.
            token_store: bearer 토큰 저장소. 요청 간에 공유됩니다.
        """
        self.user_repo = user_repo
        self.role_repo = role_repo
        self.token_store = token_store

    # --- 인증 ---

    def register(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        새 사용자를 등록하고 역할을 부여한 뒤 토큰을 발급합니다.

        Raises:
            ValidationError: 입력이 유효하지 않거나 이메일이 이미 사용 중일 때.
            RoleNotFoundError: 요청한 역할이 DB에 없을 때.
        """
        request = validate_payload(RegisterRequest, data)
        user = self._create_user_with_role(request.name, request.email, request.password, request.role)
        token = self.token_store.issue(user.id)
        logger.info("User %s registered with role '%s'", user.id, request.role)
        if request.role == models.ADMIN:
            logger.warning("Public registration created admin account %s (%s)", user.id, request.email)
        return {"user": user_to_dict(user), **token}

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        자격증명을 검증하고, 성공 시 인증 토큰을 발급합니다.

        Raises:
            AuthenticationError: 사용자가 없거나 비밀번호가 틀렸을 때.
        """
        user = self.user_repo.find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid login credentials")

        token = self.token_store.issue(user.id)
        return {"user": user_to_dict(user), **token}

    def login(self, data: Dict[str, Any]) -> Dict[str, Any]:
        request = validate_payload(LoginRequest, data)
        return self.authenticate(request.email, request.password)

    def logout(self, ctx: AuthContext) -> int:
        """현재 사용자의 모든 토큰을 폐기합니다."""
        if not ctx.is_authenticated:
            raise TokenInvalidError("Unauthenticated.")
        return self.token_store.revoke_user(ctx.user_id)

    def validate_token(self, token: str) -> int:
        """토큰이 유효하면 소유자의 user id를 반환합니다."""
        return self.token_store.validate(token)["user_id"]

    def resolve_user(self, token: str) -> models.User:
        """
        토큰에 해당하는 사용자를 반환합니다.

        Raises:
            TokenInvalidError: 토큰이 유효하지 않거나 사용자가 더 이상 존재하지 않을 때.
        """
        user = self.user_repo.find_by_id(self.validate_token(token))
        if not user:
            raise TokenInvalidError("Token owner no longer exists.")
        return user

    def get_current_user(self, ctx: AuthContext) -> Dict[str, Any]:
        if not ctx.is_authenticated:
            raise TokenInvalidError("Unauthenticated.")
        return user_to_dict(ctx.user)

    # --- 사용자 관리 (admin 전용) ---

    def list_users(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        """모든 사용자의 목록을 대표 역할과 함께 조회합니다. (비밀번호 제외)"""
        authorize(ctx, admin_only())
        return [user_to_dict(u) for u in self.user_repo.list_all()]

    def get_user(self, ctx: AuthContext, user_id: int) -> Dict[str, Any]:
        """
        ID로 특정 사용자를 조회합니다. (비밀번호 제외)

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
        """
        authorize(ctx, admin_only())
        return user_to_dict(self._get_user_or_raise(user_id))

    def create_user(self, ctx: AuthContext, data: Dict[str, Any]) -> Dict[str, Any]:
        authorize(ctx, admin_only())
        request = validate_payload(CreateUserRequest, data)
        user = self._create_user_with_role(request.name, request.email, request.password, request.role)
        logger.info("Admin %s created user %s", ctx.user_id, user.id)
        return user_to_dict(user)

    def update_user(self, ctx: AuthContext, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        사용자 정보를 수정합니다. role이 주어지면 기존 역할을 모두 제거하고 해당 역할 하나로 교체합니다.

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            ValidationError: 입력이 유효하지 않거나 이메일이 다른 사용자와 겹칠 때.
        """
        authorize(ctx, admin_only())
        request = validate_payload(UpdateUserRequest, data)
        user = self._get_user_or_raise(user_id)

        if request.email is not None and request.email != user.email:
            existing = self.user_repo.find_by_email(request.email)
            if existing and existing.id != user.id:
                raise ValidationError.for_field("email", "The email has already been taken.")
            user.email = request.email
        if request.name is not None:
            user.name = request.name
        if request.password is not None:
            user.password_hash = hash_password(request.password)
        user = self.user_repo.save(user)

        if request.role is not None:
            role = self._get_role_or_raise(request.role)
            user = self.user_repo.replace_roles(user, [role])

        return user_to_dict(user)

    def delete_user(self, ctx: AuthContext, user_id: int) -> bool:
        """
        사용자를 삭제합니다. 역할과 컨퍼런스 배정도 함께 제거되고, 발급된 토큰은 폐기됩니다.

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
        """
        authorize(ctx, admin_only())
        user = self._get_user_or_raise(user_id)
        self.user_repo.delete(user)
        self.token_store.revoke_user(user_id)
        logger.info("Admin %s deleted user %s", ctx.user_id, user_id)
        return True

    # --- 내부 헬퍼 ---

    def _get_user_or_raise(self, user_id: int) -> models.User:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        return user

    def _get_role_or_raise(self, role_name: str) -> models.Role:
        role = self.role_repo.find_by_name(role_name)
        if not role:
            raise RoleNotFoundError(f"Role '{role_name}' not found.")
        return role

    def _create_user_with_role(self, name: str, email: str, password: str, role_name: str) -> models.User:
        if self.user_repo.find_by_email(email):
            raise ValidationError.for_field("email", "The email has already been taken.")
        role = self._get_role_or_raise(role_name)

        new_user = models.User(name=name, email=email, password_hash=hash_password(password))
        new_user.roles.append(role)
        return self.user_repo.create(new_user)
