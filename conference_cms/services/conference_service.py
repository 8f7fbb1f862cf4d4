import logging
from typing import Dict, Any, List

from conference_cms.database import models
from conference_cms.repositories.interfaces import (
    IConferenceRepository, IPageRepository, IUserRepository
)
from conference_cms.schemas import (
    validate_payload, CreateConferenceRequest, UpdateConferenceRequest, AssignConferencesRequest,
)
from conference_cms.services import cache_service
from conference_cms.services.authorization import (
    AuthContext, authorize, admin_only, role_required, is_admin, is_editor
)
from conference_cms.services.lookup import find_conference
from conference_cms.services.serializers import conference_to_dict, page_to_dict
from conference_cms.services.exceptions import ValidationError, UserNotFoundError
from conference_cms.utils.slug import slugify

logger = logging.getLogger(__name__)


class ConferenceService:
    """컨퍼런스 CRUD와 에디터-컨퍼런스 배정을 관리합니다."""

    def __init__(self, conference_repo: IConferenceRepository, page_repo: IPageRepository,
                 user_repo: IUserRepository):
        self.conference_repo = conference_repo
        self.page_repo = page_repo
        self.user_repo = user_repo

    # --- 조회 (공개, 캐시) ---

    def list_conferences(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        return cache_service.cached(
            ctx, cache_service.CONFERENCES_ALL,
            lambda: [conference_to_dict(c) for c in self.conference_repo.list_all()],
        )

    def get_conference(self, ctx: AuthContext, id_or_slug) -> Dict[str, Any]:
        """
        id 또는 slug로 컨퍼런스를 조회합니다.

        Raises:
            ConferenceNotFoundError: 컨퍼런스가 없을 때. 실패 결과는 캐시되지 않습니다.
        """
        return cache_service.cached(
            ctx, cache_service.conference_key(id_or_slug),
            lambda: conference_to_dict(find_conference(self.conference_repo, id_or_slug)),
        )

    def public_pages(self, ctx: AuthContext, id_or_slug) -> List[Dict[str, Any]]:
        """컨퍼런스의 게시된(published) 페이지만 반환합니다."""
        conference = find_conference(self.conference_repo, id_or_slug)
        pages = self.page_repo.list_by_conference(conference.id, published_only=True)
        return [page_to_dict(p) for p in pages]

    # --- 변경 (admin 전용) ---

    def create_conference(self, ctx: AuthContext, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        새 컨퍼런스를 생성합니다. slug는 이름에서 만들어지며 중복될 수 없습니다.

        Raises:
            ForbiddenError: admin이 아닐 때.
            ValidationError: 입력이 유효하지 않거나 slug가 이미 사용 중일 때.
        """
        authorize(ctx, admin_only())
        request = validate_payload(CreateConferenceRequest, data)

        slug = self._unique_slug(request.name)
        conference = self.conference_repo.create(models.Conference(
            name=request.name,
            slug=slug,
            description=request.description,
            location=request.location,
            start_date=request.start_date,
            end_date=request.end_date,
            status=request.status,
        ))
        cache_service.publish(ctx, cache_service.TOPIC_CONFERENCE)
        logger.info("Conference %s ('%s') created by user %s", conference.id, slug, ctx.user_id)
        return conference_to_dict(conference)

    def update_conference(self, ctx: AuthContext, id_or_slug, data: Dict[str, Any]) -> Dict[str, Any]:
        authorize(ctx, admin_only())
        request = validate_payload(UpdateConferenceRequest, data)
        conference = find_conference(self.conference_repo, id_or_slug)

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        start_date = changes.get("start_date", conference.start_date)
        end_date = changes.get("end_date", conference.end_date)
        if start_date and end_date and end_date < start_date:
            raise ValidationError.for_field("end_date", "The end date must be a date after or equal to start date.")

        if "name" in changes and changes["name"] != conference.name:
            conference.slug = self._unique_slug(changes["name"], exclude_id=conference.id)
        for field_name, value in changes.items():
            setattr(conference, field_name, value)

        conference = self.conference_repo.save(conference)
        cache_service.publish(ctx, cache_service.TOPIC_CONFERENCE)
        logger.info("Conference %s updated by user %s", conference.id, ctx.user_id)
        return conference_to_dict(conference)

    def delete_conference(self, ctx: AuthContext, id_or_slug) -> bool:
        """
        컨퍼런스를 soft delete 합니다. 소속 페이지와 콘텐츠도 함께 삭제되고 에디터 배정은 제거됩니다.

        Raises:
            ForbiddenError: admin이 아닐 때.
            ConferenceNotFoundError: 컨퍼런스가 없을 때.
        """
        authorize(ctx, admin_only())
        conference = find_conference(self.conference_repo, id_or_slug)
        self.conference_repo.soft_delete_cascade(conference, ctx.now)
        cache_service.publish(ctx, cache_service.TOPIC_CONFERENCE)
        cache_service.publish(ctx, cache_service.TOPIC_ASSIGNMENT)
        logger.info("Conference %s deleted by user %s", conference.id, ctx.user_id)
        return True

    # --- 에디터 배정 ---

    def assign(self, ctx: AuthContext, user_id: int, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        사용자의 배정 컨퍼런스 목록을 주어진 id 집합으로 통째로 교체합니다.

        Raises:
            ForbiddenError: admin이 아닐 때.
            UserNotFoundError: 대상 사용자가 없을 때.
            ValidationError: 대상이 editor가 아니거나, 존재하지 않는 컨퍼런스 id가 포함되었을 때.
        """
        authorize(ctx, admin_only())
        request = validate_payload(AssignConferencesRequest, data)
        user = self._get_user_or_raise(user_id)

        if not is_editor(user):
            raise ValidationError.for_field("user_id", "Only editors can be assigned to conferences.")

        requested = set(request.conference_ids)
        unknown = requested - self.conference_repo.existing_ids(requested)
        if unknown:
            raise ValidationError.for_field(
                "conference_ids", f"Unknown conference ids: {', '.join(str(i) for i in sorted(unknown))}."
            )

        self.conference_repo.replace_assignments(user.id, request.conference_ids)
        cache_service.publish(ctx, cache_service.TOPIC_ASSIGNMENT)
        logger.info("User %s assigned to conferences %s by admin %s", user.id, sorted(requested), ctx.user_id)
        return self._conferences_of(user.id)

    def unassign(self, ctx: AuthContext, user_id: int, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """주어진 컨퍼런스 배정만 제거합니다. 배정되지 않은 id는 무시됩니다."""
        authorize(ctx, admin_only())
        request = validate_payload(AssignConferencesRequest, data)
        user = self._get_user_or_raise(user_id)

        removed = self.conference_repo.remove_assignments(user.id, request.conference_ids)
        cache_service.publish(ctx, cache_service.TOPIC_ASSIGNMENT)
        logger.info("Removed %d conference assignment(s) from user %s", removed, user.id)
        return self._conferences_of(user.id)

    def list_user_conferences(self, ctx: AuthContext, user_id: int) -> List[Dict[str, Any]]:
        authorize(ctx, lambda user: is_admin(user) or user.id == user_id)
        self._get_user_or_raise(user_id)
        return self._conferences_of(user_id)

    def my_conferences(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        """현재 editor에게 배정된 컨퍼런스를 모든 상태의 페이지와 함께 반환합니다."""
        authorize(ctx, role_required(models.EDITOR))
        result = []
        for conference in self.conference_repo.list_for_user(ctx.user_id):
            data = conference_to_dict(conference)
            data["pages"] = [page_to_dict(p) for p in self.page_repo.list_by_conference(conference.id)]
            result.append(data)
        return result

    # --- 내부 헬퍼 ---

    def _conferences_of(self, user_id: int) -> List[Dict[str, Any]]:
        return [conference_to_dict(c) for c in self.conference_repo.list_for_user(user_id)]

    def _get_user_or_raise(self, user_id: int) -> models.User:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        return user

    def _unique_slug(self, name: str, exclude_id=None) -> str:
        slug = slugify(name)
        if not slug:
            raise ValidationError.for_field("name", "The name must contain at least one letter or digit.")
        # 삭제된 컨퍼런스의 slug도 예약된 것으로 취급
        if self.conference_repo.slug_exists(slug, exclude_id=exclude_id):
            raise ValidationError.for_field("slug", "A conference with this slug already exists.")
        return slug
