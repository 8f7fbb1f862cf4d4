import logging
from typing import Dict, Any, List

from conference_cms.database import models
from conference_cms.repositories.interfaces import (
    IConferenceRepository, IPageRepository, IContentRepository, IFileUploadRepository
)
from conference_cms.schemas import (
    validate_payload, CreateContentRequest, UpdateContentRequest, ReorderContentsRequest,
)
from conference_cms.services import cache_service
from conference_cms.services.authorization import AuthContext, authorize, can_manage_conference
from conference_cms.services.lookup import find_conference, find_page, find_visible_page, find_content
from conference_cms.services.serializers import content_to_dict

logger = logging.getLogger(__name__)


class ContentService:
    """페이지에 속한 개별 콘텐츠 블록의 CRUD와 순서 변경을 담당합니다."""

    def __init__(self, conference_repo: IConferenceRepository, page_repo: IPageRepository,
                 content_repo: IContentRepository, file_repo: IFileUploadRepository):
        self.conference_repo = conference_repo
        self.page_repo = page_repo
        self.content_repo = content_repo
        self.file_repo = file_repo

    def list_contents(self, ctx: AuthContext, conference_ref, page_id: int) -> List[Dict[str, Any]]:
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_visible_page(ctx, self.page_repo, conference, page_id)
        return [content_to_dict(c) for c in self.content_repo.list_by_page(page.id)]

    def get_content(self, ctx: AuthContext, conference_ref, page_id: int, content_id: int) -> Dict[str, Any]:
        """
        콘텐츠 하나를 소유 파일 목록과 함께 조회합니다.

        Raises:
            PageNotFoundError: 페이지가 없거나 볼 수 없을 때.
            ContentNotFoundError: 콘텐츠가 없거나 해당 페이지에 속하지 않을 때.
        """
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_visible_page(ctx, self.page_repo, conference, page_id)
        content = find_content(self.content_repo, page, content_id)
        files = self.file_repo.list_by_owner(models.FileOwner.content(content.id))
        return content_to_dict(content, files=files)

    def create_content(self, ctx: AuthContext, conference_ref, page_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        authorize(ctx, can_manage_conference(conference.id))
        request = validate_payload(CreateContentRequest, data)

        content = self.content_repo.create(models.Content(
            title=request.title,
            type=request.type,
            body=request.content,
            order=request.order,
            settings=request.settings,
            page_id=page.id,
            created_by=ctx.user_id,
            updated_by=ctx.user_id,
        ))
        cache_service.publish(ctx, cache_service.TOPIC_PAGE)
        logger.info("Content %s created on page %s by user %s", content.id, page.id, ctx.user_id)
        return content_to_dict(content)

    def update_content(self, ctx: AuthContext, conference_ref, page_id: int, content_id: int,
                       data: Dict[str, Any]) -> Dict[str, Any]:
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        content = find_content(self.content_repo, page, content_id)
        authorize(ctx, can_manage_conference(conference.id))
        request = validate_payload(UpdateContentRequest, data)

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if "content" in changes:
            changes["body"] = changes.pop("content")
        for field_name, value in changes.items():
            setattr(content, field_name, value)
        content.updated_by = ctx.user_id

        content = self.content_repo.save(content)
        cache_service.publish(ctx, cache_service.TOPIC_PAGE)
        return content_to_dict(content)

    def delete_content(self, ctx: AuthContext, conference_ref, page_id: int, content_id: int) -> bool:
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        content = find_content(self.content_repo, page, content_id)
        authorize(ctx, can_manage_conference(conference.id))

        self.content_repo.soft_delete(content, ctx.now)
        cache_service.publish(ctx, cache_service.TOPIC_PAGE)
        logger.info("Content %s deleted by user %s", content.id, ctx.user_id)
        return True

    def reorder(self, ctx: AuthContext, conference_ref, page_id: int, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        콘텐츠 순서를 변경합니다. 각 id의 order는 목록 내 인덱스가 됩니다.
        다른 페이지의 id나 존재하지 않는 id는 조용히 무시됩니다.

        Raises:
            ValidationError: order가 서로 다른 정수들의 목록이 아닐 때.
        """
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        authorize(ctx, can_manage_conference(conference.id))
        request = validate_payload(ReorderContentsRequest, data)

        updated = self.content_repo.reorder(page.id, request.order)
        if updated != len(request.order):
            logger.info("Reorder on page %s ignored %d unknown id(s)", page.id, len(request.order) - updated)
        cache_service.publish(ctx, cache_service.TOPIC_PAGE)
        return [content_to_dict(c) for c in self.content_repo.list_by_page(page.id)]
