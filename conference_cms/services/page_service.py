import logging
from typing import Dict, Any, List

from conference_cms.database import models
from conference_cms.repositories.interfaces import (
    IConferenceRepository, IPageRepository, IContentRepository
)
from conference_cms.schemas import (
    validate_payload, ContentBlock, CreatePageRequest, UpdatePageRequest,
)
from conference_cms.services import cache_service
from conference_cms.services.authorization import (
    AuthContext, authorize, admin_only, role_required, can_manage_conference, can_view_unpublished
)
from conference_cms.services.lookup import find_conference, find_page, find_visible_page
from conference_cms.services.serializers import page_to_dict
from conference_cms.services.exceptions import ValidationError
from conference_cms.utils.slug import slugify

logger = logging.getLogger(__name__)


class PageService:
    """
    컨퍼런스 페이지와 그 콘텐츠 블록을 하나의 단위로 관리합니다.
    블록이 함께 전달되면 기존 콘텐츠는 soft delete 되고 새로 생성됩니다. (콘텐츠 id는 유지되지 않음)
    """

    def __init__(self, conference_repo: IConferenceRepository, page_repo: IPageRepository,
                 content_repo: IContentRepository):
        self.conference_repo = conference_repo
        self.page_repo = page_repo
        self.content_repo = content_repo

    # --- 조회 ---

    def list_pages(self, ctx: AuthContext, conference_ref) -> List[Dict[str, Any]]:
        """
        컨퍼런스의 페이지 목록. 관리 권한이 없는 사용자에게는 게시된 페이지만 보입니다.
        """
        conference = find_conference(self.conference_repo, conference_ref)
        published_only = not can_view_unpublished(ctx.user, conference.id)
        pages = self.page_repo.list_by_conference(conference.id, published_only=published_only)
        return [page_to_dict(p) for p in pages]

    def get_page(self, ctx: AuthContext, conference_ref, page_id: int) -> Dict[str, Any]:
        """
        페이지를 콘텐츠와 함께 조회합니다.

        Raises:
            ConferenceNotFoundError: 컨퍼런스가 없을 때.
            PageNotFoundError: 페이지가 없거나, 현재 사용자가 볼 수 없는 미게시 페이지일 때.
        """
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_visible_page(ctx, self.page_repo, conference, page_id)
        return page_to_dict(page, contents=self.content_repo.list_by_page(page.id))

    # --- 변경 ---

    def create_page(self, ctx: AuthContext, conference_ref, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        페이지를 생성하고, blocks가 있으면 같은 트랜잭션에서 콘텐츠 블록을 저장합니다.

        Raises:
            ForbiddenError: admin이나 배정된 editor가 아닐 때.
            ValidationError: 입력이 유효하지 않을 때.
        """
        conference = find_conference(self.conference_repo, conference_ref)
        authorize(ctx, can_manage_conference(conference.id))
        request = validate_payload(CreatePageRequest, data)

        page = models.Page(
            title=request.title,
            slug=self._derive_slug(conference.id, request.title),
            meta_description=request.meta_description,
            layout=request.layout,
            status=request.status,
            conference_id=conference.id,
            created_by=ctx.user_id,
            updated_by=ctx.user_id,
        )
        page = self.page_repo.create_with_contents(page, self._build_contents(ctx, request.blocks))
        cache_service.publish(ctx, cache_service.TOPIC_PAGE)
        logger.info("Page %s created in conference %s by user %s", page.id, conference.id, ctx.user_id)
        return page_to_dict(page, contents=self.content_repo.list_by_page(page.id))

    def save_content_blocks(self, ctx: AuthContext, conference_ref, page_id: int, blocks: Any) -> Dict[str, Any]:
        """
        페이지의 블록 전체를 주어진 순서대로 교체합니다. 각 블록의 order는 배열 인덱스(0부터)입니다.
        """
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        authorize(ctx, can_manage_conference(conference.id))
        parsed = self._parse_blocks(blocks)

        page.updated_by = ctx.user_id
        page = self.page_repo.update_with_contents(page, self._build_contents(ctx, parsed), ctx.now)
        cache_service.publish(ctx, cache_service.TOPIC_PAGE)
        return page_to_dict(page, contents=self.content_repo.list_by_page(page.id))

    def update_page(self, ctx: AuthContext, conference_ref, page_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        페이지를 부분 수정합니다. 제목이 바뀌면 slug를 다시 만들고, blocks가 있으면 콘텐츠를 전부 교체합니다.
        교체되는 콘텐츠가 소유한 파일은 페이지 소유로 옮겨집니다.
        """
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        authorize(ctx, can_manage_conference(conference.id))
        request = validate_payload(UpdatePageRequest, data)

        changes = request.model_dump(exclude_unset=True, exclude_none=True, exclude={"blocks"})
        if "title" in changes and changes["title"] != page.title:
            page.slug = self._derive_slug(conference.id, changes["title"], exclude_id=page.id)
        for field_name, value in changes.items():
            setattr(page, field_name, value)
        page.updated_by = ctx.user_id

        if request.blocks is not None:
            page = self.page_repo.update_with_contents(page, self._build_contents(ctx, request.blocks), ctx.now)
        else:
            page = self.page_repo.save(page)

        cache_service.publish(ctx, cache_service.TOPIC_PAGE)
        logger.info("Page %s updated by user %s", page.id, ctx.user_id)
        return page_to_dict(page, contents=self.content_repo.list_by_page(page.id))

    def delete_page(self, ctx: AuthContext, conference_ref, page_id: int) -> bool:
        """페이지와 그 콘텐츠를 soft delete 합니다."""
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        authorize(ctx, can_manage_conference(conference.id))

        self.page_repo.soft_delete(page, ctx.now)
        cache_service.publish(ctx, cache_service.TOPIC_PAGE)
        logger.info("Page %s deleted by user %s", page.id, ctx.user_id)
        return True

    # --- 관리자/에디터 목록 ---

    def list_all_pages(self, ctx: AuthContext) -> Dict[str, Any]:
        """모든 컨퍼런스의 페이지를 컨퍼런스명/작성자명과 함께 반환합니다. (admin 전용, 캐시)"""
        authorize(ctx, admin_only())

        def load():
            pages = []
            for page in self.page_repo.list_all():
                data = page_to_dict(page)
                data["conference_name"] = page.conference.name if page.conference else None
                data["creator_name"] = page.creator.name if page.creator else None
                pages.append(data)
            conferences = [{"id": c.id, "name": c.name} for c in self.conference_repo.list_all()]
            return {"pages": pages, "conferences": conferences}

        return cache_service.cached(ctx, cache_service.ADMIN_PAGES_ALL, load)

    def page_counts(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        authorize(ctx, admin_only())
        return cache_service.cached(ctx, cache_service.ADMIN_PAGES_COUNTS, self.page_repo.count_by_conference)

    def editor_pages(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        authorize(ctx, role_required(models.EDITOR))
        pages = []
        for page in self.page_repo.list_for_editor(ctx.user_id):
            data = page_to_dict(page)
            data["conference_name"] = page.conference.name if page.conference else None
            pages.append(data)
        return pages

    # --- 내부 헬퍼 ---

    def _derive_slug(self, conference_id: int, title: str, exclude_id=None) -> str:
        slug = slugify(title)
        if not slug:
            raise ValidationError.for_field("title", "The title must contain at least one letter or digit.")
        # 같은 컨퍼런스 안의 slug 충돌은 기록만 하고 허용함 (페이지는 id로 식별)
        if self.page_repo.slug_exists(conference_id, slug, exclude_id=exclude_id):
            logger.warning("Duplicate page slug '%s' in conference %s", slug, conference_id)
        return slug

    def _parse_blocks(self, blocks: Any) -> List[ContentBlock]:
        if not isinstance(blocks, list):
            raise ValidationError.for_field("blocks", "The blocks field must be an array.")
        parsed = []
        for index, block in enumerate(blocks):
            try:
                parsed.append(validate_payload(ContentBlock, block))
            except ValidationError as e:
                raise ValidationError(e.message, {f"blocks.{index}.{k}": v for k, v in e.errors.items()}) from e
        return parsed

    def _build_contents(self, ctx: AuthContext, blocks: List[ContentBlock]) -> List[models.Content]:
        contents = []
        for index, block in enumerate(blocks):
            body = block.content if block.content is not None else ""
            contents.append(models.Content(
                title=block.alt or "",
                type=block.type,
                body=body if isinstance(body, str) else str(body),
                order=index,
                settings={"alt": block.alt, "embed": block.embed, "fileName": block.fileName},
                created_by=ctx.user_id,
                updated_by=ctx.user_id,
            ))
        return contents
