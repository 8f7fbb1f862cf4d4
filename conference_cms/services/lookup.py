"""컨퍼런스 범위 라우트({idOrSlug}/pages/{page})에서 공통으로 쓰는 조회 헬퍼."""
from conference_cms.database import models
from conference_cms.repositories.interfaces import IConferenceRepository, IPageRepository, IContentRepository
from conference_cms.services.authorization import AuthContext, can_view_unpublished
from conference_cms.services.exceptions import (
    ConferenceNotFoundError, PageNotFoundError, ContentNotFoundError
)


def find_conference(conference_repo: IConferenceRepository, id_or_slug) -> models.Conference:
    """
    숫자면 id로, 아니면 slug로 컨퍼런스를 찾습니다.

    Raises:
        ConferenceNotFoundError: 컨퍼런스가 없거나 삭제되었을 때.
    """
    ref = str(id_or_slug)
    if ref.isdigit():
        conference = conference_repo.find_by_id(int(ref))
    else:
        conference = conference_repo.find_by_slug(ref)
    if not conference:
        raise ConferenceNotFoundError(f"Conference '{id_or_slug}' not found.")
    return conference


def find_page(page_repo: IPageRepository, conference: models.Conference, page_id: int) -> models.Page:
    page = page_repo.find_in_conference(conference.id, page_id)
    if not page:
        raise PageNotFoundError(f"Page with id '{page_id}' not found in this conference.")
    return page


def find_visible_page(ctx: AuthContext, page_repo: IPageRepository,
                      conference: models.Conference, page_id: int) -> models.Page:
    """
    읽기 권한까지 확인한 페이지를 반환합니다. 볼 수 없는 페이지는 존재하지 않는 것처럼 404로 처리합니다.
    """
    page = find_page(page_repo, conference, page_id)
    if not page.is_published and not can_view_unpublished(ctx.user, conference.id):
        raise PageNotFoundError(f"Page with id '{page_id}' not found in this conference.")
    return page


def find_content(content_repo: IContentRepository, page: models.Page, content_id: int) -> models.Content:
    content = content_repo.find_by_id(content_id)
    if not content or content.page_id != page.id:
        raise ContentNotFoundError(f"Content with id '{content_id}' not found on this page.")
    return content
