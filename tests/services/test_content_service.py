# tests/services/test_content_service.py
import pytest
from unittest.mock import MagicMock

from conference_cms.services.content_service import ContentService
from conference_cms.services.exceptions import *
from conference_cms.repositories.interfaces import (
    IConferenceRepository, IPageRepository, IContentRepository, IFileUploadRepository
)
from conference_cms.database import models

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_conference_repo() -> MagicMock:
    repo = MagicMock(spec=IConferenceRepository)
    repo.find_by_id.return_value = models.Conference(id=10, name="Test Conf", slug="test-conf")
    return repo

@pytest.fixture
def page() -> models.Page:
    return models.Page(id=5, title="Program", slug="program", layout="default", status="draft", conference_id=10)

@pytest.fixture
def mock_page_repo(page) -> MagicMock:
    repo = MagicMock(spec=IPageRepository)
    repo.find_in_conference.return_value = page
    return repo

@pytest.fixture
def mock_content_repo() -> MagicMock:
    repo = MagicMock(spec=IContentRepository)
    repo.create.side_effect = lambda content: content
    repo.save.side_effect = lambda content: content
    repo.list_by_page.return_value = []
    return repo

@pytest.fixture
def mock_file_repo() -> MagicMock:
    return MagicMock(spec=IFileUploadRepository)

@pytest.fixture
def content_service(mock_conference_repo, mock_page_repo, mock_content_repo, mock_file_repo) -> ContentService:
    """테스트에 사용될 ContentService 인스턴스를 생성하고, 의존성을 주입합니다."""
    return ContentService(mock_conference_repo, mock_page_repo, mock_content_repo, mock_file_repo)


def make_content(content_id=30, page_id=5, order=0):
    return models.Content(id=content_id, title="Intro", type="wysiwyg", body="<p>Hi</p>", order=order, page_id=page_id)

# ===================================================================
#  콘텐츠 CRUD 테스트
# ===================================================================
class TestContentCrud:
    def test_create_content(self, content_service, mock_content_repo, ctx_for, editor_user):
        # === Arrange ===
        data = {"title": "Intro", "type": "markdown", "content": "# Hello", "order": 2}

        # === Act ===
        result = content_service.create_content(ctx_for(editor_user), "10", 5, data)

        # === Assert ===
        created = mock_content_repo.create.call_args.args[0]
        assert created.page_id == 5
        assert created.body == "# Hello"
        assert created.created_by == editor_user.id
        assert result["content"] == "# Hello"
        assert result["order"] == 2

    def test_create_content_rejects_block_types(self, content_service, mock_content_repo, ctx_for, admin_user):
        """개별 콘텐츠 API는 wysiwyg/markdown/html 타입만 허용합니다."""
        data = {"title": "Photo", "type": "image", "content": "x"}

        with pytest.raises(ValidationError) as exc_info:
            content_service.create_content(ctx_for(admin_user), "10", 5, data)
        assert "type" in exc_info.value.errors
        mock_content_repo.create.assert_not_called()

    def test_get_content_on_other_page_is_not_found(self, content_service, mock_content_repo, ctx_for, admin_user):
        mock_content_repo.find_by_id.return_value = make_content(page_id=6)

        with pytest.raises(ContentNotFoundError):
            content_service.get_content(ctx_for(admin_user), "10", 5, 30)

    def test_get_content_includes_owned_files(self, content_service, mock_content_repo, mock_file_repo,
                                              ctx_for, admin_user):
        # === Arrange ===
        mock_content_repo.find_by_id.return_value = make_content()
        mock_file_repo.list_by_owner.return_value = []

        # === Act ===
        result = content_service.get_content(ctx_for(admin_user), "10", 5, 30)

        # === Assert ===
        assert result["files"] == []
        mock_file_repo.list_by_owner.assert_called_once_with(models.FileOwner.content(30))

    def test_anonymous_cannot_list_contents_of_draft_page(self, content_service, mock_content_repo, ctx_for):
        with pytest.raises(PageNotFoundError):
            content_service.list_contents(ctx_for(None), "10", 5)
        mock_content_repo.list_by_page.assert_not_called()

    def test_update_content_maps_content_to_body(self, content_service, mock_content_repo, ctx_for, editor_user):
        content = make_content()
        mock_content_repo.find_by_id.return_value = content

        content_service.update_content(ctx_for(editor_user), "10", 5, 30, {"content": "<p>Updated</p>"})

        assert content.body == "<p>Updated</p>"
        assert content.updated_by == editor_user.id
        mock_content_repo.save.assert_called_once_with(content)

    def test_delete_content_is_soft(self, content_service, mock_content_repo, ctx_for, editor_user, now):
        content = make_content()
        mock_content_repo.find_by_id.return_value = content

        assert content_service.delete_content(ctx_for(editor_user), "10", 5, 30) is True
        mock_content_repo.soft_delete.assert_called_once_with(content, now)

    def test_outsider_cannot_delete(self, content_service, mock_content_repo, ctx_for, plain_user):
        mock_content_repo.find_by_id.return_value = make_content()

        with pytest.raises(ForbiddenError):
            content_service.delete_content(ctx_for(plain_user), "10", 5, 30)
        mock_content_repo.soft_delete.assert_not_called()

# ===================================================================
#  순서 변경(Reorder) 테스트
# ===================================================================
class TestReorder:
    def test_reorder_passes_ids_in_order(self, content_service, mock_content_repo, ctx_for, editor_user):
        # === Arrange ===
        mock_content_repo.reorder.return_value = 3

        # === Act ===
        content_service.reorder(ctx_for(editor_user), "10", 5, {"order": [32, 30, 31]})

        # === Assert ===
        mock_content_repo.reorder.assert_called_once_with(5, [32, 30, 31])

    @pytest.mark.parametrize("payload", [
        {"order": [1, 1]},
        {"order": ["1", 2]},
        {"order": "1,2"},
        {},
    ])
    def test_reorder_payload_must_be_distinct_integers(self, content_service, mock_content_repo, ctx_for,
                                                       admin_user, payload):
        with pytest.raises(ValidationError):
            content_service.reorder(ctx_for(admin_user), "10", 5, payload)
        mock_content_repo.reorder.assert_not_called()
