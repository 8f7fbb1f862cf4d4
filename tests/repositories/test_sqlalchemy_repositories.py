# tests/repositories/test_sqlalchemy_repositories.py
import pytest
from datetime import date, datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from conference_cms.database import models
from conference_cms.database.database import Base
from conference_cms.repositories.sqlalchemy import (
    SqlalchemyUserRepository, SqlalchemyConferenceRepository, SqlalchemyPageRepository,
    SqlalchemyContentRepository, SqlalchemyFileUploadRepository,
)

DELETED_AT = datetime(2025, 6, 1, 9, 0, 0)

# ===================================================================
#  Fixture 설정 (인메모리 SQLite)
# ===================================================================

@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()

@pytest.fixture
def seeded(db_session):
    """editor 한 명, 컨퍼런스 세 개, 페이지 하나를 준비합니다."""
    editor_role = models.Role(name=models.EDITOR)
    editor = models.User(name="Editor", email="editor@university-cms.com", password_hash="x")
    editor.roles.append(editor_role)
    conferences = [
        models.Conference(name=f"Conf {i}", slug=f"conf-{i}", start_date=date(2025, 9, i), end_date=date(2025, 9, i))
        for i in (1, 2, 3)
    ]
    db_session.add_all([editor, *conferences])
    db_session.commit()
    page = models.Page(title="Program", slug="program", conference_id=conferences[0].id, status="draft")
    db_session.add(page)
    db_session.commit()
    return {"editor": editor, "conferences": conferences, "page": page}


def add_contents(db_session, page, count):
    contents = [models.Content(title=f"Block {i}", type="text", body="", order=i, page_id=page.id) for i in range(count)]
    db_session.add_all(contents)
    db_session.commit()
    return contents

# ===================================================================
#  배정(Assignment) 테스트
# ===================================================================
class TestAssignments:
    def test_replace_assignments_is_full_replace(self, db_session, seeded):
        # === Arrange ===
        repo = SqlalchemyConferenceRepository(db_session)
        editor = seeded["editor"]
        c1, c2, c3 = (c.id for c in seeded["conferences"])
        repo.replace_assignments(editor.id, [c1, c2])

        # === Act ===
        repo.replace_assignments(editor.id, [c2, c3, c3])

        # === Assert ===
        assert repo.list_assigned_ids(editor.id) == {c2, c3}

    def test_remove_assignments_removes_exactly_subset(self, db_session, seeded):
        repo = SqlalchemyConferenceRepository(db_session)
        editor = seeded["editor"]
        c1, c2, c3 = (c.id for c in seeded["conferences"])
        repo.replace_assignments(editor.id, [c1, c2, c3])

        removed = repo.remove_assignments(editor.id, [c1, 999])

        assert removed == 1
        assert repo.list_assigned_ids(editor.id) == {c2, c3}

    def test_failed_replace_rolls_back_to_prior_set(self, db_session, seeded):
        """삽입 도중 실패하면 기존 배정이 그대로 남아야 합니다."""
        repo = SqlalchemyConferenceRepository(db_session)
        editor = seeded["editor"]
        c1 = seeded["conferences"][0].id
        repo.replace_assignments(editor.id, [c1])

        with pytest.raises(Exception):
            repo.replace_assignments(editor.id, [None])

        assert repo.list_assigned_ids(editor.id) == {c1}

    def test_user_conferences_relationship_excludes_deleted(self, db_session, seeded):
        repo = SqlalchemyConferenceRepository(db_session)
        editor = seeded["editor"]
        c1, c2, _ = seeded["conferences"]
        repo.replace_assignments(editor.id, [c1.id, c2.id])

        repo.soft_delete_cascade(c2, DELETED_AT)
        db_session.expire_all()

        assert [c.id for c in editor.conferences] == [c1.id]

# ===================================================================
#  페이지 / 콘텐츠 테스트
# ===================================================================
class TestPagesAndContents:
    def test_create_with_contents_keeps_input_order(self, db_session, seeded):
        # === Arrange ===
        repo = SqlalchemyPageRepository(db_session)
        conference = seeded["conferences"][1]
        page = models.Page(title="Venue", slug="venue", conference_id=conference.id, status="published")
        contents = [models.Content(title="", type=t, body="", order=i) for i, t in enumerate(["text", "image", "file"])]

        # === Act ===
        page = repo.create_with_contents(page, contents)

        # === Assert ===
        rows = SqlalchemyContentRepository(db_session).list_by_page(page.id)
        assert [(c.type, c.order) for c in rows] == [("text", 0), ("image", 1), ("file", 2)]

    def test_reorder_ignores_unknown_and_foreign_ids(self, db_session, seeded):
        # === Arrange ===
        content_repo = SqlalchemyContentRepository(db_session)
        page = seeded["page"]
        other_page = models.Page(title="Other", slug="other", conference_id=page.conference_id)
        db_session.add(other_page)
        db_session.commit()
        b0, b1, b2 = add_contents(db_session, page, 3)
        (foreign,) = add_contents(db_session, other_page, 1)
        ids = (b0.id, b1.id, b2.id, foreign.id)

        # === Act ===
        updated = content_repo.reorder(page.id, [ids[2], 9999, ids[0], ids[3], ids[1]])

        # === Assert ===
        assert updated == 3
        assert [c.id for c in content_repo.list_by_page(page.id)] == [ids[2], ids[0], ids[1]]
        assert content_repo.find_by_id(ids[3]).order == 0

    def test_update_with_contents_moves_files_to_page(self, db_session, seeded):
        """교체되는 콘텐츠의 파일은 삭제되지 않고 페이지 소유로 이동합니다."""
        # === Arrange ===
        page_repo = SqlalchemyPageRepository(db_session)
        file_repo = SqlalchemyFileUploadRepository(db_session)
        page = seeded["page"]
        (old_content,) = add_contents(db_session, page, 1)
        file = file_repo.create(models.FileUpload(
            filename="a.png", original_filename="a.png", mime_type="image/png", size=1, path="uploads/a.png",
            owner_type=models.OwnerType.CONTENT, owner_id=old_content.id,
        ))

        # === Act ===
        page_repo.update_with_contents(page, [models.Content(title="", type="text", body="new", order=0)], DELETED_AT)

        # === Assert ===
        rows = SqlalchemyContentRepository(db_session).list_by_page(page.id)
        assert [c.body for c in rows] == ["new"]
        assert SqlalchemyContentRepository(db_session).find_by_id(old_content.id) is None
        db_session.refresh(file)
        assert file.owner == models.FileOwner.page(page.id)

    def test_content_soft_delete_moves_files_to_page(self, db_session, seeded):
        # === Arrange ===
        content_repo = SqlalchemyContentRepository(db_session)
        file_repo = SqlalchemyFileUploadRepository(db_session)
        page = seeded["page"]
        content, sibling = add_contents(db_session, page, 2)
        own_file = file_repo.create(models.FileUpload(
            filename="c.pdf", original_filename="c.pdf", mime_type="application/pdf", size=1, path="uploads/c.pdf",
            owner_type=models.OwnerType.CONTENT, owner_id=content.id,
        ))
        sibling_file = file_repo.create(models.FileUpload(
            filename="d.pdf", original_filename="d.pdf", mime_type="application/pdf", size=1, path="uploads/d.pdf",
            owner_type=models.OwnerType.CONTENT, owner_id=sibling.id,
        ))

        # === Act ===
        content_repo.soft_delete(content, DELETED_AT)

        # === Assert ===
        db_session.refresh(own_file)
        db_session.refresh(sibling_file)
        assert content_repo.find_by_id(content.id) is None
        assert own_file.owner == models.FileOwner.page(page.id)
        assert sibling_file.owner == models.FileOwner.content(sibling.id)

    def test_list_by_conference_published_only(self, db_session, seeded):
        repo = SqlalchemyPageRepository(db_session)
        conference_id = seeded["page"].conference_id
        db_session.add(models.Page(title="Live", slug="live", conference_id=conference_id, status="published"))
        db_session.commit()

        assert [p.slug for p in repo.list_by_conference(conference_id, published_only=True)] == ["live"]
        assert len(repo.list_by_conference(conference_id)) == 2

    def test_soft_delete_cascade_hides_pages_and_contents(self, db_session, seeded):
        # === Arrange ===
        conference_repo = SqlalchemyConferenceRepository(db_session)
        page_repo = SqlalchemyPageRepository(db_session)
        page = seeded["page"]
        conference = seeded["conferences"][0]
        (content,) = add_contents(db_session, page, 1)
        conference_repo.replace_assignments(seeded["editor"].id, [conference.id])

        # === Act ===
        conference_repo.soft_delete_cascade(conference, DELETED_AT)

        # === Assert ===
        assert conference_repo.find_by_id(conference.id) is None
        assert page_repo.find_in_conference(conference.id, page.id) is None
        assert SqlalchemyContentRepository(db_session).find_by_id(content.id) is None
        assert conference_repo.list_assigned_ids(seeded["editor"].id) == set()
        # 삭제된 컨퍼런스의 slug는 계속 예약됨
        assert conference_repo.slug_exists(conference.slug) is True

    def test_count_by_conference(self, db_session, seeded):
        counts = SqlalchemyPageRepository(db_session).count_by_conference()
        assert {row["name"]: row["pages_count"] for row in counts} == {"Conf 1": 1, "Conf 2": 0, "Conf 3": 0}

# ===================================================================
#  파일 / 사용자 테스트
# ===================================================================
class TestFilesAndUsers:
    def test_reassign_updates_both_owner_columns(self, db_session, seeded):
        # === Arrange ===
        repo = SqlalchemyFileUploadRepository(db_session)
        file = repo.create(models.FileUpload(
            filename="b.pdf", original_filename="b.pdf", mime_type="application/pdf", size=1, path="uploads/b.pdf",
            owner_type=models.OwnerType.USER, owner_id=seeded["editor"].id,
        ))

        # === Act ===
        repo.reassign(file, models.FileOwner.page(seeded["page"].id))

        # === Assert ===
        assert (file.owner_type, file.owner_id) == (models.OwnerType.PAGE, seeded["page"].id)
        assert [f.id for f in repo.list_by_owner(models.FileOwner.page(seeded["page"].id))] == [file.id]

    def test_delete_user_removes_roles_and_assignments(self, db_session, seeded):
        # === Arrange ===
        user_repo = SqlalchemyUserRepository(db_session)
        conference_repo = SqlalchemyConferenceRepository(db_session)
        editor = seeded["editor"]
        editor_id = editor.id
        conference_repo.replace_assignments(editor_id, [seeded["conferences"][0].id])

        # === Act ===
        user_repo.delete(editor)

        # === Assert ===
        assert user_repo.find_by_id(editor_id) is None
        assert db_session.query(models.UserRole).count() == 0
        assert conference_repo.list_assigned_ids(editor_id) == set()
