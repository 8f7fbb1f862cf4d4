from typing import Dict

from conference_cms.database import models
from conference_cms.repositories.interfaces import (
    IConferenceRepository, IPageRepository, IContentRepository, IFileUploadRepository, IUserRepository
)
from conference_cms.services.authorization import AuthContext, authorize, admin_only, role_required


class StatsService:
    """대시보드용 집계 수치를 제공합니다."""

    def __init__(self, conference_repo: IConferenceRepository, page_repo: IPageRepository,
                 content_repo: IContentRepository, file_repo: IFileUploadRepository,
                 user_repo: IUserRepository):
        self.conference_repo = conference_repo
        self.page_repo = page_repo
        self.content_repo = content_repo
        self.file_repo = file_repo
        self.user_repo = user_repo

    def admin_stats(self, ctx: AuthContext) -> Dict[str, int]:
        authorize(ctx, admin_only())
        return {
            "conferences": self.conference_repo.count(),
            "pages": self.page_repo.count(),
            "users": self.user_repo.count(),
            "files": self.file_repo.count(),
        }

    def editor_stats(self, ctx: AuthContext) -> Dict[str, int]:
        """현재 editor에게 배정된 컨퍼런스 기준의 수치. 파일 수는 본인이 올린 파일만 셉니다."""
        authorize(ctx, role_required(models.EDITOR))
        return {
            "conferences": len(self.conference_repo.list_for_user(ctx.user_id)),
            "pages": self.page_repo.count(editor_id=ctx.user_id),
            "contents": self.content_repo.count(editor_id=ctx.user_id),
            "files": self.file_repo.count(created_by=ctx.user_id),
        }
