import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional

from conference_cms.database import models
from conference_cms.repositories.interfaces import (
    IConferenceRepository, IPageRepository, IContentRepository, IFileUploadRepository, IUserRepository
)
from conference_cms.schemas import validate_payload, AssignFileRequest, ReassignFileRequest
from conference_cms.services.authorization import (
    AuthContext, authorize, role_required, creator_or_admin, can_manage_conference
)
from conference_cms.services.lookup import find_conference, find_page, find_visible_page, find_content
from conference_cms.services.serializers import file_to_dict
from conference_cms.services.storage_service import StorageService, UploadedFile
from conference_cms.services.exceptions import (
    ValidationError, PageNotFoundError, FileNotFoundInStoreError
)

logger = logging.getLogger(__name__)

PUBLIC_UPLOAD_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "pdf", "doc", "docx")

STAFF_ROLES = (models.ADMIN, models.EDITOR)


@dataclass
class FileDownload:
    path: str
    filename: str
    mime_type: str


class FileService:
    """
    업로드 파일의 저장과 다형(polymorphic) 소유권을 관리합니다.
    소유자는 content, page, user 중 하나이며 (owner_type, owner_id)는 항상 함께 변경됩니다.
    """

    def __init__(self, file_repo: IFileUploadRepository, conference_repo: IConferenceRepository,
                 page_repo: IPageRepository, content_repo: IContentRepository, user_repo: IUserRepository,
                 storage: StorageService,
                 max_upload_bytes: int = 10 * 1024 * 1024, max_public_upload_bytes: int = 5 * 1024 * 1024,
                 fallback_owner_id: int = 1):
        """
        FileService를 초기화합니다.

        Args:
            file_repo: 파일 메타데이터 리포지토리.
            conference_repo: 컨퍼런스 범위 라우트 조회용 리포지토리.
            page_repo: 페이지 조회용 리포지토리.
            content_repo: 콘텐츠 조회용 리포지토리.
            user_repo: 사용자 소유자 확인용 리포지토리.
            storage: 실제 바이트를 저장/삭제하는 스토리지.
            max_upload_bytes: 인증된 업로드의 최대 크기.
            max_public_upload_bytes: 익명 업로드의 최대 크기.
            fallback_owner_id: 익명 요청이 파일을 페이지에서 제거할 때 새 소유자가 되는 사용자 id.
        """
        self.file_repo = file_repo
        self.conference_repo = conference_repo
        self.page_repo = page_repo
        self.content_repo = content_repo
        self.user_repo = user_repo
        self.storage = storage
        self.max_upload_bytes = max_upload_bytes
        self.max_public_upload_bytes = max_public_upload_bytes
        self.fallback_owner_id = fallback_owner_id

    # --- 조회 ---

    def list_files(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        authorize(ctx, role_required(*STAFF_ROLES))
        return [file_to_dict(f) for f in self.file_repo.list_all()]

    def list_page_files(self, page_id: int) -> List[Dict[str, Any]]:
        """페이지가 소유한 파일 목록. 공개 엔드포인트입니다."""
        page = self.page_repo.find_by_id(page_id)
        if not page:
            raise PageNotFoundError(f"Page with id '{page_id}' not found.")
        return [file_to_dict(f) for f in self.file_repo.list_by_owner(models.FileOwner.page(page.id))]

    def get_content_file(self, ctx: AuthContext, conference_ref, page_id: int, content_id: int,
                         file_id: int) -> Dict[str, Any]:
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_visible_page(ctx, self.page_repo, conference, page_id)
        content = find_content(self.content_repo, page, content_id)
        file = self._get_content_file_or_raise(content, file_id)
        return file_to_dict(file)

    def download(self, file_id: int) -> FileDownload:
        """
        다운로드할 파일의 실제 경로를 찾습니다.

        Raises:
            FileNotFoundInStoreError: 메타데이터가 없거나, 기본/보조 경로 모두에 바이트가 없을 때.
        """
        file = self._get_file_or_raise(file_id)
        path = self.storage.resolve(file.path)
        return FileDownload(path=path, filename=file.original_filename, mime_type=file.mime_type)

    # --- 업로드 ---

    def upload_general(self, ctx: AuthContext, upload: Optional[UploadedFile]) -> Dict[str, Any]:
        """소속 없는 일반 업로드. 업로드한 사용자가 소유자가 됩니다."""
        authorize(ctx, role_required(*STAFF_ROLES))
        file = self._store(ctx, upload, models.FileOwner.user(ctx.user_id), "uploads", self.max_upload_bytes)
        return file_to_dict(file)

    def upload_for_content(self, ctx: AuthContext, conference_ref, page_id: int, content_id: int,
                           upload: Optional[UploadedFile]) -> Dict[str, Any]:
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        content = find_content(self.content_repo, page, content_id)
        authorize(ctx, role_required(*STAFF_ROLES))
        file = self._store(ctx, upload, models.FileOwner.content(content.id), "uploads", self.max_upload_bytes)
        return file_to_dict(file)

    def upload_for_page(self, ctx: AuthContext, page_id: int, upload: Optional[UploadedFile]) -> Dict[str, Any]:
        page = self.page_repo.find_by_id(page_id)
        if not page:
            raise PageNotFoundError(f"Page with id '{page_id}' not found.")
        authorize(ctx, role_required(*STAFF_ROLES))
        file = self._store(ctx, upload, models.FileOwner.page(page.id), "uploads/pages", self.max_upload_bytes)
        return file_to_dict(file)

    def upload_wysiwyg(self, ctx: AuthContext, upload: Optional[UploadedFile]) -> Dict[str, Any]:
        """에디터 본문에 삽입되는 이미지 등. 소유자 없이 저장됩니다."""
        authorize(ctx, role_required(*STAFF_ROLES))
        file = self._store(ctx, upload, None, "uploads/wysiwyg", self.max_upload_bytes)
        return file_to_dict(file)

    def upload_public(self, ctx: AuthContext, upload: Optional[UploadedFile]) -> Dict[str, Any]:
        """
        인증 없이 허용되는 업로드. 크기 제한이 더 작고 확장자 허용 목록을 검사합니다.

        Raises:
            ValidationError: 파일이 없거나, 너무 크거나, 허용되지 않은 확장자일 때.
        """
        self._require_file(upload)
        if upload.extension not in PUBLIC_UPLOAD_EXTENSIONS:
            raise ValidationError.for_field("file", "File type not allowed")
        file = self._store(ctx, upload, None, "uploads/public", self.max_public_upload_bytes)
        return file_to_dict(file)

    # --- 소유권 변경 ---

    def assign_to_page(self, ctx: AuthContext, page_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        기존 파일을 페이지 소유로 옮깁니다. 파일 생성자 또는 admin만 가능합니다.

        Raises:
            ValidationError: file_id가 없거나 존재하지 않는 파일일 때.
            PageNotFoundError: 페이지가 없을 때.
            ForbiddenError: 생성자도 admin도 아닐 때.
        """
        request = validate_payload(AssignFileRequest, data)
        file = self.file_repo.find_by_id(request.file_id)
        if not file:
            raise ValidationError.for_field("file_id", "The selected file id is invalid.")
        page = self.page_repo.find_by_id(page_id)
        if not page:
            raise PageNotFoundError(f"Page with id '{page_id}' not found.")

        return self._transfer(ctx, file, models.FileOwner.page(page.id))

    def reassign(self, ctx: AuthContext, file_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        파일의 소유자를 content, page, user 중 하나로 변경합니다. 생성자 또는 admin만 가능합니다.

        Args:
            ctx: 요청 컨텍스트.
            file_id: 대상 파일 id.
            data: owner_type, owner_id를 담은 요청 본문.

        Raises:
            FileNotFoundInStoreError: 파일이 없을 때.
            ValidationError: 소유자 종류가 잘못되었거나 해당 엔티티가 존재하지 않을 때.
            ForbiddenError: 생성자도 admin도 아닐 때.
        """
        request = validate_payload(ReassignFileRequest, data)
        file = self._get_file_or_raise(file_id)
        owner = request.to_owner()
        if not self._owner_exists(owner):
            raise ValidationError.for_field("owner_id", "The selected owner id is invalid.")
        return self._transfer(ctx, file, owner)

    def remove_from_page(self, ctx: AuthContext, file_id: int) -> Dict[str, Any]:
        """
        파일을 페이지에서 떼어내고 소유권을 현재 사용자에게 넘깁니다. 파일 자체는 삭제되지 않습니다.
        익명 요청이면 fallback_owner_id 사용자에게 넘깁니다.
        """
        file = self._get_file_or_raise(file_id)
        if ctx.is_authenticated:
            new_owner_id = ctx.user_id
        else:
            new_owner_id = self.fallback_owner_id
            logger.warning("Anonymous request moved file %s to fallback owner %s", file.id, new_owner_id)

        file = self.file_repo.reassign(file, models.FileOwner.user(new_owner_id))
        logger.info("File %s unlinked from its page, now owned by user %s", file.id, new_owner_id)
        return file_to_dict(file)

    # --- 삭제 ---

    def delete(self, ctx: AuthContext, file_id: int) -> bool:
        """
        저장된 바이트를 먼저 삭제한 뒤 메타데이터를 soft delete 합니다.
        메타데이터는 복구 가능하지만 바이트는 복구할 수 없습니다.
        """
        file = self._get_file_or_raise(file_id)
        authorize(ctx, creator_or_admin(file), "You do not have permission to delete this file")
        self._remove(file, ctx)
        return True

    def delete_content_file(self, ctx: AuthContext, conference_ref, page_id: int, content_id: int,
                            file_id: int) -> bool:
        conference = find_conference(self.conference_repo, conference_ref)
        page = find_page(self.page_repo, conference, page_id)
        content = find_content(self.content_repo, page, content_id)
        file = self._get_content_file_or_raise(content, file_id)
        authorize(ctx, can_manage_conference(conference.id))
        self._remove(file, ctx)
        return True

    # --- 내부 헬퍼 ---

    def _get_file_or_raise(self, file_id: int) -> models.FileUpload:
        file = self.file_repo.find_by_id(file_id)
        if not file:
            raise FileNotFoundInStoreError(f"File with id '{file_id}' not found.")
        return file

    def _get_content_file_or_raise(self, content: models.Content, file_id: int) -> models.FileUpload:
        file = self.file_repo.find_by_id(file_id)
        if not file or not file.is_owned_by(models.FileOwner.content(content.id)):
            raise FileNotFoundInStoreError(f"File with id '{file_id}' not found on this content.")
        return file

    def _owner_exists(self, owner: models.FileOwner) -> bool:
        repositories = {
            models.OwnerType.CONTENT: self.content_repo,
            models.OwnerType.PAGE: self.page_repo,
            models.OwnerType.USER: self.user_repo,
        }
        return repositories[owner.type].find_by_id(owner.id) is not None

    def _transfer(self, ctx: AuthContext, file: models.FileUpload, owner: models.FileOwner) -> Dict[str, Any]:
        authorize(ctx, creator_or_admin(file), "You do not have permission to assign this file")
        file = self.file_repo.reassign(file, owner)
        logger.info("File %s reassigned to %s %s by user %s", file.id, owner.type.value, owner.id, ctx.user_id)
        return file_to_dict(file)

    @staticmethod
    def _require_file(upload: Optional[UploadedFile]) -> None:
        if upload is None or not upload.filename:
            raise ValidationError.for_field("file", "The file field is required.")

    def _store(self, ctx: AuthContext, upload: Optional[UploadedFile], owner: Optional[models.FileOwner],
               sub_directory: str, max_bytes: int) -> models.FileUpload:
        self._require_file(upload)
        if upload.size > max_bytes:
            raise ValidationError.for_field(
                "file", f"The file may not be greater than {max_bytes // 1024} kilobytes."
            )

        stored = self.storage.store(upload, sub_directory=sub_directory, now=ctx.now)
        file = models.FileUpload(
            filename=stored.filename,
            original_filename=upload.filename,
            mime_type=upload.mime_type,
            size=upload.size,
            path=stored.path,
            disk=stored.disk,
            owner_type=owner.type if owner else None,
            owner_id=owner.id if owner else None,
            created_by=ctx.user_id,
        )
        file = self.file_repo.create(file)
        logger.info("Stored upload '%s' as %s (file %s)", upload.filename, stored.path, file.id)
        return file

    def _remove(self, file: models.FileUpload, ctx: AuthContext) -> None:
        self.storage.delete(file.path)
        self.file_repo.soft_delete(file, ctx.now)
        logger.info("File %s deleted by user %s", file.id, ctx.user_id)
