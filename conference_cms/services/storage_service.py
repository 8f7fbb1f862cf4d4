import logging
import os
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from werkzeug.utils import secure_filename

from conference_cms.services.exceptions import StorageError, FileNotFoundInStoreError

logger = logging.getLogger(__name__)

_FILENAME_ALPHABET = string.ascii_letters + string.digits


@dataclass
class UploadedFile:
    """요청에서 받은 업로드 파일. 바이트와 클라이언트가 보낸 메타데이터를 담습니다."""
    filename: str
    content: bytes
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        # 원래 파일명에서 확장자를 취하므로 비ASCII 이름도 확장자를 유지함
        basename = self.filename.replace('\\', '/').rsplit('/', 1)[-1]
        if '.' not in basename:
            return ''
        return secure_filename(basename.rsplit('.', 1)[1]).lower()


@dataclass
class StoredFile:
    filename: str
    path: str
    disk: str


def random_filename(extension: str, length: int = 40) -> str:
    """충돌 가능성이 매우 낮은 무작위 파일명을 생성합니다."""
    name = ''.join(secrets.choice(_FILENAME_ALPHABET) for _ in range(length))
    return f"{name}.{extension}" if extension else name


class StorageService:
    def __init__(self, upload_root: str, public_root: str, disk: str = "public"):
        """
        StorageService를 초기화합니다.

        Args:
            upload_root: 업로드된 바이트를 저장하는 기본 디렉터리.
            public_root: 다운로드 시 기본 경로에 파일이 없으면 찾아보는 보조 디렉터리.
            disk: 파일 메타데이터에 기록할 디스크 식별자.
        """
        self.upload_root = upload_root
        self.public_root = public_root
        self.disk = disk

    def store(self, upload: UploadedFile, sub_directory: str = "uploads", now: Optional[datetime] = None) -> StoredFile:
        """
        파일을 '<sub_directory>/<YYYY>/<MM>/<무작위 이름>' 경로에 저장합니다.

        Returns:
            생성된 파일명, upload_root 기준 상대 경로, 디스크 식별자.

        Raises:
            StorageError: 디렉터리 생성이나 쓰기에 실패했을 때.
        """
        now = now or datetime.now()
        filename = random_filename(upload.extension)
        relative_path = os.path.join(sub_directory, now.strftime("%Y"), now.strftime("%m"), filename)
        target_path = os.path.join(self.upload_root, relative_path)

        try:
            os.makedirs(os.path.dirname(target_path), exist_ok=True)
            with open(target_path, 'wb') as f:
                f.write(upload.content)
        except OSError as e:
            logger.error("Failed to write upload '%s' to %s: %s", upload.filename, target_path, e)
            raise StorageError(f"Failed to store file '{upload.filename}'.") from e

        return StoredFile(filename=filename, path=relative_path.replace(os.sep, '/'), disk=self.disk)

    def delete(self, relative_path: str) -> bool:
        """
        저장된 바이트를 삭제합니다. 되돌릴 수 없습니다.

        Returns:
            성공적으로 삭제되었거나 파일이 원래 없었으면 True를 반환합니다.

        Raises:
            StorageError: 파일 삭제에 실패했을 때.
        """
        target_path = os.path.join(self.upload_root, relative_path)
        if not os.path.exists(target_path):
            logger.info("Stored file not found, skipping delete: %s", target_path)
            return True
        try:
            os.remove(target_path)
        except OSError as e:
            raise StorageError(f"Failed to delete stored file '{relative_path}'.") from e
        logger.warning("Stored bytes permanently removed: %s", target_path)
        return True

    def resolve(self, relative_path: str) -> str:
        """
        다운로드할 실제 파일 경로를 찾습니다. 기본 경로에 없으면 보조 경로를 확인합니다.

        Raises:
            FileNotFoundInStoreError: 두 경로 모두에 파일이 없을 때.
        """
        for root in (self.upload_root, self.public_root):
            candidate = os.path.join(root, relative_path)
            if os.path.isfile(candidate):
                return candidate
        raise FileNotFoundInStoreError("File not found on server")
