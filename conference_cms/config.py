# conference_cms/config.py
import os
from pathlib import Path

# 프로젝트 루트: 상대 경로 기본값(DB 파일, 업로드 디렉터리)의 기준
PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings:
    """
    환경 변수에서 애플리케이션 설정을 읽어옵니다.
    값이 없으면 로컬 개발용 기본값을 사용합니다.
    """

    def __init__(self, environ=None):
        env = os.environ if environ is None else environ

        self.DATABASE_URL = env.get("DATABASE_URL", f"sqlite:///{PROJECT_ROOT / 'conference_cms.db'}")
        self.UPLOAD_ROOT = env.get("UPLOAD_ROOT", str(PROJECT_ROOT / "storage" / "app" / "public"))
        self.PUBLIC_ROOT = env.get("PUBLIC_ROOT", str(PROJECT_ROOT / "public" / "storage"))
        self.DEFAULT_DISK = env.get("DEFAULT_DISK", "public")

        self.CACHE_TTL_SECONDS = int(env.get("CACHE_TTL_SECONDS", 600))
        self.TOKEN_TTL_HOURS = int(env.get("TOKEN_TTL_HOURS", 24))

        self.MAX_UPLOAD_BYTES = int(env.get("MAX_UPLOAD_BYTES", 10 * 1024 * 1024))
        self.MAX_PUBLIC_UPLOAD_BYTES = int(env.get("MAX_PUBLIC_UPLOAD_BYTES", 5 * 1024 * 1024))
        # 익명 요청이 파일을 페이지에서 제거할 때 소유권을 넘겨받는 사용자
        self.FALLBACK_OWNER_ID = int(env.get("FALLBACK_OWNER_ID", 1))

        self.LOG_LEVEL = env.get("LOG_LEVEL", "INFO").upper()
        self.HOST = env.get("HOST", "")
        self.PORT = int(env.get("PORT", 8000))


settings = Settings()
