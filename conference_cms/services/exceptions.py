# conference_cms/services/exceptions.py

# --- Validation Exceptions (422) ---
class ValidationError(Exception):
    """요청 데이터가 유효하지 않을 때. errors에는 필드별 메시지 목록이 담깁니다."""
    def __init__(self, message="Validation failed", errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    @classmethod
    def for_field(cls, field, message):
        return cls(message, {field: [message]})


# --- Auth Exceptions (401 / 403) ---
class TokenInvalidError(Exception):
    """토큰이 유효하지 않거나 없을 때"""
    pass

class AuthenticationError(Exception):
    """사용자 자격 증명 실패 시"""
    pass

class ForbiddenError(Exception):
    """인증은 되었지만 역할이나 소유권이 부족할 때"""
    pass


# --- Not Found Exceptions (404) ---
class UserNotFoundError(Exception):
    """사용자를 찾을 수 없을 때"""
    pass

class RoleNotFoundError(Exception):
    """역할을 찾을 수 없을 때"""
    pass

class ConferenceNotFoundError(Exception):
    """컨퍼런스를 찾을 수 없을 때"""
    pass

class PageNotFoundError(Exception):
    """페이지를 찾을 수 없거나, 요청한 컨퍼런스에 속하지 않을 때"""
    pass

class ContentNotFoundError(Exception):
    """콘텐츠 블록을 찾을 수 없거나, 요청한 페이지에 속하지 않을 때"""
    pass

class FileNotFoundInStoreError(Exception):
    """파일 메타데이터나 저장된 바이트를 찾을 수 없을 때"""
    pass


# --- Server Exceptions (500) ---
class StorageError(Exception):
    """파일 시스템 쓰기/삭제 중 오류 발생 시"""
    pass
