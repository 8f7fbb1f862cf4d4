from .base import validate_payload
from .auth import RegisterRequest, LoginRequest
from .user import CreateUserRequest, UpdateUserRequest
from .conference import CreateConferenceRequest, UpdateConferenceRequest, AssignConferencesRequest
from .page import ContentBlock, CreatePageRequest, UpdatePageRequest
from .content import CreateContentRequest, UpdateContentRequest, ReorderContentsRequest
from .file import AssignFileRequest, ReassignFileRequest
