from .role import Role, ROLE_NAMES, ADMIN, EDITOR
from .user import User
from .association import UserRole, EditorConference
from .conference import Conference, CONFERENCE_STATUSES, PARTNER_LOCATIONS
from .page import Page, PAGE_STATUSES, PAGE_LAYOUTS, PUBLISHED
from .content import Content, CONTENT_TYPES, BLOCK_TYPES, RICH_TEXT_TYPES
from .file_upload import FileUpload, FileOwner, OwnerType
