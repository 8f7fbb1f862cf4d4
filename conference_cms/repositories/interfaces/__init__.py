from .user import IUserRepository
from .role import IRoleRepository
from .conference import IConferenceRepository
from .page import IPageRepository
from .content import IContentRepository
from .file_upload import IFileUploadRepository
