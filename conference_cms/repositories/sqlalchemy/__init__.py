from .sqlalchemy_user_repository import SqlalchemyUserRepository
from .sqlalchemy_role_repository import SqlalchemyRoleRepository
from .sqlalchemy_conference_repository import SqlalchemyConferenceRepository
from .sqlalchemy_page_repository import SqlalchemyPageRepository
from .sqlalchemy_content_repository import SqlalchemyContentRepository
from .sqlalchemy_file_upload_repository import SqlalchemyFileUploadRepository
