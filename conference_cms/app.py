# conference_cms/app.py
from wsgiref.simple_server import make_server
import json
import logging
import re
from urllib.parse import quote

from sqlalchemy import text
from werkzeug.utils import secure_filename
from werkzeug.wrappers import Request

# SQLAlchemy 및 의존성 임포트
from conference_cms.config import settings
from conference_cms.database.database import SessionLocal
from conference_cms.database.db_init import initialize_db
from conference_cms.repositories.sqlalchemy import (
    SqlalchemyUserRepository, SqlalchemyRoleRepository, SqlalchemyConferenceRepository,
    SqlalchemyPageRepository, SqlalchemyContentRepository, SqlalchemyFileUploadRepository,
)
from conference_cms.services.authorization import AuthContext
from conference_cms.services.cache_service import TTLCache, build_default_registry
from conference_cms.services.conference_service import ConferenceService
from conference_cms.services.content_service import ContentService
from conference_cms.services.file_service import FileService
from conference_cms.services.identity_service import IdentityService, TokenStore
from conference_cms.services.page_service import PageService
from conference_cms.services.stats_service import StatsService
from conference_cms.services.storage_service import StorageService, UploadedFile
from conference_cms.services.exceptions import *

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    request = environ['request']
    if request.files or request.form:
        return request.form.to_dict()
    body = request.get_data()
    if not body:
        return {}
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError):
        raise ValueError("Invalid or missing JSON body.")

def get_uploaded_file(environ, field="file"):
    storage = environ['request'].files.get(field)
    if storage is None or not storage.filename:
        return None
    return UploadedFile(
        filename=storage.filename,
        content=storage.read(),
        mime_type=storage.mimetype or "application/octet-stream",
    )

def get_bearer_token(environ):
    header = environ.get('HTTP_AUTHORIZATION', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()

def build_auth_context(environ, auth_required):
    """
    Authorization 헤더로 현재 사용자를 찾아 AuthContext를 만듭니다.
    공개 라우트에서는 토큰이 없거나 유효하지 않으면 익명으로 처리합니다.
    """
    token = get_bearer_token(environ)
    user = None
    if token:
        try:
            user = environ['services']['identity'].resolve_user(token)
        except TokenInvalidError:
            if auth_required:
                raise
    elif auth_required:
        raise TokenInvalidError("Unauthenticated.")
    return AuthContext(user=user, cache=environ['cache'])

def content_disposition(filename):
    """
    첨부 파일용 Content-Disposition 값을 만듭니다.
    WSGI 헤더는 latin-1로 인코딩되므로 ASCII가 아닌 이름은 RFC 6266의 filename* 로 함께 보냅니다.
    """
    if filename.isascii():
        return 'attachment; filename="{}"'.format(filename.replace('"', ''))
    fallback = secure_filename(filename) or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"

def respond(status, data=None, message="Success"):
    return status, json.dumps({"success": True, "message": message, "data": data}, ensure_ascii=False)

def handle_exception(e):
    error_map = {
        ValidationError: "422 Unprocessable Entity",
        TokenInvalidError: "401 Unauthorized",
        AuthenticationError: "401 Unauthorized",
        ForbiddenError: "403 Forbidden",
        UserNotFoundError: "404 Not Found",
        RoleNotFoundError: "404 Not Found",
        ConferenceNotFoundError: "404 Not Found",
        PageNotFoundError: "404 Not Found",
        ContentNotFoundError: "404 Not Found",
        FileNotFoundInStoreError: "404 Not Found",
        ValueError: "400 Bad Request",
    }
    status = next((error_map[k] for k in type(e).__mro__ if k in error_map), "500 Internal Server Error")

    body = {"success": False, "message": str(e), "data": None}
    if isinstance(e, ValidationError):
        body["message"] = e.message
        body["errors"] = e.errors
    elif status.startswith("500"):
        # 내부 오류 내용은 응답에 노출하지 않음
        body["message"] = "Server Error"
    return status, json.dumps(body, ensure_ascii=False)

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

CONF = r'([A-Za-z0-9_-]+)'
ID = r'([0-9]+)'

def build_services(db_session, app_settings, token_store):
    # 1. 의존성 생성 (Repositories -> Services)
    user_repo = SqlalchemyUserRepository(db_session)
    role_repo = SqlalchemyRoleRepository(db_session)
    conference_repo = SqlalchemyConferenceRepository(db_session)
    page_repo = SqlalchemyPageRepository(db_session)
    content_repo = SqlalchemyContentRepository(db_session)
    file_repo = SqlalchemyFileUploadRepository(db_session)

    storage = StorageService(app_settings.UPLOAD_ROOT, app_settings.PUBLIC_ROOT, app_settings.DEFAULT_DISK)

    return {
        'identity': IdentityService(user_repo, role_repo, token_store),
        'conference': ConferenceService(conference_repo, page_repo, user_repo),
        'page': PageService(conference_repo, page_repo, content_repo),
        'content': ContentService(conference_repo, page_repo, content_repo, file_repo),
        'file': FileService(
            file_repo, conference_repo, page_repo, content_repo, user_repo, storage,
            max_upload_bytes=app_settings.MAX_UPLOAD_BYTES,
            max_public_upload_bytes=app_settings.MAX_PUBLIC_UPLOAD_BYTES,
            fallback_owner_id=app_settings.FALLBACK_OWNER_ID,
        ),
        'stats': StatsService(conference_repo, page_repo, content_repo, file_repo, user_repo),
    }

def create_app(session_factory=None, app_settings=None, cache=None, token_store=None):
    """
    WSGI 애플리케이션을 생성합니다.
    캐시 레지스트리와 토큰 저장소는 애플리케이션 단위로 공유되고, DB 세션은 요청마다 새로 만듭니다.
    """
    session_factory = session_factory or SessionLocal
    app_settings = app_settings or settings
    cache = cache or build_default_registry(TTLCache(app_settings.CACHE_TTL_SECONDS))
    token_store = token_store or TokenStore(app_settings.TOKEN_TTL_HOURS)

    def application(environ, start_response):
        db_session = session_factory()
        headers = [("Content-Type", "application/json; charset=utf-8")]
        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "")
        try:
            # 2. 생성된 서비스 객체들을 environ을 통해 핸들러에 전달
            environ['services'] = build_services(db_session, app_settings, token_store)
            environ['cache'] = cache
            environ['db_session'] = db_session
            environ['request'] = Request(environ)

            # 3. 라우팅 및 핸들러 실행
            handler, path_args, auth_required = None, [], False
            for route_method, pattern, route_handler, route_auth in routes:
                if method == route_method and (match := re.match(pattern, path)):
                    handler, path_args, auth_required = route_handler, match.groups(), route_auth
                    break

            if handler:
                environ['auth'] = build_auth_context(environ, auth_required)
                result = handler(environ, *path_args)
                status, response_body = result[0], result[1]
                if len(result) > 2:
                    headers = result[2]
            else:
                status, response_body = '404 Not Found', json.dumps(
                    {"success": False, "message": "Not Found", "data": None})

        except Exception as e:
            status, response_body = handle_exception(e)
            if status.startswith("500"):
                logger.exception("Unhandled error on %s %s", method, path)
        finally:
            db_session.close()

        start_response(status, headers)
        if isinstance(response_body, str):
            response_body = response_body.encode("utf-8")
        return [response_body]

    return application

# --------------------------------------------------------------------------
## 핸들러 함수
# --------------------------------------------------------------------------

# --- 인증 ---

def register_handler(environ, *args):
    result = environ['services']['identity'].register(get_request_data(environ))
    return respond('201 Created', result, 'User registered successfully')

def login_handler(environ, *args):
    result = environ['services']['identity'].login(get_request_data(environ))
    return respond('200 OK', result, 'Login successful')

def logout_handler(environ, *args):
    environ['services']['identity'].logout(environ['auth'])
    return respond('200 OK', None, 'Logged out successfully')

def current_user_handler(environ, *args):
    return respond('200 OK', environ['services']['identity'].get_current_user(environ['auth']))

# --- 사용자 ---

def list_users_handler(environ, *args):
    return respond('200 OK', environ['services']['identity'].list_users(environ['auth']))

def create_user_handler(environ, *args):
    user = environ['services']['identity'].create_user(environ['auth'], get_request_data(environ))
    return respond('201 Created', user, 'User created successfully')

def get_user_handler(environ, user_id):
    return respond('200 OK', environ['services']['identity'].get_user(environ['auth'], int(user_id)))

def update_user_handler(environ, user_id):
    user = environ['services']['identity'].update_user(environ['auth'], int(user_id), get_request_data(environ))
    return respond('200 OK', user, 'User updated successfully')

def delete_user_handler(environ, user_id):
    environ['services']['identity'].delete_user(environ['auth'], int(user_id))
    return respond('200 OK', None, 'User deleted successfully')

def list_user_conferences_handler(environ, user_id):
    conferences = environ['services']['conference'].list_user_conferences(environ['auth'], int(user_id))
    return respond('200 OK', conferences)

def assign_conferences_handler(environ, user_id):
    conferences = environ['services']['conference'].assign(environ['auth'], int(user_id), get_request_data(environ))
    return respond('200 OK', conferences, 'Conferences assigned successfully')

def unassign_conferences_handler(environ, user_id):
    conferences = environ['services']['conference'].unassign(environ['auth'], int(user_id), get_request_data(environ))
    return respond('200 OK', conferences, 'Conferences unassigned successfully')

# --- 컨퍼런스 ---

def list_conferences_handler(environ, *args):
    return respond('200 OK', environ['services']['conference'].list_conferences(environ['auth']))

def create_conference_handler(environ, *args):
    conference = environ['services']['conference'].create_conference(environ['auth'], get_request_data(environ))
    return respond('201 Created', conference, 'Conference created successfully')

def get_conference_handler(environ, conference_ref):
    return respond('200 OK', environ['services']['conference'].get_conference(environ['auth'], conference_ref))

def update_conference_handler(environ, conference_ref):
    conference = environ['services']['conference'].update_conference(
        environ['auth'], conference_ref, get_request_data(environ))
    return respond('200 OK', conference, 'Conference updated successfully')

def delete_conference_handler(environ, conference_ref):
    environ['services']['conference'].delete_conference(environ['auth'], conference_ref)
    return respond('200 OK', None, 'Conference deleted successfully')

def public_pages_handler(environ, conference_ref):
    return respond('200 OK', environ['services']['conference'].public_pages(environ['auth'], conference_ref))

# --- 페이지 ---

def list_pages_handler(environ, conference_ref):
    return respond('200 OK', environ['services']['page'].list_pages(environ['auth'], conference_ref))

def create_page_handler(environ, conference_ref):
    page = environ['services']['page'].create_page(environ['auth'], conference_ref, get_request_data(environ))
    return respond('201 Created', page, 'Page created successfully')

def get_page_handler(environ, conference_ref, page_id):
    return respond('200 OK', environ['services']['page'].get_page(environ['auth'], conference_ref, int(page_id)))

def update_page_handler(environ, conference_ref, page_id):
    page = environ['services']['page'].update_page(
        environ['auth'], conference_ref, int(page_id), get_request_data(environ))
    return respond('200 OK', page, 'Page updated successfully')

def delete_page_handler(environ, conference_ref, page_id):
    environ['services']['page'].delete_page(environ['auth'], conference_ref, int(page_id))
    return respond('200 OK', None, 'Page deleted successfully')

def save_blocks_handler(environ, conference_ref, page_id):
    data = get_request_data(environ)
    page = environ['services']['page'].save_content_blocks(
        environ['auth'], conference_ref, int(page_id), data.get('blocks') if isinstance(data, dict) else data)
    return respond('200 OK', page, 'Content blocks saved successfully')

# --- 콘텐츠 ---

def list_contents_handler(environ, conference_ref, page_id):
    contents = environ['services']['content'].list_contents(environ['auth'], conference_ref, int(page_id))
    return respond('200 OK', contents)

def create_content_handler(environ, conference_ref, page_id):
    content = environ['services']['content'].create_content(
        environ['auth'], conference_ref, int(page_id), get_request_data(environ))
    return respond('201 Created', content, 'Content created successfully')

def reorder_contents_handler(environ, conference_ref, page_id):
    contents = environ['services']['content'].reorder(
        environ['auth'], conference_ref, int(page_id), get_request_data(environ))
    return respond('200 OK', contents, 'Contents reordered successfully')

def get_content_handler(environ, conference_ref, page_id, content_id):
    content = environ['services']['content'].get_content(
        environ['auth'], conference_ref, int(page_id), int(content_id))
    return respond('200 OK', content)

def update_content_handler(environ, conference_ref, page_id, content_id):
    content = environ['services']['content'].update_content(
        environ['auth'], conference_ref, int(page_id), int(content_id), get_request_data(environ))
    return respond('200 OK', content, 'Content updated successfully')

def delete_content_handler(environ, conference_ref, page_id, content_id):
    environ['services']['content'].delete_content(environ['auth'], conference_ref, int(page_id), int(content_id))
    return respond('200 OK', None, 'Content deleted successfully')

# --- 파일 ---

def upload_content_file_handler(environ, conference_ref, page_id, content_id):
    file = environ['services']['file'].upload_for_content(
        environ['auth'], conference_ref, int(page_id), int(content_id), get_uploaded_file(environ))
    return respond('201 Created', file, 'File uploaded successfully')

def get_content_file_handler(environ, conference_ref, page_id, content_id, file_id):
    file = environ['services']['file'].get_content_file(
        environ['auth'], conference_ref, int(page_id), int(content_id), int(file_id))
    return respond('200 OK', file)

def delete_content_file_handler(environ, conference_ref, page_id, content_id, file_id):
    environ['services']['file'].delete_content_file(
        environ['auth'], conference_ref, int(page_id), int(content_id), int(file_id))
    return respond('200 OK', None, 'File deleted successfully')

def list_files_handler(environ, *args):
    return respond('200 OK', environ['services']['file'].list_files(environ['auth']))

def upload_general_handler(environ, *args):
    file = environ['services']['file'].upload_general(environ['auth'], get_uploaded_file(environ))
    return respond('201 Created', file, 'File uploaded successfully')

def upload_wysiwyg_handler(environ, *args):
    file = environ['services']['file'].upload_wysiwyg(environ['auth'], get_uploaded_file(environ))
    return respond('201 Created', file, 'File uploaded successfully')

def upload_public_handler(environ, *args):
    file = environ['services']['file'].upload_public(environ['auth'], get_uploaded_file(environ))
    return respond('201 Created', file, 'File uploaded successfully')

def delete_file_handler(environ, file_id):
    environ['services']['file'].delete(environ['auth'], int(file_id))
    return respond('200 OK', None, 'File deleted successfully')

def reassign_file_handler(environ, file_id):
    file = environ['services']['file'].reassign(environ['auth'], int(file_id), get_request_data(environ))
    return respond('200 OK', file, 'File owner updated successfully')

def download_file_handler(environ, file_id):
    download = environ['services']['file'].download(int(file_id))
    with open(download.path, 'rb') as f:
        body = f.read()
    headers = [
        ("Content-Type", download.mime_type),
        ("Content-Disposition", content_disposition(download.filename)),
        ("Content-Length", str(len(body))),
    ]
    return '200 OK', body, headers

def upload_page_file_handler(environ, page_id):
    file = environ['services']['file'].upload_for_page(environ['auth'], int(page_id), get_uploaded_file(environ))
    return respond('201 Created', file, 'File uploaded successfully')

def assign_page_file_handler(environ, page_id):
    file = environ['services']['file'].assign_to_page(environ['auth'], int(page_id), get_request_data(environ))
    return respond('200 OK', file, 'File assigned to page successfully')

def list_page_files_handler(environ, page_id):
    return respond('200 OK', environ['services']['file'].list_page_files(int(page_id)))

def remove_page_file_handler(environ, conference_ref, page_id, file_id):
    logger.info("Remove file %s from page %s (conference %s)", file_id, page_id, conference_ref)
    environ['services']['file'].remove_from_page(environ['auth'], int(file_id))
    return respond('200 OK', None, 'File removed from page successfully')

# --- 에디터 / 관리자 ---

def editor_conferences_handler(environ, *args):
    return respond('200 OK', environ['services']['conference'].my_conferences(environ['auth']))

def editor_pages_handler(environ, *args):
    return respond('200 OK', environ['services']['page'].editor_pages(environ['auth']))

def editor_stats_handler(environ, *args):
    return respond('200 OK', environ['services']['stats'].editor_stats(environ['auth']))

def admin_pages_handler(environ, *args):
    return respond('200 OK', environ['services']['page'].list_all_pages(environ['auth']))

def admin_page_counts_handler(environ, *args):
    return respond('200 OK', environ['services']['page'].page_counts(environ['auth']))

def admin_stats_handler(environ, *args):
    return respond('200 OK', environ['services']['stats'].admin_stats(environ['auth']))

def health_handler(environ, *args):
    environ['db_session'].execute(text("SELECT 1"))
    return '200 OK', json.dumps({"status": "ok", "message": "API is online"})

# (메서드, 경로 패턴, 핸들러, 인증 필수 여부)
routes = [
    ('GET', r'^/health$', health_handler, False),
    ('POST', r'^/register$', register_handler, False),
    ('POST', r'^/login$', login_handler, False),
    ('POST', r'^/logout$', logout_handler, True),
    ('GET', r'^/user$', current_user_handler, True),

    ('GET', r'^/users$', list_users_handler, True),
    ('POST', r'^/users$', create_user_handler, True),
    ('GET', rf'^/users/{ID}$', get_user_handler, True),
    ('PUT', rf'^/users/{ID}$', update_user_handler, True),
    ('DELETE', rf'^/users/{ID}$', delete_user_handler, True),
    ('GET', rf'^/users/{ID}/conferences$', list_user_conferences_handler, True),
    ('POST', rf'^/users/{ID}/conferences$', assign_conferences_handler, True),
    ('DELETE', rf'^/users/{ID}/conferences$', unassign_conferences_handler, True),

    ('GET', r'^/conferences$', list_conferences_handler, False),
    ('POST', r'^/conferences$', create_conference_handler, True),
    ('GET', rf'^/conferences/{CONF}$', get_conference_handler, False),
    ('PUT', rf'^/conferences/{CONF}$', update_conference_handler, True),
    ('DELETE', rf'^/conferences/{CONF}$', delete_conference_handler, True),
    ('GET', rf'^/conferences/{CONF}/public-pages$', public_pages_handler, False),

    ('GET', rf'^/conferences/{CONF}/pages$', list_pages_handler, False),
    ('POST', rf'^/conferences/{CONF}/pages$', create_page_handler, True),
    ('GET', rf'^/conferences/{CONF}/pages/{ID}$', get_page_handler, False),
    ('PUT', rf'^/conferences/{CONF}/pages/{ID}$', update_page_handler, True),
    ('DELETE', rf'^/conferences/{CONF}/pages/{ID}$', delete_page_handler, True),
    ('PUT', rf'^/conferences/{CONF}/pages/{ID}/blocks$', save_blocks_handler, True),
    ('DELETE', rf'^/conferences/{CONF}/pages/{ID}/files/{ID}$', remove_page_file_handler, False),

    ('GET', rf'^/conferences/{CONF}/pages/{ID}/contents$', list_contents_handler, False),
    ('POST', rf'^/conferences/{CONF}/pages/{ID}/contents$', create_content_handler, True),
    ('POST', rf'^/conferences/{CONF}/pages/{ID}/contents/reorder$', reorder_contents_handler, True),
    ('GET', rf'^/conferences/{CONF}/pages/{ID}/contents/{ID}$', get_content_handler, False),
    ('PUT', rf'^/conferences/{CONF}/pages/{ID}/contents/{ID}$', update_content_handler, True),
    ('DELETE', rf'^/conferences/{CONF}/pages/{ID}/contents/{ID}$', delete_content_handler, True),
    ('POST', rf'^/conferences/{CONF}/pages/{ID}/contents/{ID}/files$', upload_content_file_handler, True),
    ('GET', rf'^/conferences/{CONF}/pages/{ID}/contents/{ID}/files/{ID}$', get_content_file_handler, False),
    ('DELETE', rf'^/conferences/{CONF}/pages/{ID}/contents/{ID}/files/{ID}$', delete_content_file_handler, True),

    ('GET', r'^/files$', list_files_handler, True),
    ('POST', r'^/files/upload$', upload_general_handler, True),
    ('POST', r'^/files/public-upload$', upload_public_handler, False),
    ('POST', r'^/wysiwyg/upload$', upload_wysiwyg_handler, True),
    ('DELETE', rf'^/files/{ID}$', delete_file_handler, True),
    ('PUT', rf'^/files/{ID}/owner$', reassign_file_handler, True),
    ('GET', rf'^/files/{ID}/download$', download_file_handler, False),
    ('POST', rf'^/pages/{ID}/files$', upload_page_file_handler, True),
    ('POST', rf'^/pages/{ID}/files/assign$', assign_page_file_handler, True),
    ('GET', rf'^/pages/{ID}/files$', list_page_files_handler, False),

    ('GET', r'^/editor/conferences$', editor_conferences_handler, True),
    ('GET', r'^/editor/pages$', editor_pages_handler, True),
    ('GET', r'^/editor/stats$', editor_stats_handler, True),
    ('GET', r'^/admin/pages$', admin_pages_handler, True),
    ('GET', r'^/admin/pages/counts$', admin_page_counts_handler, True),
    ('GET', r'^/admin/stats$', admin_stats_handler, True),
]

application = create_app()

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        initialize_db()
        with make_server(settings.HOST, settings.PORT, application) as httpd:
            logger.info("Serving Conference CMS API on port %s...", settings.PORT)
            httpd.serve_forever()
    except Exception:
        logger.exception("Error starting server")
        raise
