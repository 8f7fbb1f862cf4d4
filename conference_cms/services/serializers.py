"""ORM 객체를 JSON 응답/캐시에 넣을 수 있는 딕셔너리로 변환합니다."""
from datetime import date, datetime

from conference_cms.services.authorization import primary_role


def _iso(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def user_to_dict(user, with_roles=True):
    data = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": primary_role(user),
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }
    if with_roles:
        data["roles"] = user.role_names
    return data


def conference_to_dict(conference):
    return {
        "id": conference.id,
        "name": conference.name,
        "slug": conference.slug,
        "description": conference.description,
        "location": conference.location,
        "start_date": _iso(conference.start_date),
        "end_date": _iso(conference.end_date),
        "status": conference.status,
        "created_at": _iso(conference.created_at),
        "updated_at": _iso(conference.updated_at),
    }


def content_to_dict(content, files=None):
    data = {
        "id": content.id,
        "page_id": content.page_id,
        "title": content.title,
        "type": content.type,
        "content": content.body,
        "order": content.order,
        "settings": content.settings or {},
        "created_by": content.created_by,
        "updated_by": content.updated_by,
        "created_at": _iso(content.created_at),
        "updated_at": _iso(content.updated_at),
    }
    if files is not None:
        data["files"] = [file_to_dict(f) for f in files]
    return data


def page_to_dict(page, contents=None):
    data = {
        "id": page.id,
        "conference_id": page.conference_id,
        "title": page.title,
        "slug": page.slug,
        "meta_description": page.meta_description,
        "layout": page.layout,
        "status": page.status,
        "is_published": page.is_published,
        "created_by": page.created_by,
        "updated_by": page.updated_by,
        "created_at": _iso(page.created_at),
        "updated_at": _iso(page.updated_at),
    }
    if contents is not None:
        data["contents"] = [content_to_dict(c) for c in contents]
    return data


def file_to_dict(file):
    owner = file.owner
    return {
        "id": file.id,
        "filename": file.filename,
        "original_filename": file.original_filename,
        "mime_type": file.mime_type,
        "size": file.size,
        "path": file.path,
        "disk": file.disk,
        "owner": owner.to_dict() if owner else None,
        "created_by": file.created_by,
        "created_at": _iso(file.created_at),
    }
