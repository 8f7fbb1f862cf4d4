from typing import Any, List, Optional

from pydantic import Field, field_validator

from conference_cms.database.models import BLOCK_TYPES, PAGE_LAYOUTS
from .base import RequestSchema

# 페이지 생성/수정 요청에서는 archived를 직접 지정할 수 없음
EDITABLE_PAGE_STATUSES = ("draft", "published")


class ContentBlock(RequestSchema):
    type: str
    content: Optional[Any] = None
    alt: Optional[str] = None
    embed: Optional[str] = None
    fileName: Optional[str] = None

    @field_validator("type")
    @classmethod
    def type_must_be_block_type(cls, value):
        if value not in BLOCK_TYPES:
            raise ValueError(f"The block type must be one of: {', '.join(BLOCK_TYPES)}.")
        return value


def _check_layout(value):
    if value is not None and value not in PAGE_LAYOUTS:
        raise ValueError(f"The layout must be one of: {', '.join(PAGE_LAYOUTS)}.")
    return value


def _check_status(value):
    if value is not None and value not in EDITABLE_PAGE_STATUSES:
        raise ValueError(f"The status must be one of: {', '.join(EDITABLE_PAGE_STATUSES)}.")
    return value


class CreatePageRequest(RequestSchema):
    title: str = Field(..., min_length=1, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=255)
    layout: str
    status: str
    blocks: List[ContentBlock] = Field(default_factory=list)

    @field_validator("layout")
    @classmethod
    def layout_must_be_known(cls, value):
        return _check_layout(value)

    @field_validator("status")
    @classmethod
    def status_must_be_editable(cls, value):
        return _check_status(value)


class UpdatePageRequest(RequestSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=255)
    layout: Optional[str] = None
    status: Optional[str] = None
    # None이면 블록을 건드리지 않고, 리스트(빈 리스트 포함)면 전체 교체
    blocks: Optional[List[ContentBlock]] = None

    @field_validator("layout")
    @classmethod
    def layout_must_be_known(cls, value):
        return _check_layout(value)

    @field_validator("status")
    @classmethod
    def status_must_be_editable(cls, value):
        return _check_status(value)
