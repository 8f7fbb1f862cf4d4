from typing import Any, Dict, List, Optional

from pydantic import Field, StrictInt, field_validator

from conference_cms.database.models import RICH_TEXT_TYPES
from .base import RequestSchema


def _check_type(value):
    if value is not None and value not in RICH_TEXT_TYPES:
        raise ValueError(f"The type must be one of: {', '.join(RICH_TEXT_TYPES)}.")
    return value


class CreateContentRequest(RequestSchema):
    title: str = Field(..., min_length=1, max_length=255)
    type: str
    content: str = Field(..., min_length=1)
    order: int = 0
    settings: Optional[Dict[str, Any]] = None

    @field_validator("type")
    @classmethod
    def type_must_be_rich_text(cls, value):
        return _check_type(value)


class UpdateContentRequest(RequestSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[str] = None
    content: Optional[str] = Field(None, min_length=1)
    order: Optional[int] = None
    settings: Optional[Dict[str, Any]] = None

    @field_validator("type")
    @classmethod
    def type_must_be_rich_text(cls, value):
        return _check_type(value)


class ReorderContentsRequest(RequestSchema):
    order: List[StrictInt]

    @field_validator("order")
    @classmethod
    def ids_must_be_distinct(cls, value):
        if len(set(value)) != len(value):
            raise ValueError("The order field has a duplicate value.")
        return value
