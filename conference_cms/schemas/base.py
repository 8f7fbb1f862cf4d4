"""
pydantic 스키마로 요청 본문을 검증하고, 실패 시 필드별 메시지 맵을 가진 ValidationError로 변환합니다.
"""
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from conference_cms.services.exceptions import ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class RequestSchema(BaseModel):
    """모든 요청 스키마의 기본 클래스. 알 수 없는 필드는 무시합니다."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        message = error.get("msg", "Invalid value")
        # 'Value error, ...' 접두어는 사용자에게 보여줄 필요가 없음
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors


def validate_payload(schema: Type[SchemaT], data: Any) -> SchemaT:
    """
    요청 데이터를 스키마로 검증합니다.

    Raises:
        ValidationError: 본문이 객체가 아니거나 스키마 검증에 실패했을 때.
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.", {"__root__": ["Expected an object."]})
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        errors = _field_errors(e)
        first_message = next(iter(errors.values()))[0]
        raise ValidationError(first_message, errors) from e
