from typing import Optional

from pydantic import Field, field_validator, model_validator

from conference_cms.database.models import ROLE_NAMES
from .auth import RegisterRequest, EMAIL_PATTERN
from .base import RequestSchema


class CreateUserRequest(RegisterRequest):
    """관리자가 사용자를 만들 때의 요청. 회원가입과 같은 규칙을 따릅니다."""


class UpdateUserRequest(RequestSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(None, min_length=8)
    password_confirmation: Optional[str] = None
    role: Optional[str] = None

    @field_validator("role")
    @classmethod
    def role_must_be_known(cls, value):
        if value is not None and value not in ROLE_NAMES:
            raise ValueError(f"The selected role is invalid. Allowed: {', '.join(ROLE_NAMES)}.")
        return value

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password is not None and self.password_confirmation != self.password:
            raise ValueError("The password confirmation does not match.")
        return self
