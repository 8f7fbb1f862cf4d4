from typing import Optional

from pydantic import Field, field_validator, model_validator

from conference_cms.database.models import ROLE_NAMES
from .base import RequestSchema

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(RequestSchema):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8)
    password_confirmation: Optional[str] = None
    role: str

    @field_validator("role")
    @classmethod
    def role_must_be_known(cls, value):
        if value not in ROLE_NAMES:
            raise ValueError(f"The selected role is invalid. Allowed: {', '.join(ROLE_NAMES)}.")
        return value

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password_confirmation != self.password:
            raise ValueError("The password confirmation does not match.")
        return self


class LoginRequest(RequestSchema):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)
