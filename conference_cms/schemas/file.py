from pydantic import StrictInt, field_validator

from conference_cms.database.models import FileOwner, OwnerType
from .base import RequestSchema

OWNER_TYPES = tuple(member.value for member in OwnerType)


class AssignFileRequest(RequestSchema):
    file_id: StrictInt


class ReassignFileRequest(RequestSchema):
    owner_type: str
    owner_id: StrictInt

    @field_validator("owner_type")
    @classmethod
    def owner_type_must_be_known(cls, value):
        if value not in OWNER_TYPES:
            raise ValueError(f"The owner type must be one of: {', '.join(OWNER_TYPES)}.")
        return value

    def to_owner(self) -> FileOwner:
        return FileOwner(OwnerType(self.owner_type), self.owner_id)
