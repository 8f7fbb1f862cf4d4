from datetime import date
from typing import List, Optional

from pydantic import Field, StrictInt, field_validator, model_validator

from conference_cms.database.models import CONFERENCE_STATUSES, PARTNER_LOCATIONS
from .base import RequestSchema


def _check_location(value):
    if value is not None and value not in PARTNER_LOCATIONS:
        raise ValueError("The location must be one of the partner university locations.")
    return value


def _check_status(value):
    if value is not None and value not in CONFERENCE_STATUSES:
        raise ValueError(f"The status must be one of: {', '.join(CONFERENCE_STATUSES)}.")
    return value


class CreateConferenceRequest(RequestSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    location: str
    status: str = "draft"

    @field_validator("location")
    @classmethod
    def location_must_be_partner(cls, value):
        return _check_location(value)

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, value):
        return _check_status(value)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date < self.start_date:
            raise ValueError("The end date must be a date after or equal to start date.")
        return self


class UpdateConferenceRequest(RequestSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: Optional[str] = None
    status: Optional[str] = None

    @field_validator("location")
    @classmethod
    def location_must_be_partner(cls, value):
        return _check_location(value)

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, value):
        return _check_status(value)


class AssignConferencesRequest(RequestSchema):
    conference_ids: List[StrictInt]
