"""Pydantic request models for the events API."""

import re

from pydantic import (
    AnyUrl,
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from core.config import END_TIME_PATTERN

_url_adapter = TypeAdapter(AnyUrl)


class EventFields(BaseModel):
    """Fields shared by create and update bodies (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    description: str | None = None
    link: str | None = None
    end_date_time: AwareDatetime | None = None
    end_time: str | None = None
    is_all_day: bool | None = None
    is_global: bool | None = None
    user_ids: list[str] | None = None
    department_ids: list[str] | None = None
    unit_ids: list[str] | None = None

    @field_validator("end_time")
    @classmethod
    def check_end_time(cls, value: str | None) -> str | None:
        if value is not None and not re.match(END_TIME_PATTERN, value):
            raise ValueError("End time must be in HH:mm format")
        return value

    @field_validator("link")
    @classmethod
    def check_link(cls, value: str | None) -> str | None:
        # Empty string means "no link".
        if value:
            try:
                _url_adapter.validate_python(value)
            except ValidationError:
                raise ValueError("Link must be a valid URL")
        return value


class EventCreate(EventFields):
    title: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    start_date_time: AwareDatetime


class EventUpdate(EventFields):
    title: str | None = Field(default=None, min_length=1)
    tags: list[str] | None = None
    start_date_time: AwareDatetime | None = None
