"""Pydantic response models for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models.events import EventRecord


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    ok: bool = False
    error: str
    details: Any = None


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserSummary(ApiModel):
    id: str
    full_name: str
    email: str
    role: str


class CreatorSummary(ApiModel):
    id: str
    full_name: str
    email: str


class DepartmentSummary(ApiModel):
    id: str
    name: str
    code: str


class UnitSummary(ApiModel):
    id: str
    name: str
    department_id: str


class EventData(ApiModel):
    """An event with its relations, as returned to clients."""

    id: str
    title: str
    description: str | None = None
    tags: list[str] = []
    link: str | None = None
    start_date_time: datetime
    end_date_time: datetime
    end_time: str | None = None
    is_all_day: bool
    is_global: bool
    created_by_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    users: list[UserSummary] = []
    departments: list[DepartmentSummary] = []
    units: list[UnitSummary] = []
    created_by: CreatorSummary | None = None

    @classmethod
    def from_record(cls, event: EventRecord, end_time: str | None) -> "EventData":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            tags=event.tags,
            link=event.link,
            start_date_time=event.start_date_time,
            end_date_time=event.end_date_time,
            end_time=end_time,
            is_all_day=event.is_all_day,
            is_global=event.is_global,
            created_by_id=event.created_by_id,
            created_at=event.created_at,
            updated_at=event.updated_at,
            users=[
                UserSummary(id=u.id, full_name=u.full_name, email=u.email, role=u.role)
                for u in event.users
            ],
            departments=[
                DepartmentSummary(id=d.id, name=d.name, code=d.code) for d in event.departments
            ],
            units=[
                UnitSummary(id=u.id, name=u.name, department_id=u.department_id)
                for u in event.units
            ],
            created_by=(
                CreatorSummary(
                    id=event.created_by.id,
                    full_name=event.created_by.full_name,
                    email=event.created_by.email,
                )
                if event.created_by
                else None
            ),
        )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
