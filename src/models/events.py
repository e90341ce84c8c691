"""
Data models for events and the records they relate to.

Directory records are frozen dataclasses so resolvers can key and compare
them freely. Events are kept as dataclasses mirroring the `events` table.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    full_name: str = ""
    role: str = ""


@dataclass(frozen=True)
class DepartmentRecord:
    id: str
    code: str
    name: str


@dataclass(frozen=True)
class DepartmentRef:
    """Department code -> id entry shared between department and unit resolution."""

    id: str
    code: str


@dataclass(frozen=True)
class UnitRecord:
    id: str
    name: str
    department_id: str


@dataclass
class EventRecord:
    """An event row with its relations loaded."""

    id: str
    title: str
    start_date_time: datetime
    end_date_time: datetime
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    link: str | None = None
    end_time: str | None = None
    is_all_day: bool = False
    is_global: bool = False
    created_by_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    users: list[UserRecord] = field(default_factory=list)
    departments: list[DepartmentRecord] = field(default_factory=list)
    units: list[UnitRecord] = field(default_factory=list)
    created_by: UserRecord | None = None


@dataclass
class NewEvent:
    """Everything needed for a single create-with-relations write."""

    title: str
    start_date_time: datetime
    end_date_time: datetime
    end_time: str | None
    is_all_day: bool
    is_global: bool
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    link: str | None = None
    created_by_id: str | None = None
    user_ids: list[str] = field(default_factory=list)
    department_ids: list[str] = field(default_factory=list)
    unit_ids: list[str] = field(default_factory=list)


@dataclass
class AuditEntry:
    """One audit_logs row."""

    user_id: str
    user_snapshot: dict
    action_type: str  # CREATE, UPDATE, DELETE
    entity_type: str
    description: str
    entity_id: str | None = None
    is_successful: bool = True
    previous_data: dict | None = None
    new_data: dict | None = None
    ip_address: str | None = None
    user_agent: str | None = None
