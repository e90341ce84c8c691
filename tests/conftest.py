"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from pathlib import Path

import pytest

# Calendar-day checks in tests are written against UTC
os.environ["EVENTS_TIMEZONE"] = "UTC"

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import create_schema, get_connection  # noqa: E402
from models.events import DepartmentRecord, UnitRecord, UserRecord  # noqa: E402
from services.store import EventStore  # noqa: E402

USERS = [
    UserRecord("cuser-alice", "alice@co.com", "Alice Nguyen", "MANAGER"),
    UserRecord("cuser-bob", "bob@co.com", "Bob Tran", "EMPLOYEE"),
]
DEPARTMENTS = [
    DepartmentRecord("cdept-eng", "ENG", "Engineering"),
    DepartmentRecord("cdept-hr", "HR", "Human Resources"),
    DepartmentRecord("cdept-fin", "FIN", "Finance"),
]
UNITS = [
    UnitRecord("cunit-backend", "Backend", "cdept-eng"),
    UnitRecord("cunit-frontend", "Frontend", "cdept-eng"),
    UnitRecord("cunit-hr-payroll", "Payroll", "cdept-hr"),
    UnitRecord("cunit-fin-payroll", "Payroll", "cdept-fin"),
]


class InMemoryDirectory:
    """Directory store fake that records every batch lookup it receives."""

    def __init__(self, users=USERS, departments=DEPARTMENTS, units=UNITS):
        self.users = list(users)
        self.departments = list(departments)
        self.units = list(units)
        self.calls: list[tuple] = []

    async def find_users(self, field, values):
        self.calls.append(("users", field, tuple(values)))
        return [u for u in self.users if getattr(u, field) in values]

    async def find_departments(self, field, values):
        self.calls.append(("departments", field, tuple(values)))
        return [d for d in self.departments if getattr(d, field) in values]

    async def find_units(self, field, values):
        self.calls.append(("units", field, tuple(values)))
        return [u for u in self.units if getattr(u, field) in values]

    async def find_units_by_department_and_name(self, pairs):
        self.calls.append(("units_by_pair", tuple(pairs)))
        return [u for u in self.units if (u.department_id, u.name) in pairs]


@pytest.fixture
def directory():
    return InMemoryDirectory()


@pytest.fixture
def db_path(tmp_path):
    """Temporary SQLite database with schema and a small directory."""
    path = tmp_path / "events.db"
    conn = get_connection(path)
    try:
        create_schema(conn)
        with conn:
            conn.executemany(
                "INSERT INTO departments (id, code, name) VALUES (?, ?, ?)",
                [(d.id, d.code, d.name) for d in DEPARTMENTS],
            )
            conn.executemany(
                "INSERT INTO department_units (id, name, department_id) VALUES (?, ?, ?)",
                [(u.id, u.name, u.department_id) for u in UNITS],
            )
            conn.executemany(
                "INSERT INTO users (id, email, full_name, role) VALUES (?, ?, ?, ?)",
                [(u.id, u.email, u.full_name, u.role) for u in USERS],
            )
    finally:
        conn.close()
    return path


@pytest.fixture
def store(db_path):
    return EventStore(db_path)


@pytest.fixture
def client(store):
    """TestClient wired to the temporary database."""
    from fastapi.testclient import TestClient

    from api.dependencies import get_event_store
    from api.main import app

    app.dependency_overrides[get_event_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def sample_event_body():
    """Minimal valid POST /api/events body."""
    return {
        "title": "Sprint planning",
        "description": "Plan the next sprint",
        "tags": ["planning"],
        "startDateTime": "2024-03-01T09:00:00Z",
        "endTime": "10:30",
        "isAllDay": False,
    }


def query_rows(db_path, sql, params=()):
    conn = get_connection(db_path)
    try:
        return [dict(row) for row in conn.execute(sql, params).fetchall()]
    finally:
        conn.close()
