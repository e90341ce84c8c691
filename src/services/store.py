"""
Async persistence facade over the SQLite helpers in core.database.

Each call opens its own connection in a worker thread, so independent
lookups can be awaited concurrently with asyncio.gather.
"""

import asyncio
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from core import database
from core.config import DB_PATH
from core.exceptions import PersistenceFailure
from core.identifiers import new_record_id
from models.events import (
    AuditEntry,
    DepartmentRecord,
    EventRecord,
    NewEvent,
    UnitRecord,
    UserRecord,
)


class EventStore:
    """Batch find-by-field lookups plus event create/read/update/delete."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = db_path or DB_PATH

    def _call(self, operation, *args, **kwargs):
        conn = database.get_connection(self.db_path)
        try:
            return operation(conn, *args, **kwargs)
        except sqlite3.Error as e:
            raise PersistenceFailure(str(e)) from e
        finally:
            conn.close()

    async def _run(self, operation, *args, **kwargs):
        return await asyncio.to_thread(self._call, operation, *args, **kwargs)

    # Directory lookups

    async def find_users(self, field: str, values: list[str]) -> list[UserRecord]:
        return await self._run(database.find_users, field, values)

    async def find_departments(self, field: str, values: list[str]) -> list[DepartmentRecord]:
        return await self._run(database.find_departments, field, values)

    async def find_units(self, field: str, values: list[str]) -> list[UnitRecord]:
        return await self._run(database.find_units, field, values)

    async def find_units_by_department_and_name(
        self, pairs: list[tuple[str, str]]
    ) -> list[UnitRecord]:
        return await self._run(database.find_units_by_department_and_name, pairs)

    # Events

    async def create_event(self, event: NewEvent) -> EventRecord:
        """Single create-with-relations write, returning the stored event."""
        event_id = new_record_id()

        def create(conn: sqlite3.Connection) -> EventRecord:
            database.insert_event(conn, event_id, event, datetime.now(timezone.utc))
            return database.fetch_event(conn, event_id)

        return await self._run(create)

    async def get_event(self, event_id: str) -> EventRecord | None:
        return await self._run(database.fetch_event, event_id)

    async def list_events(
        self,
        q: str | None = None,
        tag: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[EventRecord]:
        return await self._run(database.fetch_events, q=q, tag=tag, start=start, end=end)

    async def update_event(
        self,
        event_id: str,
        changes: dict,
        user_ids: list[str] | None = None,
        department_ids: list[str] | None = None,
        unit_ids: list[str] | None = None,
    ) -> EventRecord | None:
        def update(conn: sqlite3.Connection) -> EventRecord | None:
            database.update_event(
                conn,
                event_id,
                changes,
                datetime.now(timezone.utc),
                user_ids=user_ids,
                department_ids=department_ids,
                unit_ids=unit_ids,
            )
            return database.fetch_event(conn, event_id)

        return await self._run(update)

    async def delete_event(self, event_id: str) -> bool:
        return await self._run(database.delete_event, event_id)

    # Audit and health

    async def record_audit(self, entry: AuditEntry) -> int:
        return await self._run(database.insert_audit_log, entry)

    async def ping(self) -> bool:
        def check(conn: sqlite3.Connection) -> bool:
            conn.execute("SELECT 1 FROM events LIMIT 1").fetchall()
            return True

        return await self._run(check)
