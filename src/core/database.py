"""
SQLite database operations for events and the directory they reference.

All functions are synchronous and take an open connection; the async store in
services.store runs them in worker threads.
"""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from core.config import DB_PATH
from models.events import (
    AuditEntry,
    DepartmentRecord,
    EventRecord,
    NewEvent,
    UnitRecord,
    UserRecord,
)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS departments (
        id TEXT PRIMARY KEY,
        code TEXT UNIQUE NOT NULL,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS department_units (
        id TEXT PRIMARY KEY,
        department_id TEXT NOT NULL,
        name TEXT NOT NULL,
        UNIQUE (department_id, name),
        FOREIGN KEY (department_id) REFERENCES departments(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE NOT NULL,
        full_name TEXT NOT NULL DEFAULT '',
        role TEXT NOT NULL DEFAULT 'EMPLOYEE',
        department_id TEXT,
        FOREIGN KEY (department_id) REFERENCES departments(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT,
        tags TEXT NOT NULL DEFAULT '[]',
        link TEXT,
        start_date_time TEXT NOT NULL,
        end_date_time TEXT NOT NULL,
        end_time TEXT,
        is_all_day INTEGER NOT NULL DEFAULT 0,
        is_global INTEGER NOT NULL DEFAULT 0,
        created_by_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        CHECK (end_date_time > start_date_time)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS event_users (
        event_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        PRIMARY KEY (event_id, user_id),
        FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE CASCADE,
        FOREIGN KEY (user_id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS event_departments (
        event_id TEXT NOT NULL,
        department_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        PRIMARY KEY (event_id, department_id),
        FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE CASCADE,
        FOREIGN KEY (department_id) REFERENCES departments(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS event_units (
        event_id TEXT NOT NULL,
        unit_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        PRIMARY KEY (event_id, unit_id),
        FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE CASCADE,
        FOREIGN KEY (unit_id) REFERENCES department_units(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        user_snapshot TEXT NOT NULL,
        action_type TEXT NOT NULL CHECK(action_type IN ('CREATE', 'UPDATE', 'DELETE')),
        entity_type TEXT NOT NULL,
        entity_id TEXT,
        description TEXT NOT NULL,
        is_successful INTEGER NOT NULL DEFAULT 1,
        previous_data TEXT,
        new_data TEXT,
        ip_address TEXT,
        user_agent TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT UNIQUE NOT NULL,
        timestamp TEXT NOT NULL,
        endpoint TEXT NOT NULL,
        method TEXT NOT NULL,
        client_ip TEXT,
        actor_id TEXT,
        event_id TEXT,
        status_code INTEGER NOT NULL,
        error_message TEXT,
        processing_time_ms INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_request_details (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT NOT NULL,
        detail_type TEXT NOT NULL CHECK(detail_type IN ('validation_error', 'unresolved_reference', 'warning')),
        message TEXT NOT NULL,
        FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_start ON events(start_date_time)",
    "CREATE INDEX IF NOT EXISTS idx_units_name ON department_units(name)",
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_entity ON audit_logs(entity_type, entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)",
]

USER_FIELDS = {"id", "email"}
DEPARTMENT_FIELDS = {"id", "code", "name"}
UNIT_FIELDS = {"id", "name"}


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Get a database connection with row access by name and foreign keys on."""
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they don't exist."""
    cursor = conn.cursor()
    for statement in SCHEMA_STATEMENTS:
        cursor.execute(statement)
    conn.commit()


# =============================================================================
# TIMESTAMPS
# =============================================================================


def to_db_timestamp(value: datetime) -> str:
    """UTC ISO 8601 with fixed microsecond width so text order is time order."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _placeholders(count: int) -> str:
    return ", ".join("?" * count)


# =============================================================================
# DIRECTORY LOOKUPS
# =============================================================================


def find_users(conn: sqlite3.Connection, field: str, values: list[str]) -> list[UserRecord]:
    """Batch lookup of users where `field` is one of `values`."""
    if field not in USER_FIELDS:
        raise ValueError(f"Unsupported user lookup field: {field}")
    if not values:
        return []
    rows = conn.execute(
        f"SELECT id, email, full_name, role FROM users WHERE {field} IN ({_placeholders(len(values))})",
        list(values),
    ).fetchall()
    return [UserRecord(row["id"], row["email"], row["full_name"], row["role"]) for row in rows]


def find_departments(
    conn: sqlite3.Connection, field: str, values: list[str]
) -> list[DepartmentRecord]:
    """Batch lookup of departments where `field` is one of `values`."""
    if field not in DEPARTMENT_FIELDS:
        raise ValueError(f"Unsupported department lookup field: {field}")
    if not values:
        return []
    rows = conn.execute(
        f"SELECT id, code, name FROM departments WHERE {field} IN ({_placeholders(len(values))})",
        list(values),
    ).fetchall()
    return [DepartmentRecord(row["id"], row["code"], row["name"]) for row in rows]


def find_units(conn: sqlite3.Connection, field: str, values: list[str]) -> list[UnitRecord]:
    """Batch lookup of department units where `field` is one of `values`."""
    if field not in UNIT_FIELDS:
        raise ValueError(f"Unsupported unit lookup field: {field}")
    if not values:
        return []
    rows = conn.execute(
        f"SELECT id, name, department_id FROM department_units WHERE {field} IN ({_placeholders(len(values))})",
        list(values),
    ).fetchall()
    return [UnitRecord(row["id"], row["name"], row["department_id"]) for row in rows]


def find_units_by_department_and_name(
    conn: sqlite3.Connection, pairs: list[tuple[str, str]]
) -> list[UnitRecord]:
    """Units matching any of the exact (department_id, name) pairs."""
    if not pairs:
        return []
    conditions = " OR ".join("(department_id = ? AND name = ?)" for _ in pairs)
    params = [value for pair in pairs for value in pair]
    rows = conn.execute(
        f"SELECT id, name, department_id FROM department_units WHERE {conditions}",
        params,
    ).fetchall()
    return [UnitRecord(row["id"], row["name"], row["department_id"]) for row in rows]


# =============================================================================
# EVENTS
# =============================================================================


def _replace_relations(
    conn: sqlite3.Connection, table: str, column: str, event_id: str, ids: list[str]
) -> None:
    conn.execute(f"DELETE FROM {table} WHERE event_id = ?", (event_id,))
    conn.executemany(
        f"INSERT INTO {table} (event_id, {column}, position) VALUES (?, ?, ?)",
        [(event_id, related_id, position) for position, related_id in enumerate(ids)],
    )


def insert_event(
    conn: sqlite3.Connection, event_id: str, event: NewEvent, now: datetime
) -> None:
    """Insert an event and its relation rows in one transaction."""
    timestamp = to_db_timestamp(now)
    with conn:
        conn.execute(
            """
            INSERT INTO events (
                id, title, description, tags, link, start_date_time,
                end_date_time, end_time, is_all_day, is_global,
                created_by_id, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event_id,
                event.title,
                event.description,
                json.dumps(event.tags),
                event.link,
                to_db_timestamp(event.start_date_time),
                to_db_timestamp(event.end_date_time),
                event.end_time,
                int(event.is_all_day),
                int(event.is_global),
                event.created_by_id,
                timestamp,
                timestamp,
            ),
        )
        _replace_relations(conn, "event_users", "user_id", event_id, event.user_ids)
        _replace_relations(conn, "event_departments", "department_id", event_id, event.department_ids)
        _replace_relations(conn, "event_units", "unit_id", event_id, event.unit_ids)


EVENT_COLUMNS = {
    "title",
    "description",
    "tags",
    "link",
    "start_date_time",
    "end_date_time",
    "end_time",
    "is_all_day",
    "is_global",
}


def update_event(
    conn: sqlite3.Connection,
    event_id: str,
    changes: dict,
    now: datetime,
    user_ids: list[str] | None = None,
    department_ids: list[str] | None = None,
    unit_ids: list[str] | None = None,
) -> None:
    """
    Apply column changes and, where given, replace relation lists.

    `changes` maps EVENT_COLUMNS names to Python values; datetimes, tags and
    booleans are converted here.
    """
    unknown = set(changes) - EVENT_COLUMNS
    if unknown:
        raise ValueError(f"Unsupported event columns: {', '.join(sorted(unknown))}")

    values = {}
    for column, value in changes.items():
        if isinstance(value, datetime):
            value = to_db_timestamp(value)
        elif column == "tags":
            value = json.dumps(value)
        elif isinstance(value, bool):
            value = int(value)
        values[column] = value
    values["updated_at"] = to_db_timestamp(now)

    assignments = ", ".join(f"{column} = ?" for column in values)
    with conn:
        conn.execute(
            f"UPDATE events SET {assignments} WHERE id = ?",
            [*values.values(), event_id],
        )
        if user_ids is not None:
            _replace_relations(conn, "event_users", "user_id", event_id, user_ids)
        if department_ids is not None:
            _replace_relations(conn, "event_departments", "department_id", event_id, department_ids)
        if unit_ids is not None:
            _replace_relations(conn, "event_units", "unit_id", event_id, unit_ids)


def delete_event(conn: sqlite3.Connection, event_id: str) -> bool:
    """Delete an event (relations cascade). Returns False if nothing was deleted."""
    with conn:
        cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
    return cursor.rowcount > 0


def _event_from_row(row: sqlite3.Row) -> EventRecord:
    return EventRecord(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        tags=json.loads(row["tags"] or "[]"),
        link=row["link"],
        start_date_time=from_db_timestamp(row["start_date_time"]),
        end_date_time=from_db_timestamp(row["end_date_time"]),
        end_time=row["end_time"],
        is_all_day=bool(row["is_all_day"]),
        is_global=bool(row["is_global"]),
        created_by_id=row["created_by_id"],
        created_at=from_db_timestamp(row["created_at"]),
        updated_at=from_db_timestamp(row["updated_at"]),
    )


def _attach_relations(conn: sqlite3.Connection, events: list[EventRecord]) -> list[EventRecord]:
    """Load users, departments, units and creator for a batch of events."""
    if not events:
        return events
    by_id = {event.id: event for event in events}
    marks = _placeholders(len(by_id))
    event_ids = list(by_id)

    for row in conn.execute(
        f"""
        SELECT eu.event_id, u.id, u.email, u.full_name, u.role
        FROM event_users eu JOIN users u ON u.id = eu.user_id
        WHERE eu.event_id IN ({marks}) ORDER BY eu.position
        """,
        event_ids,
    ):
        by_id[row["event_id"]].users.append(
            UserRecord(row["id"], row["email"], row["full_name"], row["role"])
        )

    for row in conn.execute(
        f"""
        SELECT ed.event_id, d.id, d.code, d.name
        FROM event_departments ed JOIN departments d ON d.id = ed.department_id
        WHERE ed.event_id IN ({marks}) ORDER BY ed.position
        """,
        event_ids,
    ):
        by_id[row["event_id"]].departments.append(
            DepartmentRecord(row["id"], row["code"], row["name"])
        )

    for row in conn.execute(
        f"""
        SELECT eu.event_id, du.id, du.name, du.department_id
        FROM event_units eu JOIN department_units du ON du.id = eu.unit_id
        WHERE eu.event_id IN ({marks}) ORDER BY eu.position
        """,
        event_ids,
    ):
        by_id[row["event_id"]].units.append(
            UnitRecord(row["id"], row["name"], row["department_id"])
        )

    creator_ids = sorted({e.created_by_id for e in events if e.created_by_id})
    if creator_ids:
        creators = {user.id: user for user in find_users(conn, "id", creator_ids)}
        for event in events:
            event.created_by = creators.get(event.created_by_id)

    return events


def fetch_event(conn: sqlite3.Connection, event_id: str) -> EventRecord | None:
    row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
    if row is None:
        return None
    return _attach_relations(conn, [_event_from_row(row)])[0]


def fetch_events(
    conn: sqlite3.Connection,
    q: str | None = None,
    tag: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[EventRecord]:
    """
    List events ordered by start.

    `q` matches title or description case-insensitively, `tag` must be one of
    the event's tags, and `start`/`end` select events overlapping the window.
    """
    clauses = []
    params: list = []
    if q:
        clauses.append("(LOWER(title) LIKE ? OR LOWER(COALESCE(description, '')) LIKE ?)")
        pattern = f"%{q.lower()}%"
        params.extend([pattern, pattern])
    if tag:
        clauses.append("EXISTS (SELECT 1 FROM json_each(events.tags) WHERE json_each.value = ?)")
        params.append(tag)
    if start:
        clauses.append("end_date_time >= ?")
        params.append(to_db_timestamp(start))
    if end:
        clauses.append("start_date_time <= ?")
        params.append(to_db_timestamp(end))

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"SELECT * FROM events {where} ORDER BY start_date_time ASC", params
    ).fetchall()
    return _attach_relations(conn, [_event_from_row(row) for row in rows])


# =============================================================================
# AUDIT
# =============================================================================


def insert_audit_log(conn: sqlite3.Connection, entry: AuditEntry) -> int:
    """Insert an audit log row and return its id."""
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO audit_logs (
                user_id, user_snapshot, action_type, entity_type, entity_id,
                description, is_successful, previous_data, new_data,
                ip_address, user_agent
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.user_id,
                json.dumps(entry.user_snapshot),
                entry.action_type,
                entry.entity_type,
                entry.entity_id,
                entry.description,
                int(entry.is_successful),
                json.dumps(entry.previous_data, default=str) if entry.previous_data is not None else None,
                json.dumps(entry.new_data, default=str) if entry.new_data is not None else None,
                entry.ip_address,
                entry.user_agent,
            ),
        )
    return cursor.lastrowid
