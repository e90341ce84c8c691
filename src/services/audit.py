"""
Best-effort audit logging.

The primary write has already succeeded when these run; a failure here is
logged and swallowed, never raised.
"""

import logging
from dataclasses import dataclass

from core.config import (
    AUDIT_SYSTEM_USER,
    AUDIT_UNKNOWN_EMAIL,
    AUDIT_UNKNOWN_NAME,
    AUDIT_UNKNOWN_ROLE,
)
from models.events import AuditEntry

logger = logging.getLogger(__name__)


@dataclass
class Actor:
    """Who is making the request, as described by request headers."""

    id: str | None = None
    full_name: str | None = None
    email: str | None = None
    role: str | None = None
    department_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def audit_user_id(self) -> str:
        return self.id or AUDIT_SYSTEM_USER

    def snapshot(self) -> dict:
        snapshot = {
            "id": self.id or "",
            "fullName": self.full_name or AUDIT_UNKNOWN_NAME,
            "email": self.email or AUDIT_UNKNOWN_EMAIL,
            "role": self.role or AUDIT_UNKNOWN_ROLE,
        }
        if self.department_id:
            snapshot["departmentId"] = self.department_id
        return snapshot


def build_entry(
    actor: Actor,
    action_type: str,
    entity_id: str | None,
    description: str,
    previous_data: dict | None = None,
    new_data: dict | None = None,
    entity_type: str = "Event",
) -> AuditEntry:
    return AuditEntry(
        user_id=actor.audit_user_id,
        user_snapshot=actor.snapshot(),
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        previous_data=previous_data,
        new_data=new_data,
        ip_address=actor.ip_address,
        user_agent=actor.user_agent,
    )


async def record_audit(store, entry: AuditEntry) -> int | None:
    """Write an audit entry; returns its id, or None if the write failed."""
    try:
        return await store.record_audit(entry)
    except Exception:
        logger.warning(
            "Audit log failed (%s %s %s)",
            entry.action_type.lower(),
            entry.entity_type,
            entry.entity_id,
            exc_info=True,
        )
        return None
