"""FastAPI dependencies for the store and the requesting actor."""

from functools import lru_cache

from fastapi import Request

from services.audit import Actor
from services.store import EventStore


@lru_cache
def get_event_store() -> EventStore:
    """Shared store for the configured database (overridden in tests)."""
    return EventStore()


def get_client_ip(request: Request) -> str | None:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


async def get_actor(request: Request) -> Actor:
    """Describe the caller from the x-user-* headers set by the dashboard."""
    headers = request.headers
    return Actor(
        id=(headers.get("x-user-id") or "").strip() or None,
        full_name=headers.get("x-user-fullname"),
        email=headers.get("x-user-email"),
        role=headers.get("x-user-role"),
        department_id=headers.get("x-user-department-id"),
        ip_address=get_client_ip(request),
        user_agent=headers.get("user-agent"),
    )
