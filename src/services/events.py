"""
Event create/read/update/delete.

Creation and updates derive the end instant, resolve every related-record
reference, and only then write. Nothing is persisted when derivation or
resolution fails.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Iterable

from core.exceptions import (
    AllDayConversionRequiresEnd,
    EndTimeUndetermined,
    EventNotFound,
    UnresolvedReferences,
)
from models.events import EventRecord, NewEvent
from services.audit import Actor, build_entry, record_audit
from services.resolvers import resolve_departments, resolve_units, resolve_users
from services.timing import derive_end, event_zone, format_display_end_time, parse_instant

logger = logging.getLogger(__name__)


@dataclass
class Participants:
    user_ids: list[str] = field(default_factory=list)
    department_ids: list[str] = field(default_factory=list)
    unit_ids: list[str] = field(default_factory=list)


async def resolve_participants(
    store,
    user_inputs: Iterable[str] | None,
    department_inputs: Iterable[str] | None,
    unit_inputs: Iterable[str] | None,
) -> Participants:
    """
    Resolve users and departments concurrently, then units with the department
    code map.

    Raises:
        UnresolvedReferences: if any input in any category matched nothing
    """
    users, departments = await asyncio.gather(
        resolve_users(store, user_inputs),
        resolve_departments(store, department_inputs),
    )
    units = await resolve_units(store, unit_inputs, departments.departments_by_code)

    if users.missing_inputs or departments.missing_inputs or units.missing_inputs:
        raise UnresolvedReferences(
            missing_users=users.missing_inputs,
            missing_departments=departments.missing_inputs,
            missing_units=units.missing_inputs,
        )

    return Participants(
        user_ids=users.resolved_ids,
        department_ids=departments.resolved_ids,
        unit_ids=units.resolved_ids,
    )


def display_end_time(event: EventRecord, tz: tzinfo | None = None) -> str | None:
    """End time shown to clients: None for all-day, else stored or derived HH:mm."""
    if event.is_all_day:
        return None
    return event.end_time or format_display_end_time(
        event.start_date_time, event.end_date_time, False, tz
    )


def _snapshot(event: EventRecord) -> dict:
    return asdict(event)


async def create_event(
    store,
    *,
    title: str,
    start_date_time: datetime | str,
    end_date_time: datetime | str | None = None,
    end_time: str | None = None,
    is_all_day: bool | None = None,
    is_global: bool | None = None,
    description: str | None = None,
    tags: list[str] | None = None,
    link: str | None = None,
    user_inputs: Iterable[str] | None = None,
    department_inputs: Iterable[str] | None = None,
    unit_inputs: Iterable[str] | None = None,
    actor: Actor | None = None,
    tz: tzinfo | None = None,
) -> EventRecord:
    """
    Create an event with its users, departments and units.

    Raises:
        EventTimeError: the end could not be derived
        UnresolvedReferences: some related-record input matched nothing
        PersistenceFailure: the store write failed
    """
    tz = tz or event_zone()
    actor = actor or Actor()
    all_day = bool(is_all_day)

    start = parse_instant(start_date_time, tz, "start").astimezone(timezone.utc)
    end = derive_end(
        start,
        end_time=end_time,
        explicit_end=end_date_time,
        is_all_day=all_day,
        tz=tz,
    )

    normalized_end_time = None
    if not all_day:
        normalized_end_time = end_time or format_display_end_time(start, end, False, tz)
        if not normalized_end_time:
            raise EndTimeUndetermined("End time could not be determined")

    participants = await resolve_participants(store, user_inputs, department_inputs, unit_inputs)

    created = await store.create_event(
        NewEvent(
            title=title,
            description=description,
            tags=list(tags or []),
            link=link or None,
            start_date_time=start,
            end_date_time=end,
            end_time=normalized_end_time,
            is_all_day=all_day,
            is_global=bool(is_global),
            created_by_id=actor.id,
            user_ids=participants.user_ids,
            department_ids=participants.department_ids,
            unit_ids=participants.unit_ids,
        )
    )
    logger.info("Created event %s (%s)", created.id, created.title)

    description_text = (
        f"Created {'global ' if created.is_global else ''}"
        f"{'all-day ' if created.is_all_day else ''}event \"{created.title}\" "
        f"with {len(created.users)} users, {len(created.departments)} departments, "
        f"{len(created.units)} units"
    )
    await record_audit(
        store,
        build_entry(actor, "CREATE", created.id, description_text, new_data=_snapshot(created)),
    )
    return created


async def get_event(store, event_id: str) -> EventRecord:
    event = await store.get_event(event_id)
    if event is None:
        raise EventNotFound(event_id)
    return event


async def list_events(
    store,
    q: str | None = None,
    tag: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[EventRecord]:
    tz = event_zone()
    if start is not None:
        start = parse_instant(start, tz, "start")
    if end is not None:
        end = parse_instant(end, tz, "end")
    return await store.list_events(q=q, tag=tag, start=start, end=end)


def _derive_updated_end(
    existing: EventRecord, start: datetime, data: dict, tz: tzinfo
) -> tuple[datetime, str | None]:
    new_end_time = data.get("end_time")
    new_end = data.get("end_date_time")

    if new_end_time is not None:
        end = derive_end(start, end_time=new_end_time, tz=tz)
    elif new_end is not None:
        end = derive_end(start, explicit_end=new_end, tz=tz)
    elif existing.end_time and not existing.is_all_day:
        end = derive_end(start, end_time=existing.end_time, tz=tz)
    else:
        end = derive_end(start, explicit_end=existing.end_date_time, tz=tz)

    end_time = new_end_time or format_display_end_time(start, end, False, tz)
    if not end_time:
        raise EndTimeUndetermined("End time could not be determined")
    return end, end_time


async def update_event(
    store,
    event_id: str,
    data: dict,
    actor: Actor | None = None,
    tz: tzinfo | None = None,
) -> EventRecord:
    """
    Apply a partial update. `data` holds only the fields the client sent.

    Relation lists that are present are resolved like on create and replace
    the stored ones; absent lists are left untouched.
    """
    tz = tz or event_zone()
    actor = actor or Actor()
    existing = await get_event(store, event_id)

    if data.get("start_date_time") is not None:
        start = parse_instant(data["start_date_time"], tz, "start").astimezone(timezone.utc)
    else:
        start = existing.start_date_time

    is_all_day = data.get("is_all_day")
    target_all_day = existing.is_all_day if is_all_day is None else is_all_day

    if (
        not target_all_day
        and existing.is_all_day
        and data.get("end_time") is None
        and data.get("end_date_time") is None
    ):
        raise AllDayConversionRequiresEnd(
            "End time is required when converting from all-day to timed event"
        )

    if target_all_day:
        end, end_time = derive_end(start, is_all_day=True, tz=tz), None
    else:
        end, end_time = _derive_updated_end(existing, start, data, tz)

    user_inputs = data.get("user_ids")
    department_inputs = data.get("department_ids")
    unit_inputs = data.get("unit_ids")
    participants = await resolve_participants(store, user_inputs, department_inputs, unit_inputs)

    changes = {
        "start_date_time": start,
        "end_date_time": end,
        "end_time": end_time,
        "is_all_day": target_all_day,
    }
    for column in ("title", "description", "tags", "is_global"):
        if data.get(column) is not None:
            changes[column] = data[column]
    if "link" in data:
        changes["link"] = data["link"] or None

    updated = await store.update_event(
        event_id,
        changes,
        user_ids=participants.user_ids if user_inputs is not None else None,
        department_ids=participants.department_ids if department_inputs is not None else None,
        unit_ids=participants.unit_ids if unit_inputs is not None else None,
    )
    if updated is None:
        raise EventNotFound(event_id)
    logger.info("Updated event %s", event_id)

    await record_audit(
        store,
        build_entry(
            actor,
            "UPDATE",
            updated.id,
            f'Updated event "{updated.title}"',
            previous_data=_snapshot(existing),
            new_data=_snapshot(updated),
        ),
    )
    return updated


async def delete_event(store, event_id: str, actor: Actor | None = None) -> None:
    actor = actor or Actor()
    existing = await get_event(store, event_id)
    if not await store.delete_event(event_id):
        raise EventNotFound(event_id)
    logger.info("Deleted event %s", event_id)

    await record_audit(
        store,
        build_entry(
            actor,
            "DELETE",
            event_id,
            f'Deleted event "{existing.title}"',
            previous_data=_snapshot(existing),
        ),
    )
