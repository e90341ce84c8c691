"""
Event end derivation and display end-time formatting.

Every instant is compared in UTC. Calendar-day questions ("same day?", "what
is 10:30 on the start's date?") are answered in one explicit zone, by default
EVENTS_TIMEZONE, never the process's ambient local zone.
"""

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from core.config import ALL_DAY_END_TIME, EVENTS_TIMEZONE, MAX_EVENT_DURATION
from core.exceptions import (
    CrossesDayBoundary,
    DurationTooLong,
    EndBeforeStart,
    EndTimeRequired,
    InvalidDate,
)


def event_zone() -> tzinfo:
    if EVENTS_TIMEZONE.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(EVENTS_TIMEZONE)


def parse_instant(value: datetime | str | None, tz: tzinfo, label: str = "start") -> datetime:
    """
    Parse an ISO 8601 string (or pass through a datetime) as an aware instant.

    Naive values are read as wall-clock time in `tz`.

    Raises:
        InvalidDate: if the value is missing or does not parse
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidDate(f"Invalid {label} date")
    else:
        raise InvalidDate(f"Invalid {label} date")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def parse_end_time(value: str) -> tuple[int, int]:
    """Split 'HH:mm' into (hours, minutes)."""
    try:
        hours_str, minutes_str = value.split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except ValueError:
        raise InvalidDate("End time must be in HH:mm format")
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise InvalidDate("End time must be in HH:mm format")
    return hours, minutes


def same_calendar_day(first: datetime, second: datetime, tz: tzinfo) -> bool:
    return first.astimezone(tz).date() == second.astimezone(tz).date()


def derive_end(
    start: datetime | str,
    end_time: str | None = None,
    explicit_end: datetime | str | None = None,
    is_all_day: bool = False,
    tz: tzinfo | None = None,
) -> datetime:
    """
    Compute the canonical end instant of an event.

    Precedence: all-day flag, then an 'HH:mm' end time on the start's date,
    then an explicit end instant. Returns a UTC datetime.

    Raises:
        InvalidDate: start or explicit end does not parse, or the end time
            does not exist on the start's date
        EndBeforeStart: end is not after start
        CrossesDayBoundary: end lands on another calendar day
        DurationTooLong: end is more than 24 hours after start
        EndTimeRequired: no end information for a timed event
    """
    tz = tz or event_zone()
    start_at = parse_instant(start, tz, "start").astimezone(timezone.utc)

    if is_all_day:
        return start_at + MAX_EVENT_DURATION

    if end_time:
        hours, minutes = parse_end_time(end_time)
        local_start = start_at.astimezone(tz)
        local_end = local_start.replace(hour=hours, minute=minutes, second=0, microsecond=0)
        end_at = local_end.astimezone(timezone.utc)
        landed = end_at.astimezone(tz)
        if (landed.hour, landed.minute) != (hours, minutes):
            # Skipped by a DST transition.
            raise InvalidDate("End time does not exist on the start's date")
        if end_at <= start_at:
            # Earlier wall-clock time than the start: next day.
            if (hours, minutes) < (local_start.hour, local_start.minute):
                raise CrossesDayBoundary("End time must be on the same day as start time")
            raise EndBeforeStart("End time must be after start time")
        if not same_calendar_day(start_at, end_at, tz):
            raise CrossesDayBoundary("End time must be on the same day as start time")
        if end_at - start_at > MAX_EVENT_DURATION:
            raise DurationTooLong("Event duration cannot exceed 24 hours")
        return end_at

    if explicit_end is not None:
        end_at = parse_instant(explicit_end, tz, "end").astimezone(timezone.utc)
        if end_at <= start_at:
            raise EndBeforeStart("End must be after start")
        if not same_calendar_day(start_at, end_at, tz):
            raise CrossesDayBoundary("End must be on the same calendar day as start")
        if end_at - start_at > MAX_EVENT_DURATION:
            raise DurationTooLong("Event duration cannot exceed 24 hours")
        return end_at

    raise EndTimeRequired("End time is required unless event is all-day")


def format_display_end_time(
    start: datetime,
    end: datetime,
    is_all_day: bool,
    tz: tzinfo | None = None,
) -> str | None:
    """
    Wall-clock 'HH:mm' of `end`, or None when it is on another day than `start`.

    All-day events always display ALL_DAY_END_TIME.
    """
    if is_all_day:
        return ALL_DAY_END_TIME
    tz = tz or event_zone()
    if not same_calendar_day(start, end, tz):
        return None
    return end.astimezone(tz).strftime("%H:%M")
