from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from core.exceptions import (
    CrossesDayBoundary,
    DurationTooLong,
    EndBeforeStart,
    EndTimeRequired,
    InvalidDate,
)
from services.timing import derive_end, format_display_end_time, parse_instant

UTC = timezone.utc
EST = timezone(timedelta(hours=-5))
NEW_YORK = ZoneInfo("America/New_York")


def at(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=UTC)


@pytest.mark.parametrize(
    "start",
    ["2024-01-01T00:00:00", "2024-02-28T13:45:10", "2024-12-31T23:59:00"],
)
def test_all_day_ends_exactly_24_hours_later(start):
    begin = at(start)
    end = derive_end(begin, is_all_day=True, tz=UTC)

    assert end == begin + timedelta(hours=24)
    assert format_display_end_time(begin, end, True, tz=UTC) == "23:59"


def test_all_day_ignores_supplied_end_information():
    begin = at("2024-03-01T09:00:00")
    end = derive_end(
        begin,
        end_time="08:00",
        explicit_end=at("2024-03-01T08:00:00"),
        is_all_day=True,
        tz=UTC,
    )
    assert end == at("2024-03-02T09:00:00")


@pytest.mark.parametrize("end_time", ["09:01", "10:30", "17:00", "23:59"])
def test_end_time_on_same_day_round_trips(end_time):
    begin = at("2024-03-01T09:00:00")
    end = derive_end(begin, end_time=end_time, tz=UTC)

    assert end.date() == begin.date()
    assert format_display_end_time(begin, end, False, tz=UTC) == end_time


def test_end_time_zeroes_seconds():
    begin = at("2024-03-01T09:00:42.500000")
    end = derive_end(begin, end_time="10:00", tz=UTC)
    assert end == at("2024-03-01T10:00:00")


def test_end_time_before_start_time_of_day_crosses_day():
    with pytest.raises(CrossesDayBoundary):
        derive_end(at("2024-01-01T23:30:00"), end_time="00:15", tz=UTC)


def test_end_time_equal_to_start_is_rejected():
    with pytest.raises(EndBeforeStart) as exc:
        derive_end(at("2024-03-01T09:00:00"), end_time="09:00", tz=UTC)
    assert str(exc.value) == "End time must be after start time"


def test_end_time_within_start_minute_is_rejected():
    with pytest.raises(EndBeforeStart):
        derive_end(at("2024-03-01T09:00:30"), end_time="09:00", tz=UTC)


def test_end_time_uses_event_zone_for_calendar_day():
    # 23:30 UTC is 18:30 in UTC-5; 20:00 there is 01:00 UTC the next day.
    begin = at("2024-03-01T23:30:00")
    end = derive_end(begin, end_time="20:00", tz=EST)

    assert end == at("2024-03-02T01:00:00")
    assert format_display_end_time(begin, end, False, tz=EST) == "20:00"


def test_explicit_end_same_day():
    begin = at("2024-03-01T09:00:00")
    end = derive_end(begin, explicit_end="2024-03-01T17:15:00Z", tz=UTC)
    assert end == at("2024-03-01T17:15:00")


def test_explicit_end_next_day_crosses_boundary():
    with pytest.raises(CrossesDayBoundary) as exc:
        derive_end(
            at("2024-03-01T22:00:00"), explicit_end="2024-03-02T01:00:00Z", tz=UTC
        )
    assert str(exc.value) == "End must be on the same calendar day as start"


def test_explicit_end_day_check_uses_same_zone_as_end_time():
    # Same local day in UTC-5 (17:00 -> 20:00) although UTC days differ.
    end = derive_end(
        at("2024-03-01T22:00:00"), explicit_end="2024-03-02T01:00:00Z", tz=EST
    )
    assert end == at("2024-03-02T01:00:00")


def test_explicit_end_before_start():
    with pytest.raises(EndBeforeStart):
        derive_end(at("2024-03-01T09:00:00"), explicit_end=at("2024-03-01T08:00:00"), tz=UTC)


def test_end_time_takes_precedence_over_explicit_end():
    end = derive_end(
        at("2024-03-01T09:00:00"),
        end_time="11:00",
        explicit_end="2024-03-01T15:00:00Z",
        tz=UTC,
    )
    assert end == at("2024-03-01T11:00:00")


def test_missing_end_information_requires_end_time():
    with pytest.raises(EndTimeRequired):
        derive_end(at("2024-03-01T09:00:00"), tz=UTC)


@pytest.mark.parametrize("value", ["not-a-date", "", None, "2024-13-45T99:00:00Z"])
def test_invalid_start(value):
    with pytest.raises(InvalidDate) as exc:
        derive_end(value, is_all_day=True, tz=UTC)
    assert str(exc.value) == "Invalid start date"


def test_invalid_explicit_end():
    with pytest.raises(InvalidDate) as exc:
        derive_end(at("2024-03-01T09:00:00"), explicit_end="tomorrow", tz=UTC)
    assert str(exc.value) == "Invalid end date"


def test_naive_start_is_read_in_event_zone():
    parsed = parse_instant("2024-03-01T09:00:00", EST)
    assert parsed.astimezone(UTC) == at("2024-03-01T14:00:00")


def test_display_end_time_none_across_days():
    assert (
        format_display_end_time(
            at("2024-03-01T09:00:00"), at("2024-03-02T09:00:00"), False, tz=UTC
        )
        is None
    )


def test_end_time_skipped_by_spring_forward_is_rejected():
    # 02:00-03:00 does not exist in New York on 2024-03-10.
    with pytest.raises(InvalidDate) as exc:
        derive_end("2024-03-10T01:00:00-05:00", end_time="02:30", tz=NEW_YORK)
    assert str(exc.value) == "End time does not exist on the start's date"


def test_end_time_after_spring_forward_round_trips():
    begin = parse_instant("2024-03-10T01:00:00-05:00", NEW_YORK)
    end = derive_end(begin, end_time="03:30", tz=NEW_YORK)

    assert end == at("2024-03-10T07:30:00")
    assert format_display_end_time(begin, end, False, tz=NEW_YORK) == "03:30"


def test_explicit_end_on_25_hour_day_is_too_long():
    with pytest.raises(DurationTooLong):
        derive_end(
            "2024-11-03T00:00:00-04:00",
            explicit_end="2024-11-03T23:59:00-05:00",
            tz=NEW_YORK,
        )


def test_end_time_on_25_hour_day_is_too_long():
    with pytest.raises(DurationTooLong) as exc:
        derive_end("2024-11-03T00:00:00-04:00", end_time="23:59", tz=NEW_YORK)
    assert str(exc.value) == "Event duration cannot exceed 24 hours"
