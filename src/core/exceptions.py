"""
Error taxonomy for event scheduling and participant resolution.
"""


class EventTimeError(ValueError):
    """Base for start/end derivation failures. The message is user-facing."""


class InvalidDate(EventTimeError):
    """An input date does not parse to a valid instant."""


class EndBeforeStart(EventTimeError):
    """Derived or supplied end is not after the start."""


class CrossesDayBoundary(EventTimeError):
    """End falls on a different calendar day than the start."""


class DurationTooLong(EventTimeError):
    """End is more than 24 hours after the start."""


class EndTimeRequired(EventTimeError):
    """A timed event was given neither an end time nor an end instant."""


class EndTimeUndetermined(EventTimeError):
    """No display end time could be computed for a timed event."""


class AllDayConversionRequiresEnd(EventTimeError):
    """An all-day event is being made timed without any end information."""


class UnresolvedReferences(Exception):
    """One or more related-record inputs matched nothing in the store."""

    def __init__(
        self,
        missing_users: list[str],
        missing_departments: list[str],
        missing_units: list[str],
    ):
        self.missing_users = missing_users
        self.missing_departments = missing_departments
        self.missing_units = missing_units
        super().__init__("Unable to resolve related records")

    def as_details(self) -> dict[str, list[str]]:
        return {
            "missingUsers": self.missing_users,
            "missingDepartments": self.missing_departments,
            "missingUnits": self.missing_units,
        }


class EventNotFound(LookupError):
    """No event exists with the requested id."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event not found: {event_id}")


class PersistenceFailure(RuntimeError):
    """The underlying store failed. Never retried."""
