"""Error taxonomy for reminder scheduling.

Validation and persistence errors are raised to the immediate caller.
Scheduling skips and notification errors are discovered inside the engine
and are only logged.
"""


class ReminderError(Exception):
    """Base class for all reminder errors."""


class ValidationError(ReminderError):
    """Bad hour, minute, timezone or message. Safe to show to the user."""


class InvalidTimezone(ValidationError):
    """A timezone name that does not resolve to an IANA zone."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown timezone: {name!r}")
        self.name = name


class PersistenceError(ReminderError):
    """The durable store was unreachable or rejected the operation."""


class SchedulingSkip(ReminderError):
    """A stored reminder could not be armed and was skipped."""

    def __init__(self, reminder_id: int, reason: str) -> None:
        super().__init__(f"Reminder {reminder_id} skipped: {reason}")
        self.reminder_id = reminder_id
        self.reason = reason


class NotificationError(ReminderError):
    """Delivering a reminder to its destination failed."""
