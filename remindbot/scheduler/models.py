"""ReminderRecord data model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

# Column order of the ``reminders`` table, shared with the store's SELECTs.
COLUMNS = (
    "id",
    "owner",
    "destination",
    "text",
    "hour",
    "minute",
    "timezone",
    "active",
    "created_at",
)


@dataclass(frozen=True)
class ReminderRecord:
    """A daily reminder as persisted in the store.

    Frozen so that a snapshot handed to the scheduler can never drift from
    what was read; fresh state always comes from re-reading the store.

    Attributes:
        id: Store-assigned identifier.
        owner: Who created the reminder (user id, opaque).
        destination: Where to deliver it (chat id, opaque).
        text: Message payload.
        hour: Local hour, 0-23.
        minute: Local minute, 0-59.
        timezone: IANA timezone name, e.g. ``"America/Toronto"``.
        active: Whether the reminder should fire. Authoritative in the store.
        created_at: ISO 8601 timestamp.
    """

    id: int
    owner: str
    destination: str
    text: str
    hour: int
    minute: int
    timezone: str
    active: bool = True
    created_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            object.__setattr__(self, "created_at", datetime.now(UTC).isoformat())

    @property
    def time_label(self) -> str:
        """``HH:MM`` as shown to users."""
        return f"{self.hour:02d}:{self.minute:02d}"

    @classmethod
    def from_row(cls, row: tuple) -> ReminderRecord:
        """Deserialize from a row in ``COLUMNS`` order.

        Raises TypeError or ValueError when a column is NULL or not numeric.
        """
        return cls(
            id=int(row[0]),
            owner=str(row[1]),
            destination=str(row[2]),
            text=row[3] or "",
            hour=int(row[4]),
            minute=int(row[5]),
            timezone=row[6] or "",
            active=bool(row[7]),
            created_at=row[8] or "",
        )
