"""Next-occurrence arithmetic for daily local-time reminders."""

from __future__ import annotations

import zoneinfo
from datetime import UTC, datetime, timedelta

from remindbot.errors import InvalidTimezone

# A local time can be missing on a date (DST gap) but never for long.
_MAX_DAYS_AHEAD = 366


def resolve_timezone(name: str) -> zoneinfo.ZoneInfo:
    """Return the ZoneInfo for an IANA name or raise InvalidTimezone."""
    if not name or not name.strip():
        raise InvalidTimezone(name)
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimezone(name) from exc


def _exists(candidate: datetime) -> bool:
    """True if the wall time survives a round-trip through UTC (not in a gap)."""
    round_trip = candidate.astimezone(UTC).astimezone(candidate.tzinfo)
    return (round_trip.hour, round_trip.minute) == (candidate.hour, candidate.minute)


def next_occurrence(
    now: datetime,
    hour: int,
    minute: int,
    timezone: str | zoneinfo.ZoneInfo,
) -> datetime:
    """Return the next instant after *now* that reads ``hour:minute:00`` in *timezone*.

    The result is strictly later than *now*: a reminder whose local time is
    exactly *now* fires on the following day.  Dates where the local time
    falls in a spring-forward gap are skipped.  On a fall-back date only the
    first of the two occurrences counts, so a reminder fires at most once
    per calendar day.

    Args:
        now: Aware datetime to search from.
        hour: Local hour, 0-23.
        minute: Local minute, 0-59.
        timezone: IANA name or ZoneInfo.

    Returns:
        The occurrence as an aware UTC datetime.

    Raises:
        InvalidTimezone: *timezone* is a name that does not resolve.
        ValueError: *now* is naive or hour/minute are out of range.
    """
    if now.tzinfo is None or now.utcoffset() is None:
        msg = "now must be timezone-aware"
        raise ValueError(msg)
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        msg = f"Invalid time of day: {hour}:{minute}"
        raise ValueError(msg)

    tz = timezone if isinstance(timezone, zoneinfo.ZoneInfo) else resolve_timezone(timezone)
    # Compare in UTC: aware datetimes sharing a tzinfo compare by wall time.
    now_utc = now.astimezone(UTC)
    start = now_utc.astimezone(tz).date()

    for offset in range(_MAX_DAYS_AHEAD):
        day = start + timedelta(days=offset)
        candidate = datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz, fold=0)
        if not _exists(candidate):
            continue
        instant = candidate.astimezone(UTC)
        if instant > now_utc:
            return instant

    msg = f"No occurrence of {hour:02d}:{minute:02d} in {tz.key} within a year"
    raise ValueError(msg)
