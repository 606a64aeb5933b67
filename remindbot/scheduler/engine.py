"""SchedulerEngine: one self-rearming asyncio task per reminder."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from remindbot.clock import SystemClock
from remindbot.config import settings
from remindbot.scheduler.recurrence import next_occurrence, resolve_timezone
from remindbot.scheduler.registry import JobHandle, JobState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime
    from zoneinfo import ZoneInfo

    from remindbot.clock import Clock
    from remindbot.scheduler.models import ReminderRecord

    FireCallback = Callable[[int], Awaitable[None]]

logger = logging.getLogger(__name__)


class SchedulerEngine:
    """Drives recurring daily timers.

    Each call to :meth:`start_recurring` spawns an independent task that
    computes the next local occurrence, sleeps until it, awaits the fire
    callback and repeats until its handle is cancelled.  Fires for
    different reminders are never serialized against each other.

    Args:
        clock: Time source (default: wall clock).
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock(max_sleep=settings.scheduler_max_sleep_seconds)

    @property
    def clock(self) -> Clock:
        return self._clock

    def start_recurring(self, record: ReminderRecord, on_fire: FireCallback) -> JobHandle:
        """Arm a daily timer for *record* and return its handle.

        Raises InvalidTimezone if the record's timezone does not resolve.
        Must be called from within a running event loop.
        """
        tz = resolve_timezone(record.timezone)
        handle = JobHandle(record)
        task = asyncio.create_task(
            self._run(handle, tz, on_fire), name=f"reminder-{record.id}"
        )
        handle.attach(task)
        logger.info(
            "Armed reminder %s for %s %s",
            record.id,
            record.time_label,
            record.timezone,
        )
        return handle

    def next_fire_time(self, record: ReminderRecord) -> datetime:
        """The instant the record would fire next from the clock's now."""
        return next_occurrence(self._clock.now(), record.hour, record.minute, record.timezone)

    async def _run(self, handle: JobHandle, tz: ZoneInfo, on_fire: FireCallback) -> None:
        record = handle.record
        try:
            while not handle.cancelled:
                fire_at = next_occurrence(self._clock.now(), record.hour, record.minute, tz)
                logger.debug("Reminder %s next fires at %s", record.id, fire_at.isoformat())
                await self._clock.sleep_until(fire_at)
                if handle.cancelled:
                    break

                handle.state = JobState.FIRING
                try:
                    await on_fire(record.id)
                except Exception:
                    logger.exception("Fire callback failed for reminder %s", record.id)
                if handle.cancelled:
                    break
                handle.state = JobState.SCHEDULED
        except asyncio.CancelledError:
            logger.debug("Timer task for reminder %s cancelled", record.id)
            raise
        except Exception:
            logger.exception("Timer loop crashed for reminder %s", record.id)
        finally:
            handle.state = JobState.CANCELLED
