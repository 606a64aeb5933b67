"""ReminderService: keeps live jobs in step with the durable active flag."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from remindbot.errors import InvalidTimezone, SchedulingSkip, ValidationError
from remindbot.scheduler.recurrence import resolve_timezone

if TYPE_CHECKING:
    from remindbot.scheduler.engine import SchedulerEngine
    from remindbot.scheduler.executor import ReminderExecutor
    from remindbot.scheduler.models import ReminderRecord
    from remindbot.scheduler.registry import JobRegistry
    from remindbot.scheduler.store import ReminderStore

logger = logging.getLogger(__name__)


def validate_reminder(hour: int, minute: int, timezone: str, text: str | None = None) -> None:
    """Raise ValidationError describing the first problem with the input."""
    if not isinstance(hour, int) or not 0 <= hour <= 23:
        msg = f"Hour must be between 0 and 23 (got {hour})."
        raise ValidationError(msg)
    if not isinstance(minute, int) or not 0 <= minute <= 59:
        msg = f"Minute must be between 0 and 59 (got {minute})."
        raise ValidationError(msg)
    resolve_timezone(timezone)
    if text is not None and not text.strip():
        msg = "Reminder message must not be empty."
        raise ValidationError(msg)


class ReminderService:
    """Create, stop and restore reminders.

    Every operation touches the store first and the live registry second,
    so a failed write never leaves a timer behind.

    Args:
        store: Durable reminder store.
        engine: SchedulerEngine that arms timers.
        registry: JobRegistry that owns the live timers.
        executor: ReminderExecutor whose ``fire`` is the timer callback.
    """

    def __init__(
        self,
        store: ReminderStore,
        engine: SchedulerEngine,
        registry: JobRegistry,
        executor: ReminderExecutor,
    ) -> None:
        self._store = store
        self._engine = engine
        self._registry = registry
        self._executor = executor
        # Held across each store write and the registry update that follows it,
        # so the registry reflects whichever write reached the store last.
        self._lock = asyncio.Lock()

    async def create(
        self,
        owner: str,
        destination: str,
        text: str,
        hour: int,
        minute: int,
        timezone: str,
    ) -> ReminderRecord:
        """Persist a daily reminder and arm its timer.

        Raises ValidationError (nothing written) or PersistenceError
        (nothing scheduled).
        """
        validate_reminder(hour, minute, timezone, text)
        async with self._lock:
            record = await self._store.upsert_reminder(
                owner, destination, text.strip(), hour, minute, timezone
            )
            self._arm(record)
        return record

    async def stop(self, reminder_id: int) -> bool:
        """Deactivate a reminder and cancel its local timer, if any.

        Returns False when no such reminder exists.  Raises PersistenceError,
        in which case the registry is left untouched.
        """
        async with self._lock:
            found = await self._store.set_active(reminder_id, False)
            self._registry.cancel(reminder_id)
        if not found:
            logger.info("Stop requested for unknown reminder %s", reminder_id)
        return found

    async def restore(self) -> int:
        """Arm a timer for every active reminder in the store.

        Records that cannot be scheduled are logged and skipped.  Missed
        occurrences are not replayed.  Returns the number of armed timers.
        """
        async with self._lock:
            records = await self._store.list_active()
            armed = 0
            for record in records:
                try:
                    self._arm_restored(record)
                except SchedulingSkip as exc:
                    logger.warning("%s", exc)
                    continue
                except Exception:
                    logger.exception("Failed to restore reminder %s", record.id)
                    continue
                armed += 1
        logger.info("Restored %d of %d active reminder(s)", armed, len(records))
        return armed

    def _arm_restored(self, record: ReminderRecord) -> None:
        try:
            validate_reminder(record.hour, record.minute, record.timezone, record.text)
        except InvalidTimezone as exc:
            raise SchedulingSkip(record.id, f"unresolvable timezone {exc.name!r}") from exc
        except ValidationError as exc:
            raise SchedulingSkip(record.id, str(exc)) from exc
        self._arm(record)

    def _arm(self, record: ReminderRecord) -> None:
        handle = self._engine.start_recurring(record, self._executor.fire)
        self._registry.register(record.id, handle)
        # A timer loop that dies on its own must not keep counting as live.
        handle.task.add_done_callback(lambda _task: self._registry.discard(handle))

    async def shutdown(self) -> None:
        """Cancel every live timer (process shutdown)."""
        await self._registry.shutdown()
