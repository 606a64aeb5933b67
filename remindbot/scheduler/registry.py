"""JobRegistry: owns the live, cancellable timer for each reminder id."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from remindbot.scheduler.models import ReminderRecord

logger = logging.getLogger(__name__)


class JobState(StrEnum):
    SCHEDULED = "scheduled"
    FIRING = "firing"
    CANCELLED = "cancelled"


class JobHandle:
    """A live recurring timer for one reminder.

    ``cancel()`` is idempotent.  While the job is waiting the underlying task
    is cancelled immediately; while it is firing the callback is allowed to
    finish and the loop exits before starting another wait.
    """

    def __init__(self, record: ReminderRecord) -> None:
        self.record = record
        self.state = JobState.SCHEDULED
        self._task: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"<JobHandle id={self.id} state={self.state}>"

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def cancelled(self) -> bool:
        return self.state is JobState.CANCELLED

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def attach(self, task: asyncio.Task) -> None:
        """Bind the task that drives this handle (called by the engine)."""
        self._task = task
        if self.cancelled:
            task.cancel()

    def cancel(self) -> None:
        if self.cancelled:
            return
        was_waiting = self.state is JobState.SCHEDULED
        self.state = JobState.CANCELLED
        if was_waiting and self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("Cancelled job for reminder %s", self.id)

    async def wait_closed(self) -> None:
        """Wait for the driving task to finish after cancellation."""
        if self._task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._task


class JobRegistry:
    """Maps reminder id → JobHandle, with at most one live handle per id.

    Constructed once at startup and torn down with :meth:`shutdown`.
    """

    def __init__(self) -> None:
        self._jobs: dict[int, JobHandle] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, reminder_id: object) -> bool:
        with self._lock:
            return reminder_id in self._jobs

    def ids(self) -> list[int]:
        with self._lock:
            return sorted(self._jobs)

    def register(self, reminder_id: int, handle: JobHandle) -> None:
        """Store *handle*, cancelling any handle already held for the id."""
        with self._lock:
            previous = self._jobs.get(reminder_id)
            self._jobs[reminder_id] = handle
        if previous is not None and previous is not handle:
            previous.cancel()
            logger.info("Replaced live job for reminder %s", reminder_id)

    def cancel(self, reminder_id: int) -> bool:
        """Cancel and forget the handle for the id. Unknown ids are a no-op."""
        with self._lock:
            handle = self._jobs.pop(reminder_id, None)
        if handle is None:
            logger.debug("No live job for reminder %s", reminder_id)
            return False
        handle.cancel()
        return True

    def discard(self, handle: JobHandle) -> None:
        """Forget *handle* only if it is still the registered one for its id."""
        with self._lock:
            if self._jobs.get(handle.id) is handle:
                del self._jobs[handle.id]

    def lookup(self, reminder_id: int) -> JobHandle | None:
        with self._lock:
            return self._jobs.get(reminder_id)

    async def shutdown(self) -> None:
        """Cancel every live job and wait for their tasks to exit."""
        with self._lock:
            handles = list(self._jobs.values())
            self._jobs.clear()
        for handle in handles:
            handle.cancel()
        await asyncio.gather(*(h.wait_closed() for h in handles), return_exceptions=True)
        if handles:
            logger.info("Stopped %d live reminder job(s)", len(handles))
