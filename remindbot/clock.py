"""Clock abstraction: current time and interruptible waits."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """What the scheduler needs from time."""

    def now(self) -> datetime:
        """Return the current instant as an aware datetime."""
        ...

    async def sleep_until(self, instant: datetime) -> None:
        """Suspend until *instant* has passed. Must be cancellable."""
        ...


class SystemClock:
    """Wall clock backed by ``datetime.now`` and ``asyncio.sleep``.

    Long waits are split into chunks of at most *max_sleep* seconds and the
    remaining time is recomputed from the wall clock after each chunk, so a
    suspended host or a clock adjustment does not push fires late.
    """

    def __init__(self, max_sleep: float = 60.0) -> None:
        self._max_sleep = max_sleep

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep_until(self, instant: datetime) -> None:
        while True:
            remaining = (instant - self.now()).total_seconds()
            if remaining <= 0:
                return
            await asyncio.sleep(min(remaining, self._max_sleep))
