"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pytest

from remindbot.scheduler.store import ReminderStore


class FakeClock:
    """Deterministic clock for engine tests.

    With ``auto=True`` every wait completes at once and time jumps to the
    requested instant.  With ``auto=False`` waits block until cancelled,
    which models a timer sitting in its ``Scheduled`` state.
    """

    def __init__(self, now: datetime, *, auto: bool = True) -> None:
        self._now = now
        self.auto = auto
        self.waits: list[datetime] = []

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    async def sleep_until(self, instant: datetime) -> None:
        self.waits.append(instant)
        if not self.auto:
            await asyncio.Event().wait()
        self._now = max(self._now, instant)
        await asyncio.sleep(0)


@pytest.fixture
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("remindbot.config.settings.turso_database_url", "")


@pytest.fixture
def store(tmp_path: Path, _no_turso: None) -> ReminderStore:
    """Create a ReminderStore backed by a temp database."""
    return ReminderStore(db_path=tmp_path / "test.db")


@pytest.fixture
def frozen_now() -> datetime:
    # 08:00 in Toronto (EDT), 13:00 UTC is the next 09:00 there.
    return datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def waiting_clock(frozen_now: datetime) -> FakeClock:
    return FakeClock(frozen_now, auto=False)


@pytest.fixture
def make_clock():
    """Factory for FakeClock instances: ``make_clock(now, auto=...)``."""
    return FakeClock
