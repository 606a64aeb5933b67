"""Tests for ReminderService: create, stop, restore and their races."""

import asyncio
import logging
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from remindbot.errors import InvalidTimezone, PersistenceError, ValidationError
from remindbot.scheduler.engine import SchedulerEngine
from remindbot.scheduler.executor import ReminderExecutor
from remindbot.scheduler.registry import JobRegistry
from remindbot.scheduler.service import ReminderService, validate_reminder
from remindbot.scheduler.store import ReminderStore

pytestmark = pytest.mark.usefixtures("_no_turso")

REMINDER = {
    "owner": "u1",
    "destination": "c1",
    "text": "water plants",
    "hour": 9,
    "minute": 0,
    "timezone": "America/Toronto",
}


@pytest.fixture
def router() -> AsyncMock:
    r = AsyncMock()
    r.send = AsyncMock(return_value=True)
    return r


@pytest.fixture
def registry() -> JobRegistry:
    return JobRegistry()


@pytest.fixture
def engine(waiting_clock) -> SchedulerEngine:
    return SchedulerEngine(clock=waiting_clock)


def _build(store, engine, registry, router) -> ReminderService:
    executor = ReminderExecutor(store=store, router=router, registry=registry)
    return ReminderService(store=store, engine=engine, registry=registry, executor=executor)


@pytest.fixture
async def service(store: ReminderStore, engine, registry, router):
    svc = _build(store, engine, registry, router)
    yield svc
    await svc.shutdown()


# -- validate_reminder ---------------------------------------------------------


@pytest.mark.parametrize(
    ("hour", "minute", "tz", "match"),
    [
        (24, 0, "UTC", "Hour"),
        (-1, 0, "UTC", "Hour"),
        (9, 60, "UTC", "Minute"),
        (9, 0, "Not/AZone", "Unknown timezone"),
    ],
)
def test_validate_rejects(hour: int, minute: int, tz: str, match: str) -> None:
    with pytest.raises(ValidationError, match=match):
        validate_reminder(hour, minute, tz)


def test_validate_rejects_blank_text() -> None:
    with pytest.raises(ValidationError, match="must not be empty"):
        validate_reminder(9, 0, "UTC", "   ")


def test_validate_accepts_boundaries() -> None:
    validate_reminder(0, 0, "UTC", "x")
    validate_reminder(23, 59, "Pacific/Kiritimati", "x")


# -- create --------------------------------------------------------------------


async def test_create_persists_and_arms(service, store, registry, engine) -> None:
    record = await service.create(**REMINDER)

    assert await store.get_active(record.id) is True
    handle = registry.lookup(record.id)
    assert handle is not None
    assert handle.record == record
    assert engine.next_fire_time(record) == datetime(2025, 6, 1, 13, 0, tzinfo=UTC)


async def test_create_invalid_input_has_no_effects(service, store, registry) -> None:
    with pytest.raises(ValidationError):
        await service.create(**{**REMINDER, "hour": 24})
    with pytest.raises(InvalidTimezone):
        await service.create(**{**REMINDER, "timezone": "Not/AZone"})

    assert await store.list_active() == []
    assert len(registry) == 0


async def test_create_store_failure_schedules_nothing(engine, registry, router) -> None:
    failing = AsyncMock()
    failing.upsert_reminder = AsyncMock(side_effect=PersistenceError("db down"))
    svc = _build(failing, engine, registry, router)

    with pytest.raises(PersistenceError):
        await svc.create(**REMINDER)
    assert len(registry) == 0


async def test_duplicate_create_keeps_one_row_and_one_timer(service, store, registry) -> None:
    first = await service.create(**REMINDER)
    first_handle = registry.lookup(first.id)

    second = await service.create(**REMINDER)

    assert second.id == first.id
    assert [r.id for r in await store.list_active()] == [first.id]
    assert registry.ids() == [first.id]
    assert first_handle.cancelled is True
    assert registry.lookup(first.id).cancelled is False


async def test_create_after_stop_reactivates(service, store, registry) -> None:
    first = await service.create(**REMINDER)
    await service.stop(first.id)

    again = await service.create(**REMINDER)

    assert again.id == first.id
    assert await store.get_active(first.id) is True
    assert first.id in registry


# -- stop ----------------------------------------------------------------------


async def test_stop_deactivates_and_cancels(service, store, registry) -> None:
    record = await service.create(**REMINDER)
    handle = registry.lookup(record.id)

    assert await service.stop(record.id) is True

    assert await store.get_active(record.id) is False
    assert record.id not in registry
    assert handle.cancelled is True


async def test_stop_without_local_timer(service, store, registry) -> None:
    # Created by another process instance: row exists, no timer here.
    record = await store.upsert_reminder(**REMINDER)

    assert await service.stop(record.id) is True
    assert await store.get_active(record.id) is False

    assert await service.restore() == 0
    assert record.id not in registry


async def test_stop_unknown_id(service) -> None:
    assert await service.stop(404) is False


async def test_stop_store_failure_leaves_timer(engine, registry, router, store) -> None:
    svc = _build(store, engine, registry, router)
    record = await svc.create(**REMINDER)

    failing = AsyncMock()
    failing.set_active = AsyncMock(side_effect=PersistenceError("db down"))
    broken = _build(failing, engine, registry, router)

    with pytest.raises(PersistenceError):
        await broken.stop(record.id)
    assert registry.lookup(record.id).cancelled is False
    await svc.shutdown()


# -- restore -------------------------------------------------------------------


async def test_restore_skips_bad_timezone(
    service, store, registry, router, caplog: pytest.LogCaptureFixture
) -> None:
    a = await store.upsert_reminder(**REMINDER)
    b = await store.upsert_reminder(**{**REMINDER, "text": "stretch"})
    bad = await store.upsert_reminder(**{**REMINDER, "text": "broken", "timezone": "Not/AZone"})

    with caplog.at_level(logging.WARNING, logger="remindbot.scheduler.service"):
        armed = await service.restore()

    assert armed == 2
    assert registry.ids() == sorted([a.id, b.id])
    assert f"Reminder {bad.id} skipped" in caplog.text
    router.send.assert_not_called()


async def test_restore_skips_out_of_range_time(service, store, registry) -> None:
    good = await store.upsert_reminder(**REMINDER)
    await store.upsert_reminder(**{**REMINDER, "text": "odd", "hour": 25})

    assert await service.restore() == 1
    assert registry.ids() == [good.id]


async def test_restore_does_not_replay_missed_fires(service, store, router) -> None:
    await store.upsert_reminder(**REMINDER)
    await service.restore()
    await asyncio.sleep(0)
    router.send.assert_not_called()


async def test_stop_then_restart_never_reschedules(store, make_clock, frozen_now, router) -> None:
    first_registry = JobRegistry()
    first = _build(store, SchedulerEngine(clock=make_clock(frozen_now, auto=False)), first_registry, router)
    kept = await first.create(**REMINDER)
    stopped = await first.create(**{**REMINDER, "text": "stretch"})
    await first.stop(stopped.id)
    await first.shutdown()

    # Simulated restart: fresh registry and engine, same store.
    second_registry = JobRegistry()
    second = _build(store, SchedulerEngine(clock=make_clock(frozen_now, auto=False)), second_registry, router)
    try:
        assert await second.restore() == 1
        assert second_registry.ids() == [kept.id]
    finally:
        await second.shutdown()


async def test_restore_store_failure_propagates(engine, registry, router) -> None:
    failing = AsyncMock()
    failing.list_active = AsyncMock(side_effect=PersistenceError("db down"))
    with pytest.raises(PersistenceError):
        await _build(failing, engine, registry, router).restore()


# -- Races ---------------------------------------------------------------------


async def test_stop_racing_a_fire_sends_nothing(service, store, registry, router) -> None:
    record = await service.create(**REMINDER)
    executor = ReminderExecutor(store=store, router=router, registry=registry)

    # Stop lands in the store just before the fire-time recheck.
    await store.set_active(record.id, False)
    await executor.fire(record.id)

    router.send.assert_not_called()
    assert record.id not in registry


@pytest.mark.parametrize("stop_first", [True, False])
async def test_concurrent_create_and_stop_converge(
    service, store, registry, router, stop_first: bool
) -> None:
    record = await service.create(**REMINDER)
    executor = ReminderExecutor(store=store, router=router, registry=registry)

    ops = [service.stop(record.id), service.create(**REMINDER)]
    if not stop_first:
        ops.reverse()
    await asyncio.gather(*ops)

    # One fire-check later the live timer agrees with the durable flag.
    await executor.fire(record.id)
    active = await store.get_active(record.id)
    assert (record.id in registry) is active
    if not active:
        assert router.send.await_count == 0


class _BrokenClock:
    """Clock whose wait blows up, crashing the timer loop."""

    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    async def sleep_until(self, instant: datetime) -> None:
        raise RuntimeError("clock source lost")


async def test_crashed_timer_leaves_the_registry(store, registry, router, frozen_now) -> None:
    svc = _build(store, SchedulerEngine(clock=_BrokenClock(frozen_now)), registry, router)
    record = await svc.create(**REMINDER)
    handle = registry.lookup(record.id)

    await handle.wait_closed()
    await asyncio.sleep(0)

    assert record.id not in registry
    assert handle.cancelled is True
    assert await store.get_active(record.id) is True
    await svc.shutdown()


async def test_replaced_timer_exit_keeps_new_handle(service, registry) -> None:
    first = await service.create(**REMINDER)
    old = registry.lookup(first.id)

    await service.create(**REMINDER)
    await old.wait_closed()
    await asyncio.sleep(0)

    current = registry.lookup(first.id)
    assert current is not None
    assert current is not old
