"""Daily reminder scheduling: models, persistence, timers and reconciliation."""

from remindbot.scheduler.engine import SchedulerEngine
from remindbot.scheduler.executor import ReminderExecutor
from remindbot.scheduler.models import ReminderRecord
from remindbot.scheduler.recurrence import next_occurrence, resolve_timezone
from remindbot.scheduler.registry import JobHandle, JobRegistry, JobState
from remindbot.scheduler.service import ReminderService
from remindbot.scheduler.store import ReminderStore

__all__ = [
    "JobHandle",
    "JobRegistry",
    "JobState",
    "ReminderExecutor",
    "ReminderRecord",
    "ReminderService",
    "ReminderStore",
    "SchedulerEngine",
    "next_occurrence",
    "resolve_timezone",
]
