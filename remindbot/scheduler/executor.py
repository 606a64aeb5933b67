"""ReminderExecutor: fire-time recheck and delivery."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from remindbot.errors import NotificationError, PersistenceError

if TYPE_CHECKING:
    from remindbot.notifications.router import NotificationRouter
    from remindbot.scheduler.models import ReminderRecord
    from remindbot.scheduler.registry import JobRegistry
    from remindbot.scheduler.store import ReminderStore

logger = logging.getLogger(__name__)


class ReminderExecutor:
    """Handles a reminder's timer firing.

    The store is authoritative: a reminder stopped after its timer was armed
    is dropped here and its local job is cancelled.  When the store cannot be
    read, *notify_on_store_error* decides between notifying from the armed
    snapshot (fail-open) and skipping this occurrence (fail-closed).

    Args:
        store: ReminderStore to re-read the reminder from.
        router: NotificationRouter for delivery.
        registry: JobRegistry holding the live jobs.
        notify_on_store_error: Fail-open (True) or fail-closed (False).
    """

    def __init__(
        self,
        store: ReminderStore,
        router: NotificationRouter,
        registry: JobRegistry,
        *,
        notify_on_store_error: bool = True,
    ) -> None:
        self._store = store
        self._router = router
        self._registry = registry
        self._notify_on_store_error = notify_on_store_error

    async def fire(self, reminder_id: int) -> None:
        """Recheck reminder *reminder_id* and deliver it if still active."""
        record = await self._recheck(reminder_id)
        if record is None:
            return

        try:
            await self._deliver(record)
        except NotificationError as exc:
            logger.warning("%s", exc)
            return
        logger.info("Delivered reminder %s to %s", record.id, record.destination)

    async def _recheck(self, reminder_id: int) -> ReminderRecord | None:
        handle = self._registry.lookup(reminder_id)
        try:
            record = await self._store.get_reminder(reminder_id)
        except PersistenceError:
            if not self._notify_on_store_error:
                logger.warning(
                    "Store unreadable at fire time; skipping reminder %s", reminder_id
                )
                return None
            if handle is None:
                logger.warning(
                    "Store unreadable and no snapshot for reminder %s; skipping",
                    reminder_id,
                )
                return None
            logger.warning(
                "Store unreadable at fire time; notifying reminder %s anyway", reminder_id
            )
            return handle.record

        if record is None or not record.active:
            logger.info("Reminder %s is no longer active; dropping fire", reminder_id)
            if handle is not None:
                self._registry.discard(handle)
                handle.cancel()
            return None
        return record

    async def _deliver(self, record: ReminderRecord) -> None:
        try:
            sent = await self._router.send(
                record.destination, record.text, mention=record.owner
            )
        except Exception as exc:
            msg = f"Sending reminder {record.id} to {record.destination} raised {exc!r}"
            raise NotificationError(msg) from exc
        if not sent:
            msg = f"Sending reminder {record.id} to {record.destination} failed"
            raise NotificationError(msg)
