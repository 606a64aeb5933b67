"""ReminderStore: libsql persistence for daily reminders."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from remindbot.db import session
from remindbot.errors import PersistenceError
from remindbot.scheduler.models import COLUMNS, ReminderRecord

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS reminders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner TEXT NOT NULL,
    destination TEXT NOT NULL,
    text TEXT NOT NULL,
    hour INTEGER NOT NULL,
    minute INTEGER NOT NULL,
    timezone TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    UNIQUE (owner, hour, minute, timezone, text)
)
"""

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM reminders"  # noqa: S608


class ReminderStore:
    """Persists reminders in SQLite / Turso.

    Every public method raises ``PersistenceError`` when the database is
    unreachable or rejects the statement.  Pass an explicit *db_path* for
    test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    async def _ensure_schema(self, db) -> None:  # noqa: ANN001
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.commit()
            self._initialised = True

    # -- Writes ----------------------------------------------------------------

    async def upsert_reminder(
        self,
        owner: str,
        destination: str,
        text: str,
        hour: int,
        minute: int,
        timezone: str,
    ) -> ReminderRecord:
        """Insert a reminder, or reactivate the row with the same content key.

        Two reminders are the same when owner, hour, minute, timezone and
        text all match.  The existing row keeps its id; its destination is
        updated to the latest one.
        """
        now = datetime.now(UTC).isoformat()
        async with session(self._db_path) as db:
            await self._ensure_schema(db)
            await db.execute(
                """
                INSERT INTO reminders
                    (owner, destination, text, hour, minute, timezone, active, created_at)
                VALUES (?, ?, ?, ?, ?, ?, 1, ?)
                ON CONFLICT (owner, hour, minute, timezone, text)
                DO UPDATE SET active = 1, destination = excluded.destination
                """,
                (owner, destination, text, hour, minute, timezone, now),
            )
            await db.commit()
            cursor = await db.execute(
                f"{_SELECT} WHERE owner = ? AND hour = ? AND minute = ?"
                " AND timezone = ? AND text = ?",
                (owner, hour, minute, timezone, text),
            )
            row = await cursor.fetchone()
        if row is None:
            # Only reachable if the row vanished between the two statements.
            msg = "upserted reminder could not be read back"
            raise PersistenceError(msg)
        record = ReminderRecord.from_row(row)
        logger.info("Upserted reminder %s for owner %s", record.id, owner)
        return record

    async def set_active(self, reminder_id: int, active: bool) -> bool:
        """Set the active flag. Returns True if a row was updated."""
        async with session(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(
                "UPDATE reminders SET active = ? WHERE id = ?",
                (int(active), reminder_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info("Reminder %s active=%s", reminder_id, active)
        return updated

    # -- Reads -----------------------------------------------------------------

    async def get_active(self, reminder_id: int) -> bool | None:
        """Return the active flag, or None if the reminder does not exist."""
        async with session(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(
                "SELECT active FROM reminders WHERE id = ?", (reminder_id,)
            )
            row = await cursor.fetchone()
        return bool(row[0]) if row else None

    async def get_reminder(self, reminder_id: int) -> ReminderRecord | None:
        """Fetch a reminder by id, or None if not found.

        A row that cannot be converted raises ``PersistenceError``, the same
        as an unreachable database.
        """
        async with session(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(f"{_SELECT} WHERE id = ?", (reminder_id,))
            row = await cursor.fetchone()
        if not row:
            return None
        try:
            return ReminderRecord.from_row(row)
        except (TypeError, ValueError) as exc:
            msg = f"reminder {reminder_id} has a corrupt row: {exc}"
            raise PersistenceError(msg) from exc

    async def list_active(self) -> list[ReminderRecord]:
        """Return all active reminders, skipping rows that cannot be parsed."""
        async with session(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(f"{_SELECT} WHERE active = 1 ORDER BY id")
            rows = await cursor.fetchall()

        records: list[ReminderRecord] = []
        for row in rows:
            try:
                records.append(ReminderRecord.from_row(row))
            except (TypeError, ValueError):
                logger.warning("Skipping corrupt reminder row id=%s", row[0])
        return records
