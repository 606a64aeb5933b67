"""Async database sessions over libsql.

The ``libsql`` driver is synchronous, so every call is pushed onto a worker
thread with ``asyncio.to_thread()`` to keep the event loop (and with it every
reminder timer) responsive.  Connection target is determined by settings:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → remote Turso
- **Dev/test**: no Turso env vars → local SQLite file via ``database_path``

Driver failures are re-raised as :class:`PersistenceError` so callers deal
with a single error type regardless of backend.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

import libsql

from remindbot.config import settings
from remindbot.errors import PersistenceError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

logger = logging.getLogger(__name__)


class _AsyncCursor:
    """Thin async wrapper around a synchronous libsql cursor."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._cursor.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._cursor.fetchall)

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount


class _AsyncConnection:
    """Thin async wrapper around a synchronous libsql connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()) -> _AsyncCursor:
        cursor = await asyncio.to_thread(self._conn.execute, sql, params)
        return _AsyncCursor(cursor)

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


def _open_local(path: str) -> Any:
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


async def get_connection(local_path_override: Path | None = None) -> _AsyncConnection:
    """Open an async-wrapped libsql connection.

    *local_path_override* (test isolation) wins over everything else; then a
    configured Turso URL; then the local ``database_path``.
    """
    if local_path_override:
        path = local_path_override
    elif settings.turso_database_url:
        conn = await asyncio.to_thread(
            libsql.connect,
            database=settings.turso_database_url,
            auth_token=settings.turso_auth_token,
        )
        return _AsyncConnection(conn)
    else:
        path = settings.database_path

    path.parent.mkdir(parents=True, exist_ok=True)
    conn = await asyncio.to_thread(_open_local, str(path))
    return _AsyncConnection(conn)


@contextlib.asynccontextmanager
async def session(
    local_path_override: Path | None = None,
) -> AsyncIterator[_AsyncConnection]:
    """Yield a connection that is always closed, mapping driver errors.

    Anything raised by the driver (or by connecting) becomes a
    ``PersistenceError`` chained to the original exception.
    """
    try:
        db = await get_connection(local_path_override)
    except Exception as exc:
        logger.exception("Database connection failed")
        raise PersistenceError("database unavailable") from exc
    try:
        yield db
    except PersistenceError:
        raise
    except Exception as exc:
        logger.exception("Database operation failed")
        raise PersistenceError(str(exc) or exc.__class__.__name__) from exc
    finally:
        with contextlib.suppress(Exception):
            await db.close()
