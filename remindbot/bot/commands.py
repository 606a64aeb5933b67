"""Command intents and their handlers.

Chat adapters turn an incoming command into a :class:`CommandRequest` and
call :func:`dispatch`, which always returns a user-facing outcome string.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from remindbot.errors import PersistenceError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from remindbot.scheduler.service import ReminderService

    Handler = Callable[[ReminderService, "CommandRequest"], Awaitable[str]]

logger = logging.getLogger(__name__)

CREATE_USAGE = (
    "Invalid input: correct usage is /remind HH:MM Timezone Message\n"
    "e.g. /remind 09:00 America/Toronto water your plants"
)
STOP_USAGE = "Invalid input: correct usage is /stop <reminder id>"
DB_FAILURE = "Sorry, I couldn't reach the reminder database. Please try again."
GENERIC_FAILURE = "Sorry, something went wrong. Please try again."

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class Intent(Enum):
    """Commands the bot understands, keyed by command name."""

    CREATE = "remind"
    STOP = "stop"


@dataclass(frozen=True)
class CommandRequest:
    """A parsed command from a chat platform.

    Attributes:
        intent: Which command was issued.
        owner: The user who issued it.
        destination: Where reminders should be delivered (chat id).
        args: Raw text following the command name.
    """

    intent: Intent
    owner: str
    destination: str
    args: str = ""


def parse_time(value: str) -> tuple[int, int]:
    """Parse ``HH:MM`` into (hour, minute). Range checks happen in the service."""
    match = _TIME_RE.match(value.strip())
    if not match:
        msg = "Correct time format is HH:MM."
        raise ValidationError(msg)
    return int(match.group(1)), int(match.group(2))


async def handle_create(service: ReminderService, request: CommandRequest) -> str:
    """``/remind HH:MM Timezone Message``"""
    parts = request.args.split(maxsplit=2)
    if len(parts) < 3:
        return CREATE_USAGE
    when, timezone, message = parts
    hour, minute = parse_time(when)
    record = await service.create(
        owner=request.owner,
        destination=request.destination,
        text=message,
        hour=hour,
        minute=minute,
        timezone=timezone,
    )
    return (
        f"Reminder set! I will remind you daily at {record.time_label} {record.timezone}."
        f" (id {record.id}, cancel with /stop {record.id})"
    )


async def handle_stop(service: ReminderService, request: CommandRequest) -> str:
    """``/stop <id>``"""
    try:
        reminder_id = int(request.args.strip())
    except ValueError:
        return STOP_USAGE
    if not await service.stop(reminder_id):
        return f"No reminder with id {reminder_id}."
    return f"Reminder {reminder_id} stopped successfully!"


HANDLERS: dict[Intent, Handler] = {
    Intent.CREATE: handle_create,
    Intent.STOP: handle_stop,
}

_unhandled = set(Intent) - HANDLERS.keys()
if _unhandled:
    msg = f"No handler for intents: {sorted(i.name for i in _unhandled)}"
    raise RuntimeError(msg)


async def dispatch(service: ReminderService, request: CommandRequest) -> str:
    """Run the handler for *request* and turn any failure into a message."""
    handler = HANDLERS[request.intent]
    try:
        return await handler(service, request)
    except ValidationError as exc:
        logger.info("Rejected /%s from %s: %s", request.intent.value, request.owner, exc)
        return str(exc)
    except PersistenceError:
        logger.warning("/%s failed: store unavailable", request.intent.value)
        return DB_FAILURE
    except Exception:
        logger.exception("/%s failed unexpectedly", request.intent.value)
        return GENERIC_FAILURE
