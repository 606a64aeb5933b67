"""Telegram command handlers."""

from __future__ import annotations

import logging

from telegram import Update
from telegram.ext import ContextTypes

from remindbot.bot.commands import CREATE_USAGE, CommandRequest, Intent, dispatch
from remindbot.bot.security import is_allowed

logger = logging.getLogger(__name__)

# Key under which the application stores its ReminderService in bot_data.
SERVICE_KEY = "reminder_service"

HELP_TEXT = (
    "I send you a message every day at the time you choose.\n\n"
    "/remind HH:MM Timezone Message: create a daily reminder\n"
    "/stop ID: stop a reminder"
)


def _command_args(text: str | None) -> str:
    """Everything after the command word, whitespace inside the message kept."""
    if not text:
        return ""
    parts = text.split(maxsplit=1)
    return parts[1] if len(parts) > 1 else ""


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start and /help: explain the commands."""
    if not is_allowed(update):
        return
    await update.message.reply_text(f"{HELP_TEXT}\n\n{CREATE_USAGE}")


async def _handle_intent(
    intent: Intent, update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    if not is_allowed(update):
        return

    service = context.bot_data.get(SERVICE_KEY)
    if service is None:
        logger.warning("/%s received before the scheduler was ready", intent.value)
        await update.message.reply_text("I'm still starting up, try again in a moment.")
        return

    request = CommandRequest(
        intent=intent,
        owner=str(update.effective_user.id),
        destination=str(update.effective_chat.id),
        args=_command_args(update.message.text),
    )
    outcome = await dispatch(service, request)
    await update.message.reply_text(outcome)


async def handle_remind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /remind HH:MM Timezone Message."""
    await _handle_intent(Intent.CREATE, update, context)


async def handle_stop(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stop ID."""
    await _handle_intent(Intent.STOP, update, context)
