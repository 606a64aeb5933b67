"""Telegram implementation of the NotificationChannel protocol."""

from __future__ import annotations

import html
import logging

import telegram
from telegram.constants import ParseMode
from telegram.helpers import mention_html

logger = logging.getLogger(__name__)

MENTION_LABEL = "Reminder"


class TelegramChannel:
    """Delivers reminders to Telegram chats via the Bot API.

    In a private chat the destination is the owner and the reminder text is
    sent as-is without a parse mode.  In a group chat the message starts with
    a mention of the owner so they are notified; the text is then HTML
    escaped and sent with the HTML parse mode.
    """

    def __init__(self, bot: telegram.Bot) -> None:
        self._bot = bot

    @property
    def name(self) -> str:
        return "telegram"

    async def send(self, destination: str, message: str, *, mention: str | None = None) -> bool:
        """Send *message* to the chat id in *destination*."""
        try:
            chat_id = int(destination)
        except (TypeError, ValueError):
            logger.warning("TelegramChannel: invalid chat id %r", destination)
            return False

        text, parse_mode = message, None
        if mention and mention != destination:
            try:
                user_id = int(mention)
            except ValueError:
                logger.warning("TelegramChannel: cannot mention non-numeric user %r", mention)
            else:
                text = f"{mention_html(user_id, MENTION_LABEL)}: {html.escape(message)}"
                parse_mode = ParseMode.HTML

        try:
            await self._bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode)
            return True
        except Exception:
            logger.exception("TelegramChannel.send failed for chat_id=%s", destination)
            return False
