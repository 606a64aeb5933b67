"""Notification delivery for fired reminders."""

from remindbot.notifications.channels import NotificationChannel
from remindbot.notifications.router import NotificationRouter
from remindbot.notifications.telegram_channel import TelegramChannel

__all__ = [
    "NotificationChannel",
    "NotificationRouter",
    "TelegramChannel",
]
