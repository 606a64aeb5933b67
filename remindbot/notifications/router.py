"""NotificationRouter: dispatches reminder messages to registered channels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from remindbot.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Routes outbound reminders to the default channel.

    Built once by the application factory and handed to the executor.
    """

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._default: str = ""

    def register_channel(self, channel: NotificationChannel) -> None:
        """Register a notification channel. Raises ValueError on duplicate name."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel

    def set_default_channel(self, name: str) -> None:
        """Set the default channel by name. Raises KeyError if not registered."""
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        self._default = name

    def list_channels(self) -> list[str]:
        return list(self._channels.keys())

    @property
    def default_channel_name(self) -> str:
        return self._default

    def _resolve_channel(self) -> NotificationChannel | None:
        """The default channel, or the only registered one."""
        if self._default:
            return self._channels[self._default]
        if len(self._channels) == 1:
            return next(iter(self._channels.values()))
        return None

    async def send(self, destination: str, message: str, *, mention: str | None = None) -> bool:
        """Send *message* to *destination* via the resolved channel."""
        ch = self._resolve_channel()
        if ch is None:
            logger.warning("No channel resolved for send (channels=%s)", self.list_channels())
            return False
        return await ch.send(destination, message, mention=mention)
