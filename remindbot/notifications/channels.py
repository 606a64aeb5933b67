"""NotificationChannel protocol: interface for reminder delivery channels."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol that all notification channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'telegram')."""
        ...

    async def send(self, destination: str, message: str, *, mention: str | None = None) -> bool:
        """Deliver *message* to *destination*. Returns True on success.

        *mention* names the user the reminder belongs to; channels that can
        address a user inside a shared destination do so.
        """
        ...
