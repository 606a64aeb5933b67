"""Optional user allowlist gate."""

import logging

from telegram import Update

from remindbot.config import settings

logger = logging.getLogger(__name__)


def is_allowed(update: Update) -> bool:
    """Check if the update comes from a user permitted to manage reminders.

    An empty ``ALLOWED_USER_IDS`` leaves the bot open to everyone.
    """
    user = update.effective_user
    if user is None:
        return False

    allowed = settings.get_allowed_user_ids()
    if not allowed:
        return True
    if user.id not in allowed:
        logger.warning("Rejected command from user %s (not in allowlist)", user.id)
        return False
    return True
