"""Reminder bot entry point."""

import logging

from remindbot.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Start the bot and poll Telegram until interrupted."""
    from remindbot.bot.app import create_app

    if not settings.telegram_bot_token:
        logger.error("TELEGRAM_BOT_TOKEN environment variable required")
        raise SystemExit(1)

    allowed = settings.get_allowed_user_ids()
    if allowed:
        logger.info("Allowed user IDs: %s", allowed)
    else:
        logger.info("ALLOWED_USER_IDS is empty; any user may create reminders")

    logger.info("Starting reminder bot (db=%s)...", settings.turso_database_url or settings.database_path)
    app = create_app()
    app.run_polling()


if __name__ == "__main__":
    main()
