"""Telegram application factory and scheduler lifecycle."""

from __future__ import annotations

import logging

from telegram import BotCommand
from telegram.ext import Application, CommandHandler

from remindbot.bot.handlers import SERVICE_KEY, handle_remind, handle_start, handle_stop
from remindbot.config import settings
from remindbot.health import HealthServer
from remindbot.notifications.router import NotificationRouter
from remindbot.notifications.telegram_channel import TelegramChannel
from remindbot.scheduler.engine import SchedulerEngine
from remindbot.scheduler.executor import ReminderExecutor
from remindbot.scheduler.registry import JobRegistry
from remindbot.scheduler.service import ReminderService
from remindbot.scheduler.store import ReminderStore

logger = logging.getLogger(__name__)

HEALTH_KEY = "health_server"

BOT_COMMANDS = [
    BotCommand("remind", "Create a daily reminder: HH:MM Timezone Message"),
    BotCommand("stop", "Stop a reminder by id"),
]


def _init_notifications(app: Application) -> NotificationRouter:
    """Register notification channels and set the default."""
    router = NotificationRouter()
    router.register_channel(TelegramChannel(app.bot))
    router.set_default_channel("telegram")
    logger.info(
        "Notifications initialized: channels=%s, default=%s",
        router.list_channels(),
        router.default_channel_name,
    )
    return router


def _init_scheduler(router: NotificationRouter, registry: JobRegistry) -> ReminderService:
    """Wire store, engine, executor and service around *registry*."""
    store = ReminderStore()
    executor = ReminderExecutor(
        store=store,
        router=router,
        registry=registry,
        notify_on_store_error=settings.notify_on_store_error,
    )
    return ReminderService(
        store=store,
        engine=SchedulerEngine(),
        registry=registry,
        executor=executor,
    )


async def _register_commands(app: Application) -> None:
    """Publish the command list so clients can autocomplete it."""
    try:
        await app.bot.set_my_commands(BOT_COMMANDS)
    except Exception:
        logger.warning("Could not register bot commands", exc_info=True)


async def _post_init(app: Application) -> None:
    """Called after the Application is fully initialized (event loop running)."""
    registry = JobRegistry()
    router = _init_notifications(app)
    service = _init_scheduler(router, registry)
    await service.restore()
    app.bot_data[SERVICE_KEY] = service

    await _register_commands(app)

    if settings.health_enabled:
        server = HealthServer(registry=registry)
        await server.start()
        app.bot_data[HEALTH_KEY] = server


async def _post_shutdown(app: Application) -> None:
    """Called during graceful shutdown."""
    service = app.bot_data.pop(SERVICE_KEY, None)
    if service is not None:
        await service.shutdown()
    server = app.bot_data.pop(HEALTH_KEY, None)
    if server is not None:
        await server.stop()


def create_app() -> Application:
    """Build and configure the Telegram application."""
    app = Application.builder().token(settings.telegram_bot_token).build()

    app.add_handler(CommandHandler(["start", "help"], handle_start))
    app.add_handler(CommandHandler("remind", handle_remind))
    app.add_handler(CommandHandler("stop", handle_stop))

    app.post_init = _post_init
    app.post_shutdown = _post_shutdown

    return app
