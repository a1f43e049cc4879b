"""TaskApp Telegram Bot."""

import logging

from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    CallbackQueryHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .auto_urgent import AutoUrgentMonitor
from .config import Config, load_config
from .telegram_handlers import (
    start_handler,
    help_handler,
    matrix_handler,
    stats_handler,
    done_handler,
    ical_handler,
    add_start_handler,
    ask_start_handler,
    add_confirm_handler,
    add_cancel_handler,
)
from .telegram_states import AddTaskStates
from .workflows import build_monitor

logger = logging.getLogger(__name__)


class AuthFilter(filters.BaseFilter):
    """Filter to only allow authorized users."""

    def __init__(self, allowed_users: list[int]):
        super().__init__()
        self.allowed_users = allowed_users

    def check_update(self, update: Update) -> bool:
        if not self.allowed_users:
            return True  # No restriction if no users configured
        user = update.effective_user
        if user is None:
            return False
        return user.id in self.allowed_users


def create_application(config: Config | None = None) -> Application:
    """Create and configure the Telegram bot application."""
    if config is None:
        config = load_config()

    if not config.telegram_bot_token:
        raise ValueError(
            "TELEGRAM_BOT_TOKEN not configured. "
            "Get a token from @BotFather on Telegram and add it to taskapp.conf"
        )

    app = Application.builder().token(config.telegram_bot_token).build()

    auth_filter = AuthFilter(config.telegram_allowed_users)

    # Simple commands (with auth filter)
    app.add_handler(CommandHandler("start", start_handler, filters=auth_filter))
    app.add_handler(CommandHandler("help", help_handler, filters=auth_filter))
    app.add_handler(CommandHandler("matrix", matrix_handler, filters=auth_filter))
    app.add_handler(CommandHandler("stats", stats_handler, filters=auth_filter))
    app.add_handler(CommandHandler("done", done_handler, filters=auth_filter))
    app.add_handler(CommandHandler("ical", ical_handler, filters=auth_filter))

    # Add-task conversation: parse (or ask the assistant), preview, confirm
    add_conv = ConversationHandler(
        entry_points=[
            CommandHandler("add", add_start_handler, filters=auth_filter),
            CommandHandler("ask", ask_start_handler, filters=auth_filter),
        ],
        states={
            AddTaskStates.CONFIRM: [
                CallbackQueryHandler(add_confirm_handler, pattern="^add_"),
            ],
        },
        fallbacks=[CommandHandler("cancel", add_cancel_handler)],
        per_user=True,
    )
    app.add_handler(add_conv)

    async def unauthorized_handler(update: Update, context):
        user = update.effective_user
        logger.warning(f"Unauthorized access attempt from user {user.id} ({user.username})")
        await update.message.reply_text(
            "Unauthorized. This bot is private.\n"
            "If you're the owner, add your Telegram user ID to TELEGRAM_ALLOWED_USERS in taskapp.conf"
        )

    if config.telegram_allowed_users:
        app.add_handler(
            MessageHandler(~auth_filter & filters.ALL, unauthorized_handler)
        )

    return app


def setup_scheduler(config: Config) -> tuple[AsyncIOScheduler, AutoUrgentMonitor]:
    """Set up the scheduler and the auto-urgent monitor it hosts."""
    scheduler = AsyncIOScheduler(timezone=config.timezone or "UTC")
    monitor = build_monitor(config, scheduler)
    return scheduler, monitor


def run_bot():
    """Run the Telegram bot."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )

    config = load_config()
    app = create_application(config)
    scheduler, monitor = setup_scheduler(config)

    async def post_init(application: Application) -> None:
        """Start scheduler after event loop is running."""
        scheduler.start()
        monitor.start()
        logger.info("Scheduler started")

    async def post_shutdown(application: Application) -> None:
        monitor.stop()
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    app.post_init = post_init
    app.post_shutdown = post_shutdown

    if config.telegram_allowed_users:
        logger.info(f"Bot authorized for users: {config.telegram_allowed_users}")
    else:
        logger.warning("No TELEGRAM_ALLOWED_USERS configured - bot is open to anyone!")

    logger.info("Starting TaskApp Telegram bot...")

    app.run_polling(allowed_updates=Update.ALL_TYPES)
