"""Telegram command handlers."""

import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

from .adapters.azure_openai import LLMError
from .adapters.firestore import AuthenticationError
from .config import load_config
from .core.parsing import ParseError
from .core.report import format_chat_reply, format_draft
from .core.tasks import SCOPES
from .ports.task_store import StoreError
from .telegram_format import send_markdown
from .telegram_states import AddTaskStates
from .workflows import (
    calendar_token,
    chat,
    export_ical,
    generate_matrix,
    generate_stats_report,
    get_store,
    parse_task_text,
    save_drafts,
    set_completed,
)

logger = logging.getLogger(__name__)

STORE_ERRORS = (AuthenticationError, StoreError)
DRAFT_KEY = "task_draft"


# ============== Simple Commands ==============


async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    await update.message.reply_text(
        "Hi! I'm TaskApp, your Eisenhower task manager.\n\n"
        "Commands:\n"
        "/matrix - Open tasks by quadrant\n"
        "/add <text> - Add a task in plain language\n"
        "/ask <question> - Ask about your tasks or plan new ones\n"
        "/done <id> - Complete a task\n"
        "/stats - Productivity statistics\n"
        "/ical - Download your calendar feed\n"
        "/help - Show all commands"
    )


async def help_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await update.message.reply_text(
        "*TaskApp Commands*\n\n"
        "/matrix - Open tasks grouped into Do First, Schedule, Delegate, Eliminate\n"
        "/add <text> - e.g. `/add pay rent thursday, important`\n"
        "/ask <question> - e.g. `/ask what is due this week?` or `/ask plan my move`\n"
        "/done <id> - Mark a task completed\n"
        "/stats [active|completed|all] - Statistics for a scope\n"
        "/ical - Download dated tasks as an .ics file\n"
        "/cancel - Cancel current operation\n",
        parse_mode="Markdown",
    )


async def matrix_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /matrix command - show the Eisenhower matrix."""
    config = load_config()
    try:
        text = generate_matrix(config)
    except STORE_ERRORS as e:
        logger.error(f"Failed to load tasks for matrix: {e}")
        await update.message.reply_text(f"Failed to load tasks: {e}")
        return

    await send_markdown(update.message, text)


async def stats_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /stats command - statistics summary."""
    scope = context.args[0].lower() if context.args else "all"
    if scope not in SCOPES:
        await update.message.reply_text(f"Unknown scope. Use one of: {', '.join(SCOPES)}")
        return

    config = load_config()
    try:
        text = generate_stats_report(config, scope)
    except STORE_ERRORS as e:
        logger.error(f"Failed to load tasks for stats: {e}")
        await update.message.reply_text(f"Failed to load tasks: {e}")
        return

    await send_markdown(update.message, f"## Stats ({scope})\n\n{text}")


async def done_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /done command - complete a task by id."""
    if not context.args:
        await update.message.reply_text("Usage: /done <task id>")
        return

    task_id = context.args[0]
    config = load_config()
    try:
        set_completed(config, task_id, True)
    except STORE_ERRORS as e:
        await update.message.reply_text(f"Could not complete {task_id}: {e}")
        return

    await update.message.reply_text(f"Done: {task_id}")


async def ical_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /ical command - send the calendar feed as a file."""
    config = load_config()
    try:
        data = export_ical(config)
        token = calendar_token(config)
    except STORE_ERRORS as e:
        logger.error(f"Failed to export calendar: {e}")
        await update.message.reply_text(f"Failed to export calendar: {e}")
        return

    await update.message.reply_document(document=data, filename="taskapp.ics", caption=f"Feed token: {token}")


# ============== Add Task Conversation ==============


async def _ask_to_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE, drafts, text: str) -> int:
    """Keep the drafts and show Save/Cancel buttons under the preview."""
    context.user_data[DRAFT_KEY] = drafts
    keyboard = [
        [
            InlineKeyboardButton("Save", callback_data="add_save"),
            InlineKeyboardButton("Cancel", callback_data="add_cancel"),
        ]
    ]
    await update.message.reply_text(text, reply_markup=InlineKeyboardMarkup(keyboard))
    return AddTaskStates.CONFIRM


async def add_start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Entry point for /add - parse the text and ask for confirmation."""
    text = " ".join(context.args or [])
    if not text.strip():
        await update.message.reply_text("Usage: /add <what needs doing, and when>")
        return ConversationHandler.END

    config = load_config()
    try:
        parsed = parse_task_text(text, config)
    except (LLMError, ParseError) as e:
        logger.error(f"Task parsing failed: {e}")
        await update.message.reply_text(f"Couldn't understand that: {e}")
        return ConversationHandler.END

    return await _ask_to_confirm(update, context, [parsed], format_draft(parsed))


async def ask_start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Entry point for /ask - answer a question or offer task drafts to save."""
    text = " ".join(context.args or [])
    if not text.strip():
        await update.message.reply_text("Usage: /ask <question or plan>")
        return ConversationHandler.END

    config = load_config()
    try:
        store = get_store(config)
        reply = chat(text, config, store=store)
        group_names = {g.id: g.name for g in store.list_groups(config.user_id)}
    except (LLMError, ParseError) as e:
        logger.error(f"Assistant request failed: {e}")
        await update.message.reply_text(f"Couldn't answer that: {e}")
        return ConversationHandler.END
    except STORE_ERRORS as e:
        logger.error(f"Failed to load tasks for assistant: {e}")
        await update.message.reply_text(f"Failed to load tasks: {e}")
        return ConversationHandler.END

    if not reply.tasks:
        await send_markdown(update.message, format_chat_reply(reply, group_names))
        return ConversationHandler.END

    return await _ask_to_confirm(update, context, reply.tasks, format_chat_reply(reply, group_names))


async def add_confirm_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle the Save/Cancel buttons."""
    query = update.callback_query
    await query.answer()

    drafts = context.user_data.pop(DRAFT_KEY, None)
    if query.data != "add_save" or not drafts:
        await query.edit_message_text("Cancelled.")
        return ConversationHandler.END

    config = load_config()
    try:
        task_ids = save_drafts(config, drafts)
    except STORE_ERRORS as e:
        logger.error(f"Failed to save task: {e}")
        await query.edit_message_text(f"Failed to save task: {e}")
        return ConversationHandler.END

    lines = [f"Added: {d.title} ({task_id})" for d, task_id in zip(drafts, task_ids)]
    await query.edit_message_text("\n".join(lines))
    return ConversationHandler.END


async def add_cancel_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle /cancel during the add conversation."""
    context.user_data.pop(DRAFT_KEY, None)
    await update.message.reply_text("Cancelled.")
    return ConversationHandler.END
