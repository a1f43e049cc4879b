"""Shared workflow layer between CLI and Telegram.

Each function resolves the configured store (and model, where needed), runs
the pure core over a fresh snapshot, and returns plain results for the view
to render.
"""

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from apscheduler.schedulers.base import BaseScheduler

from .adapters.azure_openai import AzureOpenAIService
from .adapters.file_store import FileTaskStore
from .adapters.firestore import FirestoreAdapter
from .auto_urgent import AutoUrgentMonitor
from .config import Config
from .core.calendar import CalendarEntry, build_calendar, calendar_entries
from .core.parsing import (
    ChatReply,
    ParsedTask,
    ParseError,
    build_chat_prompt,
    build_system_prompt,
    normalize_chat_response,
    normalize_result,
    parse_model_output,
)
from .core.report import format_matrix, format_stats
from .core.stats import Stats, compute_stats
from .core.tasks import Group, Quadrant, Task, filter_scope, group_by_quadrant, quadrant_flags
from .ports.llm_service import LLMService
from .ports.task_store import StoreError, TaskStore

logger = logging.getLogger(__name__)


def get_store(config: Config) -> TaskStore:
    """Resolve the persistence backend from config."""
    match config.store_backend:
        case "firestore":
            return FirestoreAdapter(config)
        case "file":
            return FileTaskStore(config.resolved_data_dir())
    raise ValueError(f"Unknown STORE_BACKEND: {config.store_backend!r} (expected 'file' or 'firestore')")


def get_llm(config: Config) -> LLMService:
    return AzureOpenAIService(config)


def now_in(config: Config) -> datetime:
    """Current time in the configured timezone."""
    return datetime.now(ZoneInfo(config.timezone))


def load_snapshot(store: TaskStore, uid: str) -> tuple[list[Task], list[Group]]:
    """Read one consistent-enough view of a user's tasks and groups."""
    return store.list_tasks(uid), store.list_groups(uid)


# ============== Views ==============


def generate_stats(
    config: Config,
    scope: str = "all",
    store: TaskStore | None = None,
    now: datetime | None = None,
) -> Stats:
    """Compute statistics over the tasks in scope (active, completed or all)."""
    store = store or get_store(config)
    tasks, groups = load_snapshot(store, config.user_id)
    return compute_stats(filter_scope(tasks, scope), groups, now or now_in(config))


def generate_stats_report(config: Config, scope: str = "all", store: TaskStore | None = None) -> str:
    return format_stats(generate_stats(config, scope, store))


def generate_matrix(
    config: Config,
    show_completed: bool = False,
    sort_by: str = "due_date",
    store: TaskStore | None = None,
) -> str:
    """Render the Eisenhower matrix for the configured user."""
    store = store or get_store(config)
    tasks, groups = load_snapshot(store, config.user_id)
    buckets = group_by_quadrant(tasks, show_completed=show_completed, sort_by=sort_by)
    group_names = {g.id: g.name for g in groups}
    return format_matrix(buckets, group_names, now_in(config).date())


def upcoming_entries(config: Config, days: int = 7, store: TaskStore | None = None) -> list[CalendarEntry]:
    """Calendar entries due between today and today + days (overdue included)."""
    store = store or get_store(config)
    today = now_in(config).date()
    tasks = [
        t
        for t in store.list_tasks(config.user_id)
        if t.due_date and (t.due_date - today).days < days and not (t.completed and t.due_date < today)
    ]
    return calendar_entries(tasks)


def export_ical(config: Config, store: TaskStore | None = None, now: datetime | None = None) -> bytes:
    """Serialize the user's dated tasks as an iCal feed."""
    store = store or get_store(config)
    tasks, groups = load_snapshot(store, config.user_id)
    cal = build_calendar(tasks, groups, tz=config.timezone, now=now)
    return cal.to_ical()


def calendar_token(config: Config, store: TaskStore | None = None) -> str:
    """Token identifying the user's calendar feed, created on first use."""
    store = store or get_store(config)
    return store.get_or_create_calendar_token(config.user_id, config.timezone)


# ============== Task Mutations ==============


def next_order(store: TaskStore, uid: str) -> int:
    """Order value that places a new task after every existing one."""
    return max((t.order for t in store.list_tasks(uid)), default=-1) + 1


def add_task(config: Config, fields: dict, store: TaskStore | None = None) -> str:
    """Create a task with defaults for every field the caller omitted."""
    store = store or get_store(config)
    doc = {
        "notes": "",
        "urgent": None,
        "important": None,
        "reminder": False,
        "dueDate": None,
        "dueTime": None,
        "groupId": None,
        "autoUrgentDays": None,
        "completed": False,
        **fields,
    }
    if not str(doc.get("title", "")).strip():
        raise ValueError("Task title must not be empty")
    doc["order"] = next_order(store, config.user_id)
    return store.create_task(config.user_id, doc)


def set_completed(config: Config, task_id: str, completed: bool = True, store: TaskStore | None = None) -> None:
    store = store or get_store(config)
    store.update_task(config.user_id, task_id, {"completed": completed})


def move_to_quadrant(config: Config, task_id: str, quadrant: Quadrant, store: TaskStore | None = None) -> None:
    """Set a task's flags so it lands in the given quadrant."""
    store = store or get_store(config)
    urgent, important = quadrant_flags(quadrant)
    store.update_task(config.user_id, task_id, {"urgent": urgent, "important": important})


def edit_task(config: Config, task_id: str, fields: dict, store: TaskStore | None = None) -> None:
    """
    Update the given fields of a task.

    Clearing the due date clears the due time too, and a due time can only be
    set on a task that has (or is given) a due date.
    """
    if not fields:
        raise ValueError("Nothing to update")
    if "title" in fields and not str(fields["title"] or "").strip():
        raise ValueError("Task title must not be empty")

    store = store or get_store(config)
    fields = dict(fields)
    if "dueDate" in fields and fields["dueDate"] is None:
        fields["dueTime"] = None
    elif fields.get("dueTime") and "dueDate" not in fields:
        current = next((t for t in store.list_tasks(config.user_id) if t.id == task_id), None)
        if current is None:
            raise StoreError(f"Task not found: {task_id}")
        if not current.due_date:
            raise ValueError("A due time needs a due date")
    store.update_task(config.user_id, task_id, fields)


def add_group(config: Config, name: str, color: str | None = None, store: TaskStore | None = None) -> str:
    store = store or get_store(config)
    if not name.strip():
        raise ValueError("Group name must not be empty")
    order = max((g.order for g in store.list_groups(config.user_id)), default=-1) + 1
    return store.create_group(config.user_id, {"name": name.strip(), "color": color, "order": order})


def edit_group(
    config: Config,
    group_id: str,
    name: str | None = None,
    color: str | None = None,
    store: TaskStore | None = None,
) -> None:
    """Rename and/or recolour a group."""
    fields = {}
    if name is not None:
        if not name.strip():
            raise ValueError("Group name must not be empty")
        fields["name"] = name.strip()
    if color is not None:
        fields["color"] = color or None
    if not fields:
        raise ValueError("Nothing to update")
    store = store or get_store(config)
    store.update_group(config.user_id, group_id, fields)


# ============== Natural-Language Parsing ==============


def parse_task_text(
    text: str,
    config: Config,
    llm: LLMService | None = None,
    today: date | None = None,
) -> ParsedTask:
    """Ask the model to turn free text into a task draft."""
    if not text or not text.strip():
        raise ParseError("Missing text input.")
    llm = llm or get_llm(config)
    today = today or now_in(config).date()
    content = llm.complete_json(build_system_prompt(today, config.timezone), text.strip())
    parsed = normalize_result(parse_model_output(content))
    if not parsed.title:
        parsed.title = text.strip()
    return parsed


def save_parsed_task(config: Config, parsed: ParsedTask, store: TaskStore | None = None) -> str:
    return add_task(config, parsed.to_task_fields(), store)


def save_drafts(config: Config, drafts: list[ParsedTask], store: TaskStore | None = None) -> list[str]:
    """Create a task for each draft, in order. Returns the new ids."""
    store = store or get_store(config)
    return [add_task(config, d.to_task_fields(), store) for d in drafts]


def chat(
    text: str,
    config: Config,
    llm: LLMService | None = None,
    store: TaskStore | None = None,
    today: date | None = None,
) -> ChatReply:
    """Ask the assistant about existing tasks, or for new task drafts."""
    if not text or not text.strip():
        raise ParseError("Missing text input.")
    store = store or get_store(config)
    llm = llm or get_llm(config)
    tasks, groups = load_snapshot(store, config.user_id)
    today = today or now_in(config).date()
    prompt = build_chat_prompt(today, config.timezone, groups, tasks)
    content = llm.complete_json(prompt, text.strip())
    reply = normalize_chat_response(parse_model_output(content), groups)
    logger.debug(f"Assistant replied with {reply.kind} ({len(reply.tasks)} drafts)")
    return reply


# ============== Auto-Urgent ==============


def build_monitor(
    config: Config,
    scheduler: BaseScheduler,
    store: TaskStore | None = None,
) -> AutoUrgentMonitor:
    """Monitor that re-reads the user's tasks from the store on every tick."""
    store = store or get_store(config)
    return AutoUrgentMonitor(
        config.user_id,
        store,
        scheduler,
        source=lambda: store.list_tasks(config.user_id),
        interval_minutes=config.auto_urgent_interval_minutes,
        clock=lambda: now_in(config),
    )
