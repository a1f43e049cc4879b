"""Pure natural-language task parsing helpers - no I/O dependencies.

The model call itself lives behind the LLMService port; this module builds
the instructions and turns whatever comes back into a well-formed task draft.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import date

from .tasks import Group, Quadrant, Task, quadrant_flags

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^\d{2}:\d{2}$")
TIME_SOURCES = ("explicit", "guessed", "none")


class ParseError(Exception):
    """Raised when model output cannot be turned into a task."""

    pass


@dataclass
class ParsedTask:
    """A task draft extracted from free text."""

    title: str
    notes: str
    due_date: str | None
    due_time: str | None
    reminder: bool
    urgent: bool
    important: bool
    time_source: str
    group_id: str | None = None

    def to_task_fields(self) -> dict:
        """Backend document fields for a new task created from this draft."""
        return {
            "title": self.title,
            "notes": self.notes,
            "dueDate": self.due_date,
            "dueTime": self.due_time,
            "reminder": self.reminder,
            "urgent": self.urgent,
            "important": self.important,
            "groupId": self.group_id,
        }


def build_system_prompt(today: date | str | None = None, timezone: str | None = None) -> str:
    """Instructions sent ahead of the user's text."""
    today_str = today.isoformat() if isinstance(today, date) else (today or "unknown")
    return "\n".join(
        [
            "Return ONLY valid JSON.",
            "Fields: title, notes, dueDate (YYYY-MM-DD or null), dueTime (HH:mm or null), "
            "reminder, urgent, important, timeSource (explicit|guessed|none).",
            f"Today: {today_str}; Timezone: {timezone or 'unknown'}.",
            "If weekday/relative date -> next valid date.",
            "If date but no time -> guess time and set timeSource=guessed.",
            "If explicit time -> timeSource=explicit.",
            "If no date -> dueDate/dueTime null, timeSource=none.",
            "Title short; notes optional.",
        ]
    )


def first_json_object(text: str) -> str | None:
    """Slice from the first "{" to the last "}", or None if there is no such span."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1]


def parse_model_output(content: str) -> dict:
    """Decode model output, tolerating prose around the JSON object."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        candidate = first_json_object(content)
        if candidate is None:
            raise ParseError("Failed to parse AI output.")
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise ParseError(f"Failed to parse AI output: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("AI output is not a JSON object.")
    return data


def normalize_result(raw: dict) -> ParsedTask:
    """
    Coerce a loosely-typed model response into a ParsedTask.

    Dates and times that do not match YYYY-MM-DD / HH:MM are dropped, a time
    without a date is dropped, and time_source falls back to "none" whenever
    there is no date and time to describe.
    """
    title = raw.get("title").strip() if isinstance(raw.get("title"), str) else ""
    notes = raw.get("notes").strip() if isinstance(raw.get("notes"), str) else ""

    due_date = raw.get("dueDate")
    if not (isinstance(due_date, str) and DATE_RE.match(due_date)):
        due_date = None

    due_time = raw.get("dueTime")
    if not (isinstance(due_time, str) and TIME_RE.match(due_time)) or not due_date:
        due_time = None

    time_source = raw.get("timeSource")
    if time_source not in ("explicit", "guessed") or not due_time:
        time_source = "none"

    return ParsedTask(
        title=title,
        notes=notes,
        due_date=due_date,
        due_time=due_time,
        reminder=bool(raw.get("reminder")),
        urgent=bool(raw.get("urgent")),
        important=bool(raw.get("important")),
        time_source=time_source,
    )


# ============== Assistant Chat ==============

CHAT_TASK_LIMIT = 4


@dataclass
class ChatReply:
    """Assistant reply: either a plain answer or task drafts to confirm."""

    kind: str  # "answer" or "tasks"
    message: str
    tasks: list[ParsedTask] = field(default_factory=list)


def describe_existing_task(task: Task, group_names: dict[str, str]) -> str:
    """One line of task context for the assistant."""
    parts = [f'"{task.title}"']
    if task.due_date:
        due = f"due: {task.due_date.isoformat()}"
        if task.due_time:
            due += f" at {task.due_time.strftime('%H:%M')}"
        parts.append(due)
    if task.group_id and task.group_id in group_names:
        parts.append(f"list: {group_names[task.group_id]}")
    if task.completed:
        parts.append("(completed)")
    if task.notes:
        parts.append(f"notes: {task.notes}")
    return " | ".join(parts)


def build_chat_prompt(
    today: date | str | None,
    timezone: str | None,
    groups: list[Group],
    tasks: list[Task],
) -> str:
    """
    Instructions for the assistant, with the user's groups and tasks as context.

    The model either answers a question about existing tasks or proposes new
    ones, always as a single JSON object.
    """
    today_str = today.isoformat() if isinstance(today, date) else (today or "unknown")
    group_names = {g.id: g.name for g in groups}
    context = "\n".join(
        f"{i}. {describe_existing_task(t, group_names)}" for i, t in enumerate(tasks, start=1)
    ) or "No existing tasks."

    return "\n".join(
        [
            "You are a friendly task management assistant. You can do TWO things:",
            "1. ANSWER QUESTIONS about the user's existing tasks (schedule, deadlines, what's due, etc.)",
            "2. CREATE NEW TASKS when the user wants to add reminders or to-dos.",
            "",
            "Return ONLY valid JSON in this format:",
            '{ "type": "answer", "message": "your helpful response" }',
            "OR",
            '{ "type": "tasks", "message": "short description", "tasks": [ ... ] }',
            "",
            "For task creation, each task has: title, notes, dueDate (YYYY-MM-DD or null), "
            "dueTime (HH:mm or null), priority (DO|SCHEDULE|DELEGATE|DELETE), group (string or null), "
            "timeSource (explicit|guessed|none).",
            "",
            f"Today: {today_str}; Timezone: {timezone or 'unknown'}.",
            f"Available groups/lists: {', '.join(g.name for g in groups) or 'none'}.",
            "",
            "RULES FOR ANSWERING QUESTIONS:",
            "- Use the task list below to answer questions about what's due, upcoming deadlines, etc.",
            "- Be concise and friendly. Never use emoji.",
            "- Never show raw ISO dates; use 'Feb 19' or relative words ('tomorrow', 'this Friday').",
            "- Never use 24-hour time; write '9:00 AM' or '5:00 PM'.",
            "- Use **bold** for section headers or key labels.",
            "RULES FOR CREATING TASKS:",
            "- Guess dates generously: 'soon'/'asap' -> 1-2 days, 'today'/'tonight' -> today.",
            "- If weekday/relative date -> next valid date.",
            f"- Max {CHAT_TASK_LIMIT} tasks per request.",
            "- Title short; notes optional but helpful.",
            "- Priority: infer from urgency; default DO.",
            "- Group: best matching list name if provided.",
            "",
            "The user's existing tasks:",
            context,
        ]
    )


def _priority(value) -> Quadrant:
    """Quadrant named by the model, DO when missing or unknown."""
    if isinstance(value, str):
        return Quadrant.__members__.get(value.strip().upper(), Quadrant.DO)
    return Quadrant.DO


def normalize_chat_response(raw: dict, groups: list[Group]) -> ChatReply:
    """
    Coerce an assistant response into a ChatReply.

    Anything other than type "tasks" is treated as an answer. Task drafts go
    through normalize_result; their priority becomes urgent/important flags
    and their group name is matched case-insensitively against known groups.
    Drafts without a title are dropped and at most CHAT_TASK_LIMIT are kept.
    """
    message = raw.get("message").strip() if isinstance(raw.get("message"), str) else ""
    if raw.get("type") != "tasks":
        return ChatReply(kind="answer", message=message)

    group_ids = {g.name.casefold(): g.id for g in groups}
    items = raw.get("tasks") if isinstance(raw.get("tasks"), list) else []

    drafts = []
    for item in items:
        if not isinstance(item, dict):
            continue
        draft = normalize_result(item)
        if not draft.title:
            continue
        draft.urgent, draft.important = quadrant_flags(_priority(item.get("priority")))
        group = item.get("group")
        if isinstance(group, str):
            draft.group_id = group_ids.get(group.strip().casefold())
        drafts.append(draft)
        if len(drafts) == CHAT_TASK_LIMIT:
            break

    return ChatReply(kind="tasks", message=message, tasks=drafts)
