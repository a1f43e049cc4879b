"""Functional core - pure business logic with no I/O."""

from .tasks import Task, Group, Quadrant, classify, filter_scope, sort_tasks, group_by_quadrant
from .stats import Stats, compute_stats
from .auto_urgent import trigger_date, needs_escalation, tasks_to_escalate
from .calendar import CalendarEntry, calendar_entries, build_calendar
from .parsing import ChatReply, ParsedTask, ParseError, normalize_chat_response, normalize_result
from .report import format_chat_reply, format_task_line, format_matrix, format_stats

__all__ = [
    # Tasks
    "Task",
    "Group",
    "Quadrant",
    "classify",
    "filter_scope",
    "sort_tasks",
    "group_by_quadrant",
    # Stats
    "Stats",
    "compute_stats",
    # Auto-urgent
    "trigger_date",
    "needs_escalation",
    "tasks_to_escalate",
    # Calendar
    "CalendarEntry",
    "calendar_entries",
    "build_calendar",
    # Parsing
    "ParsedTask",
    "ParseError",
    "normalize_result",
    "ChatReply",
    "normalize_chat_response",
    # Report
    "format_chat_reply",
    "format_task_line",
    "format_matrix",
    "format_stats",
]
