"""Pure text formatting for the CLI and chat views - no I/O dependencies."""

from datetime import date

from .calendar import CalendarEntry
from .parsing import ChatReply, ParsedTask
from .stats import Stats
from .tasks import Quadrant, Task


def format_due(task: Task, as_of: date | None = None) -> str:
    """Relative due description, or empty string if the task has no due date."""
    as_of = as_of or date.today()
    days = task.days_until_due(as_of)
    if days is None:
        return ""

    time_str = f" {task.due_time.strftime('%H:%M')}" if task.due_time else ""
    if days < 0:
        return f"OVERDUE by {-days}d"
    elif days == 0:
        return f"due TODAY{time_str}"
    else:
        return f"due in {days}d"


def format_task_line(task: Task, group_names: dict[str, str] | None = None, as_of: date | None = None) -> str:
    """
    Format a single task for display.

    Pure function - no I/O.
    """
    check = "x" if task.completed else " "
    details = []
    due = format_due(task, as_of)
    if due:
        details.append(due)
    if group_names is not None and task.group_id:
        details.append(group_names.get(task.group_id, "General"))
    if task.auto_urgent_days is not None and not task.urgent:
        details.append(f"auto-urgent {task.auto_urgent_days}d before")
    suffix = f" ({', '.join(details)})" if details else ""
    return f"- [{check}] {task.title}{suffix}  `{task.id}`"


def format_matrix(
    buckets: dict[Quadrant | None, list[Task]],
    group_names: dict[str, str] | None = None,
    as_of: date | None = None,
) -> str:
    """
    Render the Eisenhower matrix as markdown sections.

    Pure function - no I/O.
    """
    sections = []
    for quadrant in Quadrant:
        lines = "\n".join(format_task_line(t, group_names, as_of) for t in buckets.get(quadrant, []))
        sections.append(f"### {quadrant.label}\n{lines or 'None'}")

    unclassified = buckets.get(None, [])
    if unclassified:
        lines = "\n".join(format_task_line(t, group_names, as_of) for t in unclassified)
        sections.append(f"### Unclassified\n{lines}")

    return "\n\n".join(sections)


def format_calendar_line(entry: CalendarEntry) -> str:
    return f"- {entry.format_time():8} {entry.title}"


def format_draft(parsed: ParsedTask, group_names: dict[str, str] | None = None) -> str:
    """Preview of a parsed task for confirmation."""
    lines = [f"Title: {parsed.title}"]
    if parsed.notes:
        lines.append(f"Notes: {parsed.notes}")
    if parsed.due_date:
        due = parsed.due_date + (f" {parsed.due_time}" if parsed.due_time else "")
        if parsed.time_source == "guessed":
            due += " (time guessed)"
        lines.append(f"Due: {due}")
    flags = [name for name, on in (("urgent", parsed.urgent), ("important", parsed.important)) if on]
    lines.append(f"Flags: {', '.join(flags) or 'none'}")
    if group_names is not None and parsed.group_id:
        lines.append(f"List: {group_names.get(parsed.group_id, 'General')}")
    return "\n".join(lines)


def format_chat_reply(reply: ChatReply, group_names: dict[str, str] | None = None) -> str:
    """Assistant message followed by numbered task drafts, if any."""
    parts = [reply.message] if reply.message else []
    for i, draft in enumerate(reply.tasks, start=1):
        parts.append(f"{i}. " + format_draft(draft, group_names).replace("\n", "\n   "))
    if reply.kind == "tasks" and not reply.tasks:
        parts.append("No tasks to add.")
    return "\n\n".join(parts)


def format_hours(hours: float | None) -> str:
    """Human-readable duration from hours, rounded to one decimal."""
    if hours is None:
        return "N/A"
    if hours >= 24:
        return f"{round(hours / 24, 1)}d"
    return f"{round(hours, 1)}h"


def format_stats(stats: Stats) -> str:
    """
    Render the statistics summary as markdown.

    Pure function - no I/O.
    """
    q = stats.quick_stats
    group = q.most_used_group
    group_str = f"{group.name} ({group.count})" if group else "N/A"

    summary = "\n".join(
        [
            f"- Total tasks: {q.total_tasks}",
            f"- Completed: {q.completed_tasks} ({round(q.completion_rate)}%)",
            f"- Created this week: {q.tasks_this_week}",
            f"- Completed this week: {q.tasks_completed_this_week}",
            f"- Avg tasks per day: {round(q.avg_tasks_per_day, 1)}",
            f"- Avg completion time: {format_hours(q.avg_completion_time)}",
            f"- Most productive day: {q.most_productive_day}",
            f"- Most used list: {group_str}",
        ]
    )

    streak = (
        f"- Current: {stats.streak.current} days\n"
        f"- Longest: {stats.streak.longest} days"
    )

    quadrants = "\n".join(f"- {c.name}: {c.value}" for c in stats.quadrant_histogram)

    recent = "\n".join(
        f"- {r.title} ({r.group.name}, {r.completed_at.strftime('%b %d %H:%M')})"
        for r in stats.recent_completions
    ) or "None yet."

    return f"""### Summary
{summary}

### Streak
{streak}

### Open Tasks by Quadrant
{quadrants}

### Recently Completed
{recent}"""
