"""Pure auto-urgent escalation rules - no I/O dependencies."""

from datetime import date, timedelta

from .tasks import Task


def trigger_date(task: Task) -> date | None:
    """Date on which the task should become urgent, or None if no rule applies."""
    if task.auto_urgent_days is None or not task.due_date:
        return None
    return task.due_date - timedelta(days=task.auto_urgent_days)


def needs_escalation(task: Task, today: date) -> bool:
    """
    Whether the task should be flipped to urgent as of today.

    Only incomplete, not-yet-urgent tasks with both a due date and an
    auto-urgent rule qualify. Once urgent is set the task stops matching.
    """
    if task.completed or task.urgent is True:
        return False
    trigger = trigger_date(task)
    return trigger is not None and today >= trigger


def tasks_to_escalate(tasks: list[Task], today: date) -> list[Task]:
    """Filter to tasks whose auto-urgent trigger date has passed."""
    return [t for t in tasks if needs_escalation(t, today)]
