"""TaskApp CLI - Eisenhower task manager."""

import json
import logging
import sys
from dataclasses import asdict
from datetime import date, datetime, time
from pathlib import Path

import click

from .adapters.azure_openai import LLMError
from .adapters.firestore import AuthenticationError
from .config import load_config
from .core.parsing import ParseError
from .core.report import format_calendar_line, format_chat_reply, format_stats, format_task_line
from .core.tasks import SCOPES, SORT_KEYS, Quadrant, filter_by_group, filter_overdue, sort_tasks
from .ports.task_store import StoreError
from .workflows import (
    add_group,
    add_task,
    build_monitor,
    calendar_token,
    chat,
    edit_group,
    edit_task,
    export_ical,
    generate_matrix,
    generate_stats,
    get_store,
    move_to_quadrant,
    now_in,
    parse_task_text,
    save_drafts,
    save_parsed_task,
    set_completed,
    upcoming_entries,
)

DOMAIN_ERRORS = (AuthenticationError, StoreError, LLMError, ParseError, ValueError)


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _normalize_due(due_date: str | None, due_time: str | None) -> tuple[str | None, str | None]:
    """Validate CLI date/time input and return it as YYYY-MM-DD / HH:MM."""
    if due_time and not due_date:
        raise ValueError("--time requires --due")
    if due_date:
        due_date = date.fromisoformat(due_date).isoformat()
    if due_time:
        due_time = time.fromisoformat(due_time).strftime("%H:%M")
    return due_date, due_time


def _task_json(t) -> dict:
    return {
        "id": t.id,
        "title": t.title,
        "notes": t.notes,
        "urgent": t.urgent,
        "important": t.important,
        "quadrant": t.quadrant.value if t.quadrant else None,
        "due_date": t.due_date.isoformat() if t.due_date else None,
        "due_time": t.due_time.strftime("%H:%M") if t.due_time else None,
        "group_id": t.group_id,
        "auto_urgent_days": t.auto_urgent_days,
        "completed": t.completed,
    }


@click.group()
@click.version_option(package_name="taskapp")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """TaskApp - Eisenhower matrix task manager."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


# ============== Tasks ==============


@main.command()
@click.option("--group", "group_id", default=None, help="Only tasks in this group id ('' for General)")
@click.option("--sort", "sort_by", type=click.Choice(SORT_KEYS), default="due_date", show_default=True)
@click.option("--overdue", is_flag=True, help="Only incomplete tasks past their due date")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tasks(group_id: str | None, sort_by: str, overdue: bool, as_json: bool):
    """List tasks."""
    config = load_config()
    try:
        store = get_store(config)
        all_tasks = store.list_tasks(config.user_id)
        groups = store.list_groups(config.user_id)
    except DOMAIN_ERRORS as e:
        _fail(e)

    today = now_in(config).date()
    if group_id is not None:
        all_tasks = filter_by_group(all_tasks, group_id or None)
    if overdue:
        all_tasks = filter_overdue(all_tasks, today)
    ordered = sort_tasks(all_tasks, sort_by)

    if as_json:
        click.echo(json.dumps([_task_json(t) for t in ordered], indent=2))
        return

    if not ordered:
        click.echo("No tasks.")
        return

    group_names = {g.id: g.name for g in groups}
    for task in ordered:
        label = task.quadrant.label if task.quadrant else "-"
        click.echo(f"[{label:9}] {format_task_line(task, group_names, today)[2:]}")


@main.command()
@click.argument("title")
@click.option("--urgent/--not-urgent", default=None, help="Urgency flag (unset if omitted)")
@click.option("--important/--not-important", default=None, help="Importance flag (unset if omitted)")
@click.option("--due", "due_date", default=None, help="Due date (YYYY-MM-DD)")
@click.option("--time", "due_time", default=None, help="Due time (HH:MM)")
@click.option("--group", "group_id", default=None, help="Group id")
@click.option("--auto-urgent", "auto_urgent_days", type=click.IntRange(min=0), default=None,
              help="Mark urgent this many days before the due date")
@click.option("--notes", default="", help="Free-form notes")
def add(title, urgent, important, due_date, due_time, group_id, auto_urgent_days, notes):
    """Add a task."""
    config = load_config()
    try:
        due_date, due_time = _normalize_due(due_date, due_time)
        task_id = add_task(
            config,
            {
                "title": title,
                "notes": notes,
                "urgent": urgent,
                "important": important,
                "dueDate": due_date,
                "dueTime": due_time,
                "groupId": group_id,
                "autoUrgentDays": auto_urgent_days,
            },
        )
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Added {task_id}")


@main.command()
@click.argument("task_id")
def done(task_id: str):
    """Mark a task completed."""
    config = load_config()
    try:
        set_completed(config, task_id, True)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Completed {task_id}")


@main.command()
@click.argument("task_id")
def undo(task_id: str):
    """Mark a task not completed."""
    config = load_config()
    try:
        set_completed(config, task_id, False)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Reopened {task_id}")


@main.command()
@click.argument("task_id")
def rm(task_id: str):
    """Delete a task."""
    config = load_config()
    try:
        get_store(config).delete_task(config.user_id, task_id)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Deleted {task_id}")


@main.command()
@click.argument("task_id")
@click.argument("quadrant", type=click.Choice([q.value for q in Quadrant], case_sensitive=False))
def move(task_id: str, quadrant: str):
    """Move a task into a quadrant (DO, SCHEDULE, DELEGATE, DELETE)."""
    config = load_config()
    target = Quadrant(quadrant.upper())
    try:
        move_to_quadrant(config, task_id, target)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Moved {task_id} to {target.label}")


@main.command()
@click.argument("task_id")
@click.option("--title", default=None, help="New title")
@click.option("--notes", default=None, help="New notes ('' clears)")
@click.option("--due", "due_date", default=None, help="Due date (YYYY-MM-DD)")
@click.option("--no-due", is_flag=True, help="Clear the due date and time")
@click.option("--time", "due_time", default=None, help="Due time (HH:MM); '' clears")
@click.option("--group", "group_id", default=None, help="Group id ('' for General)")
@click.option("--auto-urgent", "auto_urgent_days", type=click.IntRange(min=0), default=None,
              help="Mark urgent this many days before the due date")
@click.option("--no-auto-urgent", is_flag=True, help="Turn auto-urgent off")
def edit(task_id, title, notes, due_date, no_due, due_time, group_id, auto_urgent_days, no_auto_urgent):
    """Edit a task's fields."""
    config = load_config()
    fields = {}
    try:
        if no_due and (due_date or due_time):
            raise ValueError("--no-due cannot be combined with --due or --time")
        if auto_urgent_days is not None and no_auto_urgent:
            raise ValueError("--auto-urgent cannot be combined with --no-auto-urgent")
        if title is not None:
            fields["title"] = title
        if notes is not None:
            fields["notes"] = notes
        if no_due:
            fields["dueDate"] = None
        elif due_date:
            fields["dueDate"] = date.fromisoformat(due_date).isoformat()
        if due_time == "":
            fields["dueTime"] = None
        elif due_time:
            fields["dueTime"] = time.fromisoformat(due_time).strftime("%H:%M")
        if group_id is not None:
            fields["groupId"] = group_id or None
        if no_auto_urgent:
            fields["autoUrgentDays"] = None
        elif auto_urgent_days is not None:
            fields["autoUrgentDays"] = auto_urgent_days
        edit_task(config, task_id, fields)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Updated {task_id}")


# ============== Groups ==============


@main.command()
def groups():
    """List task groups."""
    config = load_config()
    try:
        all_groups = get_store(config).list_groups(config.user_id)
    except DOMAIN_ERRORS as e:
        _fail(e)

    if not all_groups:
        click.echo("No groups.")
        return
    for g in all_groups:
        click.echo(f"{g.id}  {g.name}" + (f" ({g.color})" if g.color else ""))


@main.command("group-add")
@click.argument("name")
@click.option("--color", default=None, help="Hex colour, e.g. #22c55e")
def group_add(name: str, color: str | None):
    """Create a task group."""
    config = load_config()
    try:
        group_id = add_group(config, name, color)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Added group {group_id}")


@main.command("group-edit")
@click.argument("group_id")
@click.option("--name", default=None, help="New name")
@click.option("--color", default=None, help="Hex colour ('' clears)")
def group_edit(group_id: str, name: str | None, color: str | None):
    """Rename or recolour a task group."""
    config = load_config()
    try:
        edit_group(config, group_id, name=name, color=color)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Updated group {group_id}")


@main.command("group-rm")
@click.argument("group_id")
def group_rm(group_id: str):
    """Delete a task group. Its tasks fall back to General."""
    config = load_config()
    try:
        get_store(config).delete_group(config.user_id, group_id)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(f"Deleted group {group_id}")


# ============== Views ==============


@main.command()
@click.option("--completed", "show_completed", is_flag=True, help="Include completed tasks")
@click.option("--sort", "sort_by", type=click.Choice(SORT_KEYS), default="due_date", show_default=True)
def matrix(show_completed: bool, sort_by: str):
    """Show the Eisenhower matrix."""
    config = load_config()
    try:
        click.echo(generate_matrix(config, show_completed=show_completed, sort_by=sort_by))
    except DOMAIN_ERRORS as e:
        _fail(e)


@main.command()
@click.option("--days", default=7, show_default=True, help="How many days ahead")
def calendar(days: int):
    """Show tasks due in the coming days."""
    config = load_config()
    try:
        entries = upcoming_entries(config, days)
    except DOMAIN_ERRORS as e:
        _fail(e)

    if not entries:
        click.echo("Nothing due.")
        return

    current_date = None
    for entry in entries:
        entry_date = entry.start.date() if isinstance(entry.start, datetime) else entry.start
        if entry_date != current_date:
            if current_date is not None:
                click.echo()
            click.echo(f"### {entry_date.strftime('%A, %B %d')}")
            current_date = entry_date
        click.echo(f"  {format_calendar_line(entry)[2:]}")


@main.command()
@click.option("--scope", type=click.Choice(SCOPES), default="all", show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(scope: str, as_json: bool):
    """Show productivity statistics."""
    config = load_config()
    try:
        result = generate_stats(config, scope)
    except DOMAIN_ERRORS as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps(asdict(result), indent=2, default=str))
    else:
        click.echo(format_stats(result))


@main.command()
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write to file instead of stdout")
def ical(output: Path | None):
    """Export dated tasks as an iCal feed."""
    config = load_config()
    try:
        data = export_ical(config)
    except DOMAIN_ERRORS as e:
        _fail(e)

    if output:
        output.write_bytes(data)
        click.echo(f"Calendar saved to {output}")
    else:
        click.echo(data.decode("utf-8"), nl=False)


@main.command("ical-token")
def ical_token():
    """Show the token that identifies your calendar feed."""
    config = load_config()
    try:
        token = calendar_token(config)
    except DOMAIN_ERRORS as e:
        _fail(e)
    click.echo(token)


@main.command()
@click.argument("text")
@click.option("--save", is_flag=True, help="Create the suggested tasks")
def ask(text: str, save: bool):
    """Ask the assistant about your tasks, or have it suggest new ones."""
    config = load_config()
    try:
        store = get_store(config)
        reply = chat(text, config, store=store)
        group_names = {g.id: g.name for g in store.list_groups(config.user_id)}
        click.echo(format_chat_reply(reply, group_names))
        if save and reply.tasks:
            for task_id in save_drafts(config, reply.tasks, store):
                click.echo(f"Added {task_id}")
    except DOMAIN_ERRORS as e:
        _fail(e)


@main.command()
@click.argument("text")
@click.option("--save", is_flag=True, help="Create the parsed task")
def parse(text: str, save: bool):
    """Turn free text into a task with the language model."""
    config = load_config()
    try:
        parsed = parse_task_text(text, config)
        click.echo(json.dumps(asdict(parsed), indent=2))
        if save:
            task_id = save_parsed_task(config, parsed)
            click.echo(f"Added {task_id}")
    except DOMAIN_ERRORS as e:
        _fail(e)


# ============== Long-Running ==============


@main.command()
def watch():
    """Run the auto-urgent monitor in the foreground."""
    from apscheduler.schedulers.blocking import BlockingScheduler

    logging.getLogger("taskapp").setLevel(logging.INFO)
    config = load_config()
    scheduler = BlockingScheduler(timezone=config.timezone)
    try:
        monitor = build_monitor(config, scheduler)
        monitor.start()
    except DOMAIN_ERRORS as e:
        _fail(e)

    click.echo(f"Watching tasks every {config.auto_urgent_interval_minutes} min. Press Ctrl+C to stop")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        monitor.stop()


@main.command()
def bot():
    """Run the Telegram bot."""
    try:
        from .telegram_bot import run_bot
        click.echo("Starting TaskApp Telegram bot...")
        click.echo("Press Ctrl+C to stop")
        run_bot()
    except ImportError as e:
        click.echo("Error: Missing dependencies. Run 'pip install python-telegram-bot apscheduler'", err=True)
        click.echo(f"Details: {e}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
