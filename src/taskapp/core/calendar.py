"""Calendar projection and iCal feed assembly."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from icalendar import Calendar, Event

from .tasks import Group, Task, UNCLASSIFIED_COLOR

CALENDAR_NAME = "TaskApp"
PRODID = "-//TaskApp//TaskApp Calendar//EN"
COMPLETED_COLOR = "#d1d5db"
FALLBACK_GROUP_NAME = "General Tasks"
LATEST_START = time(23, 0)
REFRESH_INTERVAL = timedelta(minutes=15)
EVENT_LENGTH = timedelta(minutes=30)


@dataclass
class CalendarEntry:
    """A task placed on the calendar view."""

    id: str
    title: str
    start: date | datetime
    all_day: bool
    color: str

    def format_time(self) -> str:
        """Format the entry time for display."""
        if self.all_day:
            return "All day"
        return self.start.strftime("%H:%M")


def calendar_entries(tasks: list[Task]) -> list[CalendarEntry]:
    """
    Project dated tasks onto the calendar, earliest first.

    Times at or after 23:30 are pulled back to 23:00 so the entry stays
    visible at the bottom of a day column.

    Pure function - no I/O.
    """
    entries = []
    for t in tasks:
        if not t.due_date:
            continue

        if t.completed:
            color = COMPLETED_COLOR
        elif t.quadrant:
            color = t.quadrant.color
        else:
            color = UNCLASSIFIED_COLOR

        if t.due_time:
            due_time = LATEST_START if t.due_time >= time(23, 30) else t.due_time
            start: date | datetime = datetime.combine(t.due_date, due_time)
        else:
            start = t.due_date

        entries.append(
            CalendarEntry(id=t.id, title=t.title, start=start, all_day=not t.due_time, color=color)
        )

    return sorted(entries, key=_entry_key)


def _entry_key(entry: CalendarEntry) -> datetime:
    if isinstance(entry.start, datetime):
        return entry.start
    return datetime.combine(entry.start, time(0, 0))


def _describe(task: Task, group_name: str) -> str:
    parts = []
    if task.notes:
        parts.append(task.notes)
    due = f"Due: {task.due_date.isoformat()}"
    if task.due_time:
        due += f" at {task.due_time.strftime('%H:%M')}"
    parts.append(due)
    parts.append(f"Priority: {task.quadrant.label if task.quadrant else 'Unclassified'}")
    parts.append(f"List: {group_name}")
    if task.completed:
        parts.append("Status: Completed")
    return "\n".join(parts)


def build_calendar(
    tasks: list[Task],
    groups: list[Group],
    tz: str = "UTC",
    now: datetime | None = None,
) -> Calendar:
    """
    Build a subscribable iCal calendar from dated tasks.

    Timed tasks become a 30-minute block ending at the due time (read in
    tz); tasks without a time become all-day events. Undated tasks are
    skipped.
    """
    zone = ZoneInfo(tz)
    stamp = now or datetime.now(timezone.utc)
    group_names = {g.id: g.name for g in groups}

    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", CALENDAR_NAME)
    cal.add("x-published-ttl", "PT15M")
    cal.add("refresh-interval", REFRESH_INTERVAL, parameters={"VALUE": "DURATION"})

    for t in tasks:
        if not t.due_date:
            continue

        group_name = group_names.get(t.group_id, FALLBACK_GROUP_NAME) if t.group_id else FALLBACK_GROUP_NAME

        event = Event()
        event.add("uid", t.id)
        event.add("dtstamp", stamp)
        event.add("summary", f"{t.title}- {group_name}")
        event.add("description", _describe(t, group_name))

        if t.due_time:
            due = datetime.combine(t.due_date, t.due_time, tzinfo=zone)
            start = (due - EVENT_LENGTH).astimezone(timezone.utc)
            event.add("dtstart", start)
            event.add("dtend", start + EVENT_LENGTH)
        else:
            event.add("dtstart", t.due_date)
            event.add("dtend", t.due_date + timedelta(days=1))

        if t.completed:
            event.add("status", "CONFIRMED")

        cal.add_component(event)

    return cal
