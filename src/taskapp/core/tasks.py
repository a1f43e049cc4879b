"""Pure task domain logic - no I/O dependencies."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum

logger = logging.getLogger(__name__)

UNCLASSIFIED_COLOR = "#94a3b8"


class Quadrant(str, Enum):
    """Eisenhower matrix quadrant."""

    DO = "DO"
    SCHEDULE = "SCHEDULE"
    DELEGATE = "DELEGATE"
    DELETE = "DELETE"

    @property
    def label(self) -> str:
        return QUADRANT_LABELS[self]

    @property
    def color(self) -> str:
        return QUADRANT_COLORS[self]


QUADRANT_LABELS = {
    Quadrant.DO: "Do First",
    Quadrant.SCHEDULE: "Schedule",
    Quadrant.DELEGATE: "Delegate",
    Quadrant.DELETE: "Eliminate",
}

QUADRANT_COLORS = {
    Quadrant.DO: "#ef4444",
    Quadrant.SCHEDULE: "#3b82f6",
    Quadrant.DELEGATE: "#f59e0b",
    Quadrant.DELETE: "#6b7280",
}

PRIORITY_ORDER = {
    Quadrant.DO: 0,
    Quadrant.SCHEDULE: 1,
    Quadrant.DELEGATE: 2,
    Quadrant.DELETE: 3,
}

SCOPES = ("active", "completed", "all")
SORT_KEYS = ("due_date", "created_at", "updated_at", "alpha", "priority")


def classify(urgent: bool | None, important: bool | None) -> Quadrant | None:
    """
    Eisenhower quadrant for a pair of flags, or None if either is unset.

    DO: Urgent + Important
    SCHEDULE: Not Urgent + Important
    DELEGATE: Urgent + Not Important
    DELETE: Not Urgent + Not Important
    """
    if urgent is None or important is None:
        return None
    if urgent and important:
        return Quadrant.DO
    elif not urgent and important:
        return Quadrant.SCHEDULE
    elif urgent and not important:
        return Quadrant.DELEGATE
    else:
        return Quadrant.DELETE


def quadrant_flags(quadrant: Quadrant) -> tuple[bool, bool]:
    """(urgent, important) flags that place a task in the given quadrant."""
    return (
        quadrant in (Quadrant.DO, Quadrant.DELEGATE),
        quadrant in (Quadrant.DO, Quadrant.SCHEDULE),
    )


def _parse_date(value) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value.split("T")[0])
    except ValueError:
        logger.debug(f"Ignoring malformed date: {value!r}")
        return None


def _parse_time(value) -> time | None:
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return time.fromisoformat(value)
    except ValueError:
        logger.debug(f"Ignoring malformed time: {value!r}")
        return None


def _parse_timestamp(value) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring malformed timestamp: {value!r}")
        return None


def _int_or_default(value, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


def _optional_bool(value) -> bool | None:
    if value is None:
        return None
    return bool(value)


@dataclass
class Task:
    """A task with optional Eisenhower flags."""

    id: str
    title: str
    notes: str = ""
    urgent: bool | None = None
    important: bool | None = None
    reminder: bool = False
    due_date: date | None = None
    due_time: time | None = None
    group_id: str | None = None
    auto_urgent_days: int | None = None
    completed: bool = False
    order: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def quadrant(self) -> Quadrant | None:
        return classify(self.urgent, self.important)

    @property
    def group_key(self) -> str:
        """Group id, or "" for the implicit General bucket."""
        return self.group_id or ""

    def due_datetime(self) -> datetime | None:
        """Due date combined with due time (midnight when no time is set)."""
        if not self.due_date:
            return None
        return datetime.combine(self.due_date, self.due_time or time(0, 0))

    def days_until_due(self, as_of: date | None = None) -> int | None:
        """Days until due date (negative if overdue)."""
        if not self.due_date:
            return None
        as_of = as_of or date.today()
        return (self.due_date - as_of).days

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Task":
        """Create Task from a decoded backend document."""
        auto_days = data.get("autoUrgentDays")
        if isinstance(auto_days, bool) or not isinstance(auto_days, (int, float)):
            auto_days = None
        due_date = _parse_date(data.get("dueDate"))
        return cls(
            id=doc_id,
            title=data.get("title", ""),
            notes=data.get("notes") or "",
            urgent=_optional_bool(data.get("urgent")),
            important=_optional_bool(data.get("important")),
            reminder=bool(data.get("reminder", False)),
            due_date=due_date,
            due_time=_parse_time(data.get("dueTime")) if due_date else None,
            group_id=data.get("groupId") or None,
            auto_urgent_days=int(auto_days) if auto_days is not None else None,
            completed=bool(data.get("completed", False)),
            order=_int_or_default(data.get("order")),
            created_at=_parse_timestamp(data.get("createdAt")),
            updated_at=_parse_timestamp(data.get("updatedAt")),
        )

    def to_document(self) -> dict:
        """Serialize to backend document fields. Timestamps are owned by the store."""
        return {
            "title": self.title,
            "notes": self.notes,
            "urgent": self.urgent,
            "important": self.important,
            "reminder": self.reminder,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "dueTime": self.due_time.strftime("%H:%M") if self.due_date and self.due_time else None,
            "groupId": self.group_id,
            "autoUrgentDays": self.auto_urgent_days,
            "completed": self.completed,
            "order": self.order,
        }


@dataclass
class Group:
    """A task group (list)."""

    id: str
    name: str
    color: str | None = None
    order: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Group":
        """Create Group from a decoded backend document."""
        return cls(
            id=doc_id,
            name=data.get("name", ""),
            color=data.get("color") or None,
            order=_int_or_default(data.get("order")),
            created_at=_parse_timestamp(data.get("createdAt")),
        )

    def to_document(self) -> dict:
        return {"name": self.name, "color": self.color, "order": self.order}


def filter_scope(tasks: list[Task], scope: str) -> list[Task]:
    """
    Restrict tasks to a statistics scope: active, completed or all.

    Pure function - no I/O.
    """
    match scope:
        case "active":
            return [t for t in tasks if not t.completed]
        case "completed":
            return [t for t in tasks if t.completed]
        case "all":
            return list(tasks)
    raise ValueError(f"Unknown scope: {scope!r} (expected one of {', '.join(SCOPES)})")


def sort_tasks(tasks: list[Task], sort_by: str = "due_date") -> list[Task]:
    """
    Sort tasks for list and matrix views.

    Incomplete tasks come first. Within that, ordering follows sort_by, then
    due date-time (dated before undated), then manual order.

    Pure function - no I/O.
    """
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_by!r} (expected one of {', '.join(SORT_KEYS)})")

    def due_key(t: Task) -> tuple:
        due = t.due_datetime()
        return (0, due) if due else (1, datetime.min)

    def sort_key(t: Task) -> tuple:
        primary: tuple = ()
        if sort_by == "alpha":
            primary = (t.title.casefold(),)
        elif sort_by == "created_at":
            primary = (t.created_at.timestamp() if t.created_at else 0,)
        elif sort_by == "updated_at":
            # Newest first
            primary = (-(t.updated_at.timestamp() if t.updated_at else 0),)
        elif sort_by == "priority":
            q = t.quadrant
            primary = (PRIORITY_ORDER[q] if q else len(PRIORITY_ORDER),)
        return (t.completed, *primary, *due_key(t), t.order)

    return sorted(tasks, key=sort_key)


def group_by_quadrant(
    tasks: list[Task],
    show_completed: bool = False,
    show_in_progress: bool = True,
    group_ids: set[str] | None = None,
    sort_by: str = "due_date",
) -> dict[Quadrant | None, list[Task]]:
    """
    Bucket tasks into the four quadrants plus None (unclassified).

    Every key is always present. group_ids restricts to the selected
    groups, with "" standing for General.

    Pure function - no I/O.
    """
    buckets: dict[Quadrant | None, list[Task]] = {q: [] for q in Quadrant}
    buckets[None] = []

    for t in tasks:
        if t.completed and not show_completed:
            continue
        if not t.completed and not show_in_progress:
            continue
        if group_ids is not None and t.group_key not in group_ids:
            continue
        buckets[t.quadrant].append(t)

    return {q: sort_tasks(items, sort_by) for q, items in buckets.items()}


def filter_overdue(tasks: list[Task], as_of: date | None = None) -> list[Task]:
    """Filter to incomplete overdue tasks only."""
    as_of = as_of or date.today()
    return [t for t in tasks if not t.completed and t.due_date and t.due_date < as_of]


def filter_by_group(tasks: list[Task], group_id: str | None) -> list[Task]:
    """Filter tasks to a specific group (None or "" for General)."""
    key = group_id or ""
    return [t for t in tasks if t.group_key == key]
