"""Pure statistics aggregation over a task snapshot - no I/O dependencies."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .tasks import Group, Quadrant, Task

GENERAL_NAME = "General"
GENERAL_COLOR = "#64748b"
DEFAULT_GROUP_COLOR = "#6366f1"

WINDOW_DAYS = 30
RECENT_LIMIT = 8
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


@dataclass
class GroupInfo:
    """Resolved display name and color for a group id."""

    name: str
    color: str


@dataclass
class DailyStats:
    """Creation and completion counts for one calendar day."""

    date: date
    created: int = 0
    completed: int = 0
    by_group: dict[str, int] = field(default_factory=dict)


@dataclass
class QuadrantCount:
    name: str
    value: int
    color: str


@dataclass
class HeatCell:
    day: int  # 0-6 (Sun-Sat)
    hour: int  # 0-23
    count: int


@dataclass
class Streak:
    current: int
    longest: int
    last_active_date: date | None


@dataclass
class GroupUsage:
    name: str
    color: str
    count: int


@dataclass
class QuickStats:
    total_tasks: int
    completed_tasks: int
    completion_rate: float
    avg_tasks_per_day: float
    most_productive_day: str
    most_used_group: GroupUsage | None
    avg_completion_time: float | None  # hours
    tasks_this_week: int
    tasks_completed_this_week: int


@dataclass
class RecentCompletion:
    id: str
    title: str
    completed_at: datetime
    group: GroupInfo


@dataclass
class Stats:
    """Everything the statistics view renders."""

    group_color_map: dict[str, GroupInfo]
    daily_series: list[DailyStats]
    stacked_series: list[dict]
    quadrant_histogram: list[QuadrantCount]
    heat_map: list[HeatCell]
    max_heat_count: int
    streak: Streak
    quick_stats: QuickStats
    recent_completions: list[RecentCompletion]


def _localize(ts: datetime, now: datetime) -> datetime:
    """Express a timestamp in now's timezone."""
    if now.tzinfo is not None and ts.tzinfo is not None:
        return ts.astimezone(now.tzinfo)
    return ts


def _weekday(d: datetime) -> int:
    """Day of week with Sunday = 0."""
    return (d.weekday() + 1) % 7


def _completed_stamps(tasks: list[Task], now: datetime) -> list[datetime]:
    return [_localize(t.updated_at, now) for t in tasks if t.completed and t.updated_at]


def build_group_color_map(groups: list[Group]) -> dict[str, GroupInfo]:
    """Map group id to display info, with "" for the General bucket."""
    mapping = {"": GroupInfo(GENERAL_NAME, GENERAL_COLOR)}
    for g in groups:
        mapping[g.id] = GroupInfo(g.name, g.color or DEFAULT_GROUP_COLOR)
    return mapping


def daily_series(tasks: list[Task], now: datetime) -> list[DailyStats]:
    """
    Created/completed counts for the 30 days ending today, oldest first.

    Creation is bucketed by created_at (and by group); completion is
    bucketed independently by updated_at.
    """
    today = now.date()
    days = [DailyStats(date=today - timedelta(days=i)) for i in range(WINDOW_DAYS - 1, -1, -1)]
    by_date = {d.date: d for d in days}

    for t in tasks:
        if t.created_at:
            day = by_date.get(_localize(t.created_at, now).date())
            if day:
                day.created += 1
                day.by_group[t.group_key] = day.by_group.get(t.group_key, 0) + 1
        if t.completed and t.updated_at:
            day = by_date.get(_localize(t.updated_at, now).date())
            if day:
                day.completed += 1

    return days


def stacked_series(days: list[DailyStats], group_color_map: dict[str, GroupInfo]) -> list[dict]:
    """One row per day with a zero-filled column per known group id."""
    rows = []
    for d in days:
        row: dict = {"date": d.date.isoformat(), "display_date": f"{d.date:%b} {d.date.day}"}
        for gid in group_color_map:
            row[gid] = d.by_group.get(gid, 0)
        rows.append(row)
    return rows


def quadrant_histogram(tasks: list[Task]) -> list[QuadrantCount]:
    """Quadrant counts over incomplete tasks; unclassified tasks are ignored."""
    counts = Counter(t.quadrant for t in tasks if not t.completed and t.quadrant is not None)
    return [QuadrantCount(q.label, counts.get(q, 0), q.color) for q in Quadrant]


def heat_map(tasks: list[Task], now: datetime) -> tuple[list[HeatCell], int]:
    """
    7x24 completion grid by local weekday and hour.

    Returns the 168 cells and the max count (at least 1).
    """
    grid = [[0] * 24 for _ in range(7)]
    for stamp in _completed_stamps(tasks, now):
        grid[_weekday(stamp)][stamp.hour] += 1

    cells = [HeatCell(day, hour, grid[day][hour]) for day in range(7) for hour in range(24)]
    return cells, max(1, *(c.count for c in cells))


def _run_lengths(dates: list[date]) -> list[int]:
    """Lengths of consecutive-day runs in a descending list of dates."""
    runs = []
    length = 0
    previous = None
    for d in dates:
        if previous is not None and (previous - d).days == 1:
            length += 1
        else:
            if length:
                runs.append(length)
            length = 1
        previous = d
    if length:
        runs.append(length)
    return runs


def streak(tasks: list[Task], now: datetime) -> Streak:
    """
    Current and longest runs of consecutive completion days.

    The current streak only counts if the latest completion was today or
    yesterday.
    """
    dates = sorted({stamp.date() for stamp in _completed_stamps(tasks, now)}, reverse=True)
    if not dates:
        return Streak(current=0, longest=0, last_active_date=None)

    runs = _run_lengths(dates)
    today = now.date()
    current = runs[0] if dates[0] in (today, today - timedelta(days=1)) else 0
    return Streak(current=current, longest=max(runs), last_active_date=dates[0])


def completion_rate(total: int, completed: int) -> float:
    """Percentage of tasks completed, 0 when there are no tasks."""
    if total <= 0:
        return 0.0
    return completed / total * 100


def average_completion_hours(tasks: list[Task]) -> float | None:
    """Mean hours from creation to completion over positive deltas."""
    deltas = []
    for t in tasks:
        if t.completed and t.created_at and t.updated_at:
            seconds = (t.updated_at - t.created_at).total_seconds()
            if seconds > 0:
                deltas.append(seconds)
    if not deltas:
        return None
    return sum(deltas) / len(deltas) / 3600


def quick_stats(
    tasks: list[Task],
    group_color_map: dict[str, GroupInfo],
    now: datetime,
) -> QuickStats:
    """Scalar summary figures for the statistics header."""
    completed = [t for t in tasks if t.completed]
    week_ago = now.date() - timedelta(days=7)

    tasks_this_week = sum(
        1 for t in tasks if t.created_at and _localize(t.created_at, now).date() >= week_ago
    )
    tasks_completed_this_week = sum(
        1 for t in completed if t.updated_at and _localize(t.updated_at, now).date() >= week_ago
    )

    # Ties resolve to the earliest weekday
    day_counts = Counter(_weekday(stamp) for stamp in _completed_stamps(tasks, now))
    if day_counts:
        top_day = max(sorted(day_counts), key=lambda d: day_counts[d])
        most_productive_day = DAY_NAMES[top_day]
    else:
        most_productive_day = "N/A"

    # Ties resolve to the first group seen
    group_counts = Counter(t.group_key for t in tasks)
    most_used_group = None
    if group_counts:
        gid, count = group_counts.most_common(1)[0]
        info = group_color_map.get(gid, GroupInfo(GENERAL_NAME, GENERAL_COLOR))
        most_used_group = GroupUsage(info.name, info.color, count)

    creation_days = {_localize(t.created_at, now).date() for t in tasks if t.created_at}
    avg_tasks_per_day = len(tasks) / min(WINDOW_DAYS, len(creation_days)) if creation_days else 0.0

    return QuickStats(
        total_tasks=len(tasks),
        completed_tasks=len(completed),
        completion_rate=completion_rate(len(tasks), len(completed)),
        avg_tasks_per_day=avg_tasks_per_day,
        most_productive_day=most_productive_day,
        most_used_group=most_used_group,
        avg_completion_time=average_completion_hours(completed),
        tasks_this_week=tasks_this_week,
        tasks_completed_this_week=tasks_completed_this_week,
    )


def recent_completions(
    tasks: list[Task],
    group_color_map: dict[str, GroupInfo],
    limit: int = RECENT_LIMIT,
) -> list[RecentCompletion]:
    """Most recently completed tasks, newest first."""
    done = sorted(
        (t for t in tasks if t.completed and t.updated_at),
        key=lambda t: t.updated_at.timestamp(),
        reverse=True,
    )
    return [
        RecentCompletion(
            id=t.id,
            title=t.title,
            completed_at=t.updated_at,
            group=group_color_map.get(t.group_key, GroupInfo(GENERAL_NAME, GENERAL_COLOR)),
        )
        for t in done[:limit]
    ]


def compute_stats(tasks: list[Task], groups: list[Group], now: datetime | None = None) -> Stats:
    """
    Derive every statistics structure from one task/group snapshot.

    The caller filters tasks to the desired scope beforehand. now decides the
    30-day window, "today" for streaks and the timezone that timestamps are
    read in.

    Pure function - no I/O.
    """
    now = now or datetime.now().astimezone()
    group_color_map = build_group_color_map(groups)
    days = daily_series(tasks, now)
    cells, max_count = heat_map(tasks, now)

    return Stats(
        group_color_map=group_color_map,
        daily_series=days,
        stacked_series=stacked_series(days, group_color_map),
        quadrant_histogram=quadrant_histogram(tasks),
        heat_map=cells,
        max_heat_count=max_count,
        streak=streak(tasks, now),
        quick_stats=quick_stats(tasks, group_color_map, now),
        recent_completions=recent_completions(tasks, group_color_map),
    )
