"""Tests for calendar projection and the iCal feed."""

from datetime import date, datetime, time, timedelta, timezone

import pytest
from icalendar import Calendar

from taskapp.core.calendar import (
    COMPLETED_COLOR,
    CalendarEntry,
    build_calendar,
    calendar_entries,
)
from taskapp.core.tasks import UNCLASSIFIED_COLOR

NOW = datetime(2026, 2, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def today():
    return date(2026, 2, 19)


def events_of(cal: Calendar) -> dict:
    parsed = Calendar.from_ical(cal.to_ical())
    return {str(e["uid"]): e for e in parsed.walk("VEVENT")}


class TestCalendarEntry:
    def test_format_time(self, today):
        timed = CalendarEntry("a", "A", datetime.combine(today, time(14, 30)), False, "#fff")
        all_day = CalendarEntry("b", "B", today, True, "#fff")
        assert timed.format_time() == "14:30"
        assert all_day.format_time() == "All day"


class TestCalendarEntries:
    def test_skips_undated_and_sorts(self, make_task, today):
        tasks = [
            make_task(id="later", due_date=today + timedelta(days=1)),
            make_task(id="undated"),
            make_task(id="morning", due_date=today, due_time=time(9, 0)),
            make_task(id="allday", due_date=today),
        ]
        entries = calendar_entries(tasks)
        assert [e.id for e in entries] == ["allday", "morning", "later"]
        assert entries[0].all_day
        assert not entries[1].all_day

    def test_late_times_clamped(self, make_task, today):
        tasks = [
            make_task(id="late", due_date=today, due_time=time(23, 45)),
            make_task(id="edge", due_date=today, due_time=time(23, 29)),
        ]
        starts = {e.id: e.start for e in calendar_entries(tasks)}
        assert starts["late"] == datetime.combine(today, time(23, 0))
        assert starts["edge"] == datetime.combine(today, time(23, 29))

    def test_colors(self, make_task, today):
        tasks = [
            make_task(id="do", urgent=True, important=True, due_date=today),
            make_task(id="done", urgent=True, important=True, completed=True, due_date=today),
            make_task(id="inbox", urgent=None, important=None, due_date=today),
        ]
        colors = {e.id: e.color for e in calendar_entries(tasks)}
        assert colors == {"do": "#ef4444", "done": COMPLETED_COLOR, "inbox": UNCLASSIFIED_COLOR}


class TestBuildCalendar:
    def test_calendar_properties(self):
        cal = build_calendar([], [], now=NOW)
        text = cal.to_ical().decode()
        assert "X-WR-CALNAME:TaskApp" in text
        assert "METHOD:PUBLISH" in text
        assert "X-PUBLISHED-TTL:PT15M" in text
        assert "VERSION:2.0" in text

    def test_only_dated_tasks_become_events(self, make_task, groups):
        tasks = [
            make_task(id="a", due_date=date(2026, 3, 1)),
            make_task(id="b"),
        ]
        assert list(events_of(build_calendar(tasks, groups, now=NOW))) == ["a"]

    def test_timed_event_ends_at_due_time(self, make_task, groups):
        task = make_task(id="a", due_date=date(2026, 3, 1), due_time=time(9, 0))
        event = events_of(build_calendar([task], groups, tz="Europe/Berlin", now=NOW))["a"]

        # 09:00 Berlin in winter is 08:00 UTC
        assert event.decoded("dtstart") == datetime(2026, 3, 1, 7, 30, tzinfo=timezone.utc)
        assert event.decoded("dtend") == datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)

    def test_all_day_event_spans_one_day(self, make_task, groups):
        task = make_task(id="a", due_date=date(2026, 3, 1))
        event = events_of(build_calendar([task], groups, now=NOW))["a"]
        assert event.decoded("dtstart") == date(2026, 3, 1)
        assert event.decoded("dtend") == date(2026, 3, 2)

    def test_summary_and_description(self, make_task, groups):
        tasks = [
            make_task(
                id="a",
                title="Ship release",
                notes="tag v2",
                urgent=False,
                important=True,
                group_id="g-work",
                due_date=date(2026, 3, 1),
                due_time=time(17, 0),
            ),
            make_task(id="b", title="Water plants", due_date=date(2026, 3, 2), group_id="gone"),
        ]
        events = events_of(build_calendar(tasks, groups, now=NOW))

        assert str(events["a"]["summary"]) == "Ship release- Work"
        description = str(events["a"]["description"])
        assert "tag v2" in description
        assert "Due: 2026-03-01 at 17:00" in description
        assert "Priority: Schedule" in description
        assert "List: Work" in description

        assert str(events["b"]["summary"]) == "Water plants- General Tasks"

    def test_completed_status(self, make_task, groups):
        tasks = [
            make_task(id="done", completed=True, due_date=date(2026, 3, 1)),
            make_task(id="open", due_date=date(2026, 3, 1)),
        ]
        events = events_of(build_calendar(tasks, groups, now=NOW))
        assert str(events["done"]["status"]) == "CONFIRMED"
        assert "Status: Completed" in str(events["done"]["description"])
        assert "status" not in events["open"]

    def test_unclassified_priority(self, make_task, groups):
        task = make_task(id="a", urgent=None, important=None, due_date=date(2026, 3, 1))
        event = events_of(build_calendar([task], groups, now=NOW))["a"]
        assert "Priority: Unclassified" in str(event["description"])
