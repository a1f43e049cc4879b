"""Tests for core task logic."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from taskapp.core.tasks import (
    Group,
    Quadrant,
    Task,
    classify,
    filter_by_group,
    filter_overdue,
    filter_scope,
    group_by_quadrant,
    quadrant_flags,
    sort_tasks,
)


@pytest.fixture
def today():
    return date(2025, 1, 15)


class TestClassify:
    def test_urgent_important_is_do(self):
        assert classify(True, True) is Quadrant.DO

    def test_important_only_is_schedule(self):
        assert classify(False, True) is Quadrant.SCHEDULE

    def test_urgent_only_is_delegate(self):
        assert classify(True, False) is Quadrant.DELEGATE

    def test_neither_is_delete(self):
        assert classify(False, False) is Quadrant.DELETE

    @pytest.mark.parametrize("urgent,important", [(None, True), (True, None), (None, None), (None, False)])
    def test_unset_axis_is_unclassified(self, urgent, important):
        assert classify(urgent, important) is None

    def test_four_quadrants_without_overlap(self):
        results = {classify(u, i) for u in (True, False) for i in (True, False)}
        assert results == set(Quadrant)

    def test_labels_and_colors(self):
        assert [q.label for q in Quadrant] == ["Do First", "Schedule", "Delegate", "Eliminate"]
        assert Quadrant.DO.color == "#ef4444"
        assert Quadrant.DELETE.color == "#6b7280"

    def test_task_quadrant_ignores_other_fields(self, make_task):
        base = make_task(urgent=True, important=False)
        other = make_task(
            urgent=True,
            important=False,
            title="Different",
            completed=True,
            due_date=date(2030, 1, 1),
            group_id="g1",
            auto_urgent_days=2,
        )
        assert base.quadrant == other.quadrant == Quadrant.DELEGATE

    @pytest.mark.parametrize("quadrant", list(Quadrant))
    def test_quadrant_flags_roundtrip(self, quadrant):
        assert classify(*quadrant_flags(quadrant)) is quadrant


class TestFromDocument:
    def test_full_document(self):
        task = Task.from_document(
            "abc",
            {
                "title": "Pay rent",
                "notes": "landlord",
                "urgent": True,
                "important": None,
                "dueDate": "2026-03-01",
                "dueTime": "09:30",
                "groupId": "g1",
                "autoUrgentDays": 2,
                "completed": False,
                "order": 3,
                "createdAt": "2026-02-01T10:00:00Z",
                "updatedAt": "2026-02-02T11:00:00.123456Z",
            },
        )
        assert task.id == "abc"
        assert task.urgent is True
        assert task.important is None
        assert task.quadrant is None
        assert task.due_date == date(2026, 3, 1)
        assert task.due_time == time(9, 30)
        assert task.group_id == "g1"
        assert task.auto_urgent_days == 2
        assert task.order == 3
        assert task.created_at == datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)
        assert task.updated_at.tzinfo is not None

    def test_missing_and_malformed_fields_degrade(self):
        task = Task.from_document(
            "x",
            {"title": "T", "dueDate": "not-a-date", "dueTime": "09:30", "createdAt": "garbage", "groupId": ""},
        )
        assert task.due_date is None
        assert task.due_time is None  # time without a date is meaningless
        assert task.created_at is None
        assert task.group_id is None
        assert task.urgent is None
        assert task.completed is False

    def test_bool_auto_urgent_days_ignored(self):
        task = Task.from_document("x", {"title": "T", "autoUrgentDays": True})
        assert task.auto_urgent_days is None

    @pytest.mark.parametrize("order", ["first", True, None, [1]])
    def test_non_numeric_order_defaults_to_zero(self, order):
        assert Task.from_document("x", {"title": "T", "order": order}).order == 0
        assert Group.from_document("g", {"name": "G", "order": order}).order == 0

    def test_float_order_truncated(self):
        assert Task.from_document("x", {"title": "T", "order": 2.0}).order == 2

    def test_to_document_roundtrip(self):
        task = Task(
            id="x",
            title="T",
            urgent=False,
            important=True,
            due_date=date(2026, 3, 1),
            due_time=time(8, 0),
            auto_urgent_days=1,
        )
        again = Task.from_document("x", task.to_document())
        assert again == task

    def test_group_from_document(self):
        group = Group.from_document("g1", {"name": "Work", "color": "", "order": 2})
        assert group == Group(id="g1", name="Work", color=None, order=2)


class TestFilterScope:
    def test_scopes(self, make_task):
        tasks = [make_task(id="a"), make_task(id="b", completed=True)]
        assert [t.id for t in filter_scope(tasks, "active")] == ["a"]
        assert [t.id for t in filter_scope(tasks, "completed")] == ["b"]
        assert [t.id for t in filter_scope(tasks, "all")] == ["a", "b"]

    def test_unknown_scope(self, make_task):
        with pytest.raises(ValueError):
            filter_scope([], "archived")


class TestSortTasks:
    def test_incomplete_first_then_due_then_order(self, make_task, today):
        tasks = [
            make_task(id="done", completed=True, due_date=today),
            make_task(id="undated-1", order=1),
            make_task(id="later", due_date=today + timedelta(days=3)),
            make_task(id="undated-0", order=0),
            make_task(id="sooner", due_date=today, due_time=time(9, 0)),
        ]
        ordered = [t.id for t in sort_tasks(tasks)]
        assert ordered == ["sooner", "later", "undated-0", "undated-1", "done"]

    def test_alpha(self, make_task):
        tasks = [make_task(id="b", title="beta"), make_task(id="a", title="Alpha")]
        assert [t.id for t in sort_tasks(tasks, "alpha")] == ["a", "b"]

    def test_updated_at_newest_first(self, make_task):
        old = make_task(id="old", updated_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
        new = make_task(id="new", updated_at=datetime(2026, 2, 1, tzinfo=timezone.utc))
        assert [t.id for t in sort_tasks([old, new], "updated_at")] == ["new", "old"]

    def test_priority_puts_unclassified_last(self, make_task):
        tasks = [
            make_task(id="none", urgent=None),
            make_task(id="delete", urgent=False, important=False),
            make_task(id="do", urgent=True, important=True),
            make_task(id="schedule", urgent=False, important=True),
        ]
        assert [t.id for t in sort_tasks(tasks, "priority")] == ["do", "schedule", "delete", "none"]

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            sort_tasks([], "color")


class TestGroupByQuadrant:
    def test_all_keys_present(self):
        buckets = group_by_quadrant([])
        assert set(buckets) == set(Quadrant) | {None}

    def test_buckets_and_hides_completed(self, make_task):
        tasks = [
            make_task(id="do", urgent=True, important=True),
            make_task(id="done", urgent=True, important=True, completed=True),
            make_task(id="inbox", urgent=None, important=None),
        ]
        buckets = group_by_quadrant(tasks)
        assert [t.id for t in buckets[Quadrant.DO]] == ["do"]
        assert [t.id for t in buckets[None]] == ["inbox"]

        with_done = group_by_quadrant(tasks, show_completed=True)
        assert [t.id for t in with_done[Quadrant.DO]] == ["do", "done"]

    def test_group_filter_uses_empty_string_for_general(self, make_task):
        tasks = [make_task(id="general"), make_task(id="work", group_id="g-work")]
        buckets = group_by_quadrant(tasks, group_ids={""})
        assert [t.id for t in buckets[Quadrant.DELETE]] == ["general"]


class TestFilters:
    def test_filter_overdue_skips_completed(self, make_task, today):
        tasks = [
            make_task(id="late", due_date=today - timedelta(days=1)),
            make_task(id="late-done", due_date=today - timedelta(days=1), completed=True),
            make_task(id="today", due_date=today),
        ]
        assert [t.id for t in filter_overdue(tasks, today)] == ["late"]

    def test_filter_by_group(self, make_task):
        tasks = [make_task(id="a"), make_task(id="b", group_id="g1")]
        assert [t.id for t in filter_by_group(tasks, None)] == ["a"]
        assert [t.id for t in filter_by_group(tasks, "g1")] == ["b"]

    def test_days_until_due(self, make_task, today):
        assert make_task(due_date=today + timedelta(days=5)).days_until_due(today) == 5
        assert make_task(due_date=today - timedelta(days=2)).days_until_due(today) == -2
        assert make_task().days_until_due(today) is None
