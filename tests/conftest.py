"""Shared fixtures."""

from datetime import datetime, timezone

import pytest

from taskapp.core.tasks import Group, Task

UTC = timezone.utc


def _stamp(year, month, day, hour=12, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


@pytest.fixture
def stamp():
    """Factory for UTC timestamps, as the store would assign them."""
    return _stamp


@pytest.fixture
def make_task():
    """Factory for Tasks with sensible defaults; override any field."""

    def _make(**overrides) -> Task:
        fields = {
            "id": "task-1",
            "title": "Test Task",
            "urgent": False,
            "important": False,
            "created_at": _stamp(2026, 2, 10),
            "updated_at": _stamp(2026, 2, 10),
        }
        fields.update(overrides)
        return Task(**fields)

    return _make


@pytest.fixture
def groups():
    return [
        Group(id="g-work", name="Work", color="#22c55e", order=0),
        Group(id="g-home", name="Home", color=None, order=1),
    ]
