"""Tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from taskapp.adapters.file_store import FileTaskStore
from taskapp.cli import main
from taskapp.config import Config


@pytest.fixture
def config(tmp_path):
    return Config(user_id="u1", data_dir=str(tmp_path / "data"))


@pytest.fixture
def store(config):
    return FileTaskStore(config.resolved_data_dir())


@pytest.fixture
def run(config):
    runner = CliRunner()

    def _run(*args):
        with patch("taskapp.cli.load_config", return_value=config):
            return runner.invoke(main, list(args))

    return _run


def test_add_and_list(run, store):
    result = run("add", "Pay rent", "--important", "--not-urgent", "--due", "2026-03-01", "--time", "09:00")
    assert result.exit_code == 0
    assert result.output.startswith("Added ")

    [task] = store.list_tasks("u1")
    assert task.title == "Pay rent"
    assert task.urgent is False
    assert task.important is True

    listed = run("tasks", "--json")
    data = json.loads(listed.output)
    assert data[0]["quadrant"] == "SCHEDULE"
    assert data[0]["due_time"] == "09:00"


def test_add_time_without_date_fails(run, store):
    result = run("add", "x", "--time", "09:00")
    assert result.exit_code == 1
    assert "--time requires --due" in result.output
    assert store.list_tasks("u1") == []


def test_add_bad_date_fails(run):
    result = run("add", "x", "--due", "tomorrow")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_add_stores_iso_date_and_time(run, store, config):
    result = run("add", "x", "--due", "20260220", "--time", "09:05:00")
    assert result.exit_code == 0, result.output

    raw = json.loads((config.resolved_data_dir() / "u1.json").read_text())
    [doc] = raw["tasks"].values()
    assert doc["dueDate"] == "2026-02-20"
    assert doc["dueTime"] == "09:05"



def test_done_undo_and_missing(run, store):
    task_id = store.create_task("u1", {"title": "T", "order": 0})

    assert run("done", task_id).exit_code == 0
    assert store.list_tasks("u1")[0].completed is True
    assert run("undo", task_id).exit_code == 0
    assert store.list_tasks("u1")[0].completed is False

    missing = run("done", "nope")
    assert missing.exit_code == 1
    assert "Task not found" in missing.output


def test_move_and_matrix(run, store):
    task_id = store.create_task("u1", {"title": "Fire", "order": 0})
    result = run("move", task_id, "do")
    assert result.exit_code == 0
    assert "Do First" in result.output

    matrix = run("matrix")
    assert "### Do First\n- [ ] Fire" in matrix.output


def test_edit_command_registered():
    assert {"edit", "group-edit", "ask", "ical-token"} <= set(main.commands)


def test_edit_fields(run, store):
    task_id = store.create_task("u1", {"title": "Draft", "order": 0, "notes": "keep"})
    result = run(
        "edit", task_id, "--title", "Final", "--due", "20260301", "--time", "08:30",
        "--group", "g1", "--auto-urgent", "2",
    )
    assert result.exit_code == 0, result.output
    assert f"Updated {task_id}" in result.output

    [task] = store.list_tasks("u1")
    assert task.title == "Final"
    assert task.notes == "keep"
    assert task.due_date.isoformat() == "2026-03-01"
    assert task.due_time.strftime("%H:%M") == "08:30"
    assert task.group_id == "g1"
    assert task.auto_urgent_days == 2

    assert run("edit", task_id, "--no-due", "--group", "", "--no-auto-urgent").exit_code == 0
    [task] = store.list_tasks("u1")
    assert task.due_date is None
    assert task.due_time is None
    assert task.group_id is None
    assert task.auto_urgent_days is None


def test_edit_rejects_bad_input(run, store):
    task_id = store.create_task("u1", {"title": "T", "order": 0})

    nothing = run("edit", task_id)
    assert nothing.exit_code == 1
    assert "Nothing to update" in nothing.output

    no_date = run("edit", task_id, "--time", "09:00")
    assert no_date.exit_code == 1
    assert "due time needs a due date" in no_date.output

    conflicting = run("edit", task_id, "--no-due", "--due", "2026-03-01")
    assert conflicting.exit_code == 1

    missing = run("edit", "nope", "--title", "X")
    assert missing.exit_code == 1
    assert "Task not found" in missing.output
    assert store.list_tasks("u1")[0].title == "T"


def test_rm(run, store):
    task_id = store.create_task("u1", {"title": "T", "order": 0})
    assert run("rm", task_id).exit_code == 0
    assert store.list_tasks("u1") == []


def test_groups(run, store):
    assert run("groups").output.strip() == "No groups."
    assert run("group-add", "Work", "--color", "#22c55e").exit_code == 0
    [group] = store.list_groups("u1")
    assert f"{group.id}  Work (#22c55e)" in run("groups").output

    assert run("group-rm", group.id).exit_code == 0
    assert store.list_groups("u1") == []


def test_group_edit(run, store):
    group_id = store.create_group("u1", {"name": "Work", "color": "#22c55e", "order": 0})
    result = run("group-edit", group_id, "--name", "Office", "--color", "")
    assert result.exit_code == 0, result.output
    assert store.list_groups("u1")[0].name == "Office"
    assert store.list_groups("u1")[0].color is None

    assert run("group-edit", group_id).exit_code == 1
    assert run("group-edit", "nope", "--name", "X").exit_code == 1


def test_stats(run, store):
    store.create_task("u1", {"title": "T", "order": 0, "urgent": True, "important": True})
    text = run("stats")
    assert text.exit_code == 0
    assert "### Summary" in text.output

    as_json = json.loads(run("stats", "--json", "--scope", "active").output)
    assert as_json["quick_stats"]["total_tasks"] == 1
    assert as_json["quadrant_histogram"][0]["value"] == 1


def test_ical_to_file(run, store, tmp_path):
    store.create_task("u1", {"title": "Pay rent", "order": 0, "dueDate": "2026-03-01"})
    out = tmp_path / "feed.ics"
    result = run("ical", "-o", str(out))
    assert result.exit_code == 0
    assert b"SUMMARY:Pay rent- General Tasks" in out.read_bytes()


def test_parse_reports_llm_errors(run, config):
    # No Azure settings configured
    config.azure_openai_endpoint = ""
    result = run("parse", "buy milk")
    assert result.exit_code == 1
    assert "not configured" in result.output


def test_unknown_backend(run, config):
    config.store_backend = "sqlite"
    result = run("tasks")
    assert result.exit_code == 1
    assert "Unknown STORE_BACKEND" in result.output


def test_tasks_filters(run, store):
    store.create_task("u1", {"title": "Late", "order": 0, "dueDate": "2000-01-01"})
    store.create_task("u1", {"title": "Late done", "order": 1, "dueDate": "2000-01-01", "completed": True})
    store.create_task("u1", {"title": "Later", "order": 2, "dueDate": "2999-01-01", "groupId": "g1"})

    overdue = json.loads(run("tasks", "--overdue", "--json").output)
    assert [t["title"] for t in overdue] == ["Late"]

    in_group = json.loads(run("tasks", "--group", "g1", "--json").output)
    assert [t["title"] for t in in_group] == ["Later"]

    general = json.loads(run("tasks", "--group", "", "--json").output)
    assert [t["title"] for t in general] == ["Late", "Late done"]


def test_ical_token_is_stable(run):
    first = run("ical-token")
    assert first.exit_code == 0
    assert first.output.strip()
    assert run("ical-token").output == first.output


@patch("taskapp.workflows.AzureOpenAIService")
def test_ask_answers_without_saving(mock_cls, run, store):
    mock_cls.return_value.complete_json.return_value = '{"type": "answer", "message": "Nothing is due."}'
    result = run("ask", "what is due?", "--save")
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "Nothing is due."
    assert store.list_tasks("u1") == []


@patch("taskapp.workflows.AzureOpenAIService")
def test_ask_save_creates_drafts(mock_cls, run, store):
    group_id = store.create_group("u1", {"name": "Home", "order": 0})
    mock_cls.return_value.complete_json.return_value = (
        '{"type": "tasks", "message": "Two tasks.", "tasks": ['
        '{"title": "Pack", "priority": "SCHEDULE", "group": "Home"},'
        '{"title": "Call movers", "priority": "DO", "dueDate": "2026-03-01"}]}'
    )

    preview = run("ask", "plan my move")
    assert preview.exit_code == 0, preview.output
    assert "1. Title: Pack" in preview.output
    assert "   List: Home" in preview.output
    assert store.list_tasks("u1") == []

    saved = run("ask", "plan my move", "--save")
    assert saved.output.count("Added ") == 2
    tasks = {t.title: t for t in store.list_tasks("u1")}
    assert tasks["Pack"].group_id == group_id
    assert tasks["Pack"].quadrant.value == "SCHEDULE"
    assert tasks["Call movers"].quadrant.value == "DO"
