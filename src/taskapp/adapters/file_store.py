"""File-based task storage adapter."""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from taskapp.core.tasks import Group, Task
from taskapp.ports.task_store import StoreError

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FileTaskStore:
    """
    File-based task storage.

    Implements TaskStore protocol. Each user gets one JSON file holding their
    tasks, groups and profile, keyed by document id.
    """

    def __init__(self, data_dir: Path | str, clock: Callable[[], datetime] = _utc_now):
        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    def _path_for_user(self, uid: str) -> Path:
        """Get the file path for a given user."""
        return self.data_dir / f"{uid}.json"

    def _load(self, uid: str) -> dict:
        path = self._path_for_user(uid)
        if not path.exists():
            return {"tasks": {}, "taskGroups": {}, "profile": {}}
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt task file {path}: {e}") from e
        data.setdefault("tasks", {})
        data.setdefault("taskGroups", {})
        data.setdefault("profile", {})
        return data

    def _save(self, uid: str, data: dict) -> None:
        path = self._path_for_user(uid)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, indent=2))
        tmp.replace(path)

    def _now(self) -> str:
        return self._clock().isoformat()

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:20]

    # --- Tasks ---

    def list_tasks(self, uid: str) -> list[Task]:
        docs = self._load(uid)["tasks"]
        tasks = [Task.from_document(doc_id, doc) for doc_id, doc in docs.items()]
        return sorted(tasks, key=lambda t: t.order)

    def create_task(self, uid: str, fields: dict) -> str:
        data = self._load(uid)
        task_id = self._new_id()
        now = self._now()
        data["tasks"][task_id] = {**fields, "createdAt": now, "updatedAt": now}
        self._save(uid, data)
        logger.debug(f"Created task {task_id} for {uid}")
        return task_id

    def update_task(self, uid: str, task_id: str, fields: dict) -> None:
        data = self._load(uid)
        if task_id not in data["tasks"]:
            raise StoreError(f"Task not found: {task_id}")
        data["tasks"][task_id].update(fields)
        data["tasks"][task_id]["updatedAt"] = self._now()
        self._save(uid, data)

    def delete_task(self, uid: str, task_id: str) -> None:
        data = self._load(uid)
        if data["tasks"].pop(task_id, None) is None:
            raise StoreError(f"Task not found: {task_id}")
        self._save(uid, data)

    def set_urgent(self, uid: str, task_id: str) -> None:
        self.update_task(uid, task_id, {"urgent": True})

    # --- Task Groups ---

    def list_groups(self, uid: str) -> list[Group]:
        docs = self._load(uid)["taskGroups"]
        groups = [Group.from_document(doc_id, doc) for doc_id, doc in docs.items()]
        return sorted(groups, key=lambda g: g.order)

    def create_group(self, uid: str, fields: dict) -> str:
        data = self._load(uid)
        group_id = self._new_id()
        data["taskGroups"][group_id] = {**fields, "createdAt": self._now()}
        self._save(uid, data)
        return group_id

    def update_group(self, uid: str, group_id: str, fields: dict) -> None:
        data = self._load(uid)
        if group_id not in data["taskGroups"]:
            raise StoreError(f"Group not found: {group_id}")
        data["taskGroups"][group_id].update(fields)
        self._save(uid, data)

    def delete_group(self, uid: str, group_id: str) -> None:
        data = self._load(uid)
        if data["taskGroups"].pop(group_id, None) is None:
            raise StoreError(f"Group not found: {group_id}")
        self._save(uid, data)

    # --- Calendar Token ---

    def get_or_create_calendar_token(self, uid: str, tz_name: str) -> str:
        data = self._load(uid)
        token = data["profile"].get("calendarToken")
        if token:
            return token
        token = str(uuid.uuid4())
        data["profile"].update({"calendarToken": token, "uid": uid, "timezone": tz_name})
        self._save(uid, data)
        return token
