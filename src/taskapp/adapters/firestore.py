"""Firestore REST adapter - HTTP client for task persistence."""

import logging
import uuid
from datetime import datetime, timezone

import requests

from taskapp.config import Config, load_config
from taskapp.core.tasks import Group, Task
from taskapp.ports.task_store import StoreError

logger = logging.getLogger(__name__)

API_BASE = "https://firestore.googleapis.com/v1"
PAGE_SIZE = 300


class AuthenticationError(Exception):
    """Raised when authentication fails."""

    pass


def encode_value(value) -> dict:
    """Encode a Python value as a Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def encode_fields(data: dict) -> dict:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: dict):
    """Decode a Firestore typed value. Timestamps stay as RFC 3339 strings."""
    if "stringValue" in value:
        return value["stringValue"]
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return value["timestampValue"]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    return None


def decode_fields(fields: dict) -> dict:
    return {key: decode_value(value) for key, value in fields.items()}


def _server_time(*field_paths: str) -> list[dict]:
    return [{"fieldPath": path, "setToServerValue": "REQUEST_TIME"} for path in field_paths]


class FirestoreAdapter:
    """
    Firestore REST API adapter.

    Implements TaskStore protocol. Documents live under users/{uid}/tasks and
    users/{uid}/taskGroups. No business logic - just I/O.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        self._session = session or requests.Session()
        self._root = f"projects/{self.config.firestore_project_id}/databases/(default)/documents"

    def _headers(self) -> dict:
        if not self.config.firestore_id_token:
            raise AuthenticationError("No Firebase ID token. Set FIRESTORE_ID_TOKEN in taskapp.conf.")
        return {"Authorization": f"Bearer {self.config.firestore_id_token}"}

    def _check(self, resp: requests.Response) -> None:
        if resp.status_code in (401, 403):
            raise AuthenticationError(f"Firestore rejected credentials: {resp.text}")
        if not resp.ok:
            raise StoreError(f"Firestore request failed ({resp.status_code}): {resp.text}")

    def _doc_name(self, *segments: str) -> str:
        return "/".join([self._root, *segments])

    def _list(self, collection_path: str) -> list[tuple[str, dict]]:
        """List every document in a collection ordered by the order field."""
        docs = []
        params = {"orderBy": "order", "pageSize": PAGE_SIZE}
        while True:
            resp = self._session.get(
                f"{API_BASE}/{self._root}/{collection_path}",
                headers=self._headers(),
                params=params,
            )
            self._check(resp)
            data = resp.json()
            for doc in data.get("documents", []):
                doc_id = doc["name"].rsplit("/", 1)[-1]
                docs.append((doc_id, decode_fields(doc.get("fields", {}))))
            token = data.get("nextPageToken")
            if not token:
                return docs
            params = {**params, "pageToken": token}

    def _commit(self, writes: list[dict]) -> None:
        resp = self._session.post(
            f"{API_BASE}/{self._root}:commit",
            headers=self._headers(),
            json={"writes": writes},
        )
        self._check(resp)

    def _update(self, name: str, fields: dict, timestamps: tuple[str, ...] = ()) -> None:
        write = {
            "update": {"name": name, "fields": encode_fields(fields)},
            "updateMask": {"fieldPaths": list(fields)},
            "currentDocument": {"exists": True},
        }
        if timestamps:
            write["updateTransforms"] = _server_time(*timestamps)
        self._commit([write])

    def _create(self, name: str, fields: dict, timestamps: tuple[str, ...]) -> None:
        self._commit(
            [
                {
                    "update": {"name": name, "fields": encode_fields(fields)},
                    "currentDocument": {"exists": False},
                    "updateTransforms": _server_time(*timestamps),
                }
            ]
        )

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:20]

    # --- Tasks ---

    def list_tasks(self, uid: str) -> list[Task]:
        tasks = []
        for doc_id, data in self._list(f"users/{uid}/tasks"):
            tasks.append(Task.from_document(doc_id, data))
        return tasks

    def create_task(self, uid: str, fields: dict) -> str:
        task_id = self._new_id()
        self._create(self._doc_name("users", uid, "tasks", task_id), fields, ("createdAt", "updatedAt"))
        return task_id

    def update_task(self, uid: str, task_id: str, fields: dict) -> None:
        self._update(self._doc_name("users", uid, "tasks", task_id), fields, ("updatedAt",))

    def delete_task(self, uid: str, task_id: str) -> None:
        self._commit([{"delete": self._doc_name("users", uid, "tasks", task_id)}])

    def set_urgent(self, uid: str, task_id: str) -> None:
        self.update_task(uid, task_id, {"urgent": True})

    # --- Task Groups ---

    def list_groups(self, uid: str) -> list[Group]:
        return [Group.from_document(doc_id, data) for doc_id, data in self._list(f"users/{uid}/taskGroups")]

    def create_group(self, uid: str, fields: dict) -> str:
        group_id = self._new_id()
        self._create(self._doc_name("users", uid, "taskGroups", group_id), fields, ("createdAt",))
        return group_id

    def update_group(self, uid: str, group_id: str, fields: dict) -> None:
        self._update(self._doc_name("users", uid, "taskGroups", group_id), fields)

    def delete_group(self, uid: str, group_id: str) -> None:
        self._commit([{"delete": self._doc_name("users", uid, "taskGroups", group_id)}])

    # --- Calendar Token ---

    def get_or_create_calendar_token(self, uid: str, tz_name: str) -> str:
        name = self._doc_name("users", uid)
        resp = self._session.get(f"{API_BASE}/{name}", headers=self._headers())
        if resp.status_code != 404:
            self._check(resp)
            profile = decode_fields(resp.json().get("fields", {}))
            if profile.get("calendarToken"):
                return profile["calendarToken"]

        token = str(uuid.uuid4())
        fields = {"calendarToken": token, "uid": uid, "timezone": tz_name}
        # Merge into the profile document, creating it if needed
        self._commit(
            [
                {
                    "update": {"name": name, "fields": encode_fields(fields)},
                    "updateMask": {"fieldPaths": list(fields)},
                }
            ]
        )
        logger.info(f"Created calendar token for {uid}")
        return token
