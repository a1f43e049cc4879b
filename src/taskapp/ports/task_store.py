"""Task store interface."""

from typing import Protocol

from taskapp.core.tasks import Group, Task


class StoreError(Exception):
    """Raised when the backend rejects a request or a document is missing."""

    pass


class TaskStore(Protocol):
    """Interface for persisting tasks and groups in any backend."""

    def list_tasks(self, uid: str) -> list[Task]:
        """All tasks for a user, ordered by manual order."""
        ...

    def list_groups(self, uid: str) -> list[Group]:
        """All groups for a user, ordered by manual order."""
        ...

    def create_task(self, uid: str, fields: dict) -> str:
        """Create a task from document fields. Returns the new id."""
        ...

    def update_task(self, uid: str, task_id: str, fields: dict) -> None:
        """Partially update a task. Always refreshes updatedAt."""
        ...

    def delete_task(self, uid: str, task_id: str) -> None:
        ...

    def set_urgent(self, uid: str, task_id: str) -> None:
        """Flip a task's urgent flag to true."""
        ...

    def create_group(self, uid: str, fields: dict) -> str:
        """Create a group from document fields. Returns the new id."""
        ...

    def update_group(self, uid: str, group_id: str, fields: dict) -> None:
        ...

    def delete_group(self, uid: str, group_id: str) -> None:
        ...

    def get_or_create_calendar_token(self, uid: str, tz_name: str) -> str:
        """Return the user's calendar feed token, creating one if missing."""
        ...
