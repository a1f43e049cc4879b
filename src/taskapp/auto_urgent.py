"""Auto-urgent monitor - periodically escalates tasks nearing their due date.

The monitor keeps no state of its own beyond the latest task snapshot. Each
check re-evaluates an idempotent predicate (incomplete, not urgent, trigger
date reached), so a failed update is simply retried on the next tick and a
successful one stops matching once the snapshot reflects it.
"""

import logging
from datetime import datetime
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .core.auto_urgent import tasks_to_escalate
from .core.tasks import Task
from .ports.task_store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 5


class AutoUrgentMonitor:
    """Escalates tasks to urgent on a fixed interval through a TaskStore."""

    def __init__(
        self,
        uid: str,
        store: TaskStore,
        scheduler: BaseScheduler,
        tasks: list[Task] | None = None,
        source: Callable[[], list[Task]] | None = None,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.uid = uid
        self.store = store
        self.scheduler = scheduler
        self.interval_minutes = interval_minutes
        self.job_id = f"auto_urgent:{uid}"
        self._tasks = list(tasks or [])
        self._source = source
        self._clock = clock
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def _refresh(self) -> None:
        if self._source is None:
            return
        try:
            self._tasks = list(self._source())
        except Exception as e:
            logger.warning(f"Could not refresh tasks for {self.uid}, using last snapshot: {e}")

    def check(self) -> list[str]:
        """Run one scan. Returns ids of tasks an update was issued for."""
        self._refresh()
        today = self._clock().date()
        issued = []

        for task in tasks_to_escalate(self._tasks, today):
            try:
                self.store.set_urgent(self.uid, task.id)
            except Exception as e:
                # Next tick retries: the task still matches until urgent is stored
                logger.warning(f"Failed to mark task {task.id} urgent: {e}")
                continue
            logger.info(f"Auto-urgent: marked '{task.title}' ({task.id}) urgent")
            issued.append(task.id)

        return issued

    def update_tasks(self, tasks: list[Task]) -> None:
        """Replace the snapshot and re-check, as on any upstream change."""
        self._tasks = list(tasks)
        if self._running:
            self.check()

    def start(self) -> None:
        """Check immediately, then every interval_minutes."""
        if self._running:
            return
        self._running = True
        self.check()
        self.scheduler.add_job(
            self.check,
            IntervalTrigger(minutes=self.interval_minutes),
            id=self.job_id,
            replace_existing=True,
        )
        logger.info(f"Auto-urgent monitor started for {self.uid} (every {self.interval_minutes} min)")

    def stop(self) -> None:
        """Tear down the periodic job."""
        if not self._running:
            return
        self._running = False
        try:
            self.scheduler.remove_job(self.job_id)
        except JobLookupError:
            logger.debug(f"Auto-urgent job {self.job_id} already gone")
        logger.info(f"Auto-urgent monitor stopped for {self.uid}")


def start_auto_urgent_monitor(
    uid: str | None,
    tasks: list[Task],
    store: TaskStore,
    scheduler: BaseScheduler,
    **kwargs,
) -> Callable[[], None]:
    """
    Start a monitor for one user. Returns its cancel function.

    Without a user there is nothing to watch, and the returned cancel is a
    no-op.
    """
    if not uid:
        return lambda: None

    monitor = AutoUrgentMonitor(uid, store, scheduler, tasks=tasks, **kwargs)
    monitor.start()
    return monitor.stop
