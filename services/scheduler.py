"""
Background scheduler: named recurring tasks on daemon threads.

Tasks are independent of any request. Each runs once immediately and then
every `interval` seconds until `stop()` is called; a failing run is logged and
the task keeps its schedule.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional

from repositories.document_store import Collection
from services.automation import (
    create_system_reminders,
    promote_due_rts_numbers,
    sweep_completed_reminders,
)
from services.context import system_context
from services.record_store import RecordStore

logger = logging.getLogger(__name__)


class RecurringTask(threading.Thread):
    daemon = True

    def __init__(
        self,
        name: str,
        interval: float,
        action: Callable[[], object],
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        super().__init__(name=name)
        self.interval = interval
        self.action = action
        self.stop_event = stop_event or threading.Event()
        self.runs = 0

    def run(self) -> None:
        while not self.stop_event.is_set():
            try:
                self.action()
            except Exception:
                logger.exception(f"Scheduled task '{self.name}' failed", extra={"task": self.name})
            self.runs += 1
            self.stop_event.wait(self.interval)

    def stop(self) -> None:
        self.stop_event.set()


class Scheduler:
    """Starts and stops a set of recurring tasks sharing one stop event."""

    def __init__(self) -> None:
        self._stop_event = threading.Event()
        self._tasks: List[RecurringTask] = []

    @property
    def tasks(self) -> List[RecurringTask]:
        return list(self._tasks)

    def add(self, name: str, interval: float, action: Callable[[], object]) -> RecurringTask:
        task = RecurringTask(name, interval, action, self._stop_event)
        self._tasks.append(task)
        return task

    def start(self) -> None:
        for task in self._tasks:
            if not task.is_alive():
                task.start()
        logger.info("Scheduler started", extra={"tasks": [t.name for t in self._tasks]})

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        for task in self._tasks:
            if task.is_alive():
                task.join(timeout)
        logger.info("Scheduler stopped")


def snapshot_feed(store: RecordStore, collections: Optional[Iterable[Collection]] = None) -> Callable[[], None]:
    """Task body re-reading collections into the store (poll-based subscription)."""

    selected = list(collections) if collections is not None else list(Collection)

    def _refresh() -> None:
        store.sync(selected)

    return _refresh


def build_scheduler(
    store: RecordStore,
    *,
    timezone: str,
    snapshot_seconds: float,
    rts_seconds: float,
    reminder_seconds: float,
    sweep_seconds: float,
    retention_days: int,
    clock: Optional[Callable] = None,
) -> Scheduler:
    """Scheduler with the snapshot feed and every recurring check."""

    def _ctx():
        if clock is None:
            return system_context(store, timezone=timezone)
        return system_context(store, clock=clock, timezone=timezone)

    scheduler = Scheduler()
    scheduler.add("snapshot-feed", snapshot_seconds, snapshot_feed(store))
    scheduler.add("auto-rts", rts_seconds, lambda: promote_due_rts_numbers(_ctx()))
    scheduler.add("system-reminders", reminder_seconds, lambda: create_system_reminders(_ctx()))
    scheduler.add("reminder-sweep", sweep_seconds, lambda: sweep_completed_reminders(_ctx(), retention_days))
    return scheduler


__all__ = ["RecurringTask", "Scheduler", "build_scheduler", "snapshot_feed"]
