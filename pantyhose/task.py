"""Asynchronous tasks whose completion is handled on the main loop."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Task(ABC):
    """A unit of background work; ``done`` runs on the main loop once it finishes."""

    task_id: int = 0

    @abstractmethod
    def is_done(self) -> bool:
        """Whether the work has completed."""

    @abstractmethod
    def done(self) -> None:
        """Handle completion on the main loop."""


class TaskManager:
    """Tracks running tasks and hands finished ones back to the main loop.

    ``finish_task`` may be called from any thread; ``process_finished_tasks``
    is meant for the main loop.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._next_id = 1
        self._tasks: dict[int, Task] = {}
        self._finished: dict[int, Task] = {}
        self._notify: Optional[Callable[[], None]] = None

    def init(self, notify: Callable[[], None]) -> bool:
        """Reset state and set the callable that wakes the main loop."""
        with self._lock:
            self._next_id = 1
            self._tasks.clear()
            self._finished.clear()
            self._notify = notify
        return True

    def generate_task_id(self) -> int:
        """Return the next id not used by any running or finished task."""
        with self._lock:
            while True:
                task_id = self._next_id
                self._next_id += 1
                if task_id not in self._tasks and task_id not in self._finished:
                    return task_id
                logger.debug("Task id %d is already in use, trying next", task_id)

    def add_task(self, task: Task) -> int:
        """Register a task under a fresh id and return that id."""
        with self._lock:
            task_id = self.generate_task_id()
            task.task_id = task_id
            self._tasks[task_id] = task
        logger.debug("Added task with id %d", task_id)
        return task_id

    def finish_task(self, task_id: int) -> None:
        """Mark a running task finished and wake the main loop."""
        with self._lock:
            task = self._tasks.pop(task_id, None)
            if task is None:
                raise KeyError(f"task {task_id} is not running")
            self._finished[task_id] = task
            notify = self._notify
        if notify is None:
            logger.warning("No notify available to wake server")
        else:
            notify()

    def process_finished_tasks(self) -> None:
        """Run ``done`` on finished tasks; return unfinished ones to the running list."""
        with self._lock:
            finished = list(self._finished.items())
            self._finished.clear()
        for task_id, task in finished:
            if task.is_done():
                task.done()
            else:
                logger.warning("Task %d finished but not done, moving back", task_id)
                with self._lock:
                    self._tasks[task_id] = task

    def has_pending_tasks(self) -> bool:
        with self._lock:
            return bool(self._tasks)

    def has_task(self, task_id: int) -> bool:
        with self._lock:
            return task_id in self._tasks

    def remove_task(self, task_id: int) -> bool:
        """Drop a task from either list; return False if it is unknown."""
        with self._lock:
            if self._tasks.pop(task_id, None) is not None:
                return True
            return self._finished.pop(task_id, None) is not None

    def task_count(self) -> int:
        with self._lock:
            return len(self._tasks)

    def finished_task_count(self) -> int:
        with self._lock:
            return len(self._finished)

    def total_task_count(self) -> int:
        with self._lock:
            return len(self._tasks) + len(self._finished)

    def clear_all_tasks(self) -> None:
        with self._lock:
            running, finished = len(self._tasks), len(self._finished)
            self._tasks.clear()
            self._finished.clear()
        if running or finished:
            logger.warning("Cleared %d tasks and %d finished tasks", running, finished)

    def dispose(self) -> None:
        self.clear_all_tasks()
        with self._lock:
            self._notify = None
        logger.info("TaskManager disposed")