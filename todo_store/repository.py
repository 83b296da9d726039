"""Task repository for managing task operations.

This module provides the TaskRepository class that owns the in-memory task
collection. It handles id assignment, task creation, partial updates,
deletion, and the filtered read views (active, completed, important, today,
planned, assigned to the caller).
"""

import dataclasses
import logging
import threading
from typing import Callable, Dict, List, Optional

from todo_store.clock import SECONDS_PER_DAY, Clock, SystemClock, start_of_day
from todo_store.models import RepeatCycle, Task, TaskNotFoundError, TaskPatch

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository holding tasks in memory for the lifetime of the instance.

    Every public method runs under a single per-repository lock, so callers
    on different threads observe operations one at a time.

    Attributes:
        clock: Source of the current time for the date-based filters
    """

    def __init__(self, clock: Optional[Clock] = None):
        """Initialize an empty TaskRepository.

        Args:
            clock: Clock implementation to use. If None, uses SystemClock.
        """
        self.clock = clock or SystemClock()
        self._tasks: Dict[int, Task] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    def create_task(
        self,
        title: str,
        is_important: bool = False,
        due_date: Optional[int] = None,
        reminder: Optional[int] = None,
        repeat: Optional[RepeatCycle] = None,
        assigned_to: Optional[str] = None,
    ) -> int:
        """Create a new task.

        New tasks always start out not completed.

        Returns:
            The id assigned to the new task
        """
        with self._lock:
            task_id = self._next_id
            self._next_id += 1

            self._tasks[task_id] = Task(
                id=task_id,
                title=title,
                is_completed=False,
                is_important=is_important,
                due_date=due_date,
                reminder=reminder,
                repeat=repeat,
                assigned_to=assigned_to,
            )

        logger.debug("Created task #%s", task_id)
        return task_id

    def get_task(self, task_id: int) -> Optional[Task]:
        """Get a copy of a specific task by ID, or None if it doesn't exist."""
        with self._lock:
            task = self._tasks.get(task_id)
            return dataclasses.replace(task) if task is not None else None

    def update_task(self, task_id: int, patch: TaskPatch) -> None:
        """Apply a partial update to an existing task.

        Args:
            task_id: ID of the task to update
            patch: Fields to change; unmentioned fields are left as they are

        Raises:
            TaskNotFoundError: If no task has this ID. Nothing is changed.
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                logger.info("Update of unknown task #%s", task_id)
                raise TaskNotFoundError(task_id)

            changes = patch.changes()
            for name, value in changes.items():
                setattr(task, name, value)

        logger.debug("Updated task #%s fields=%s", task_id, sorted(changes))

    def delete_task(self, task_id: int) -> None:
        """Delete a task by ID.

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self._lock:
            if task_id not in self._tasks:
                logger.info("Delete of unknown task #%s", task_id)
                raise TaskNotFoundError(task_id)

            del self._tasks[task_id]

        logger.debug("Deleted task #%s", task_id)

    def get_all_tasks(self) -> List[Task]:
        """Get every task.

        Returns:
            List of Task copies, in no particular order
        """
        return self._select(lambda task: True)

    def get_active_tasks(self) -> List[Task]:
        """Get tasks that are not completed.

        Returns:
            List of Task copies, in no particular order
        """
        return self._select(lambda task: not task.is_completed)

    def get_completed_tasks(self) -> List[Task]:
        """Get tasks that are completed.

        Returns:
            List of Task copies, in no particular order
        """
        return self._select(lambda task: task.is_completed)

    def get_important_tasks(self) -> List[Task]:
        """Get tasks flagged as important.

        Returns:
            List of Task copies, in no particular order
        """
        return self._select(lambda task: task.is_important)

    def get_today_tasks(self) -> List[Task]:
        """Get tasks due within the current UTC calendar day.

        The day boundary is derived from the clock on every call; a task due
        at the first or the last second of the day counts as today.
        """
        first = start_of_day(self.clock.now())
        last = first + SECONDS_PER_DAY - 1
        return self._select(
            lambda task: task.due_date is not None and first <= task.due_date <= last
        )

    def get_planned_tasks(self) -> List[Task]:
        """Get tasks due strictly after the current time.

        This includes tasks due later today, so the result can overlap with
        get_today_tasks().
        """
        now = self.clock.now()
        return self._select(lambda task: task.due_date is not None and task.due_date > now)

    def get_assigned_to_caller(self, caller: str) -> List[Task]:
        """Get tasks assigned to the given principal."""
        return self._select(
            lambda task: task.assigned_to is not None and task.assigned_to == caller
        )

    def count_today_tasks(self) -> int:
        """Count tasks due within the current UTC calendar day.

        Returns:
            The number of tasks get_today_tasks() would return
        """
        return len(self.get_today_tasks())

    def _select(self, predicate: Callable[[Task], bool]) -> List[Task]:
        with self._lock:
            return [
                dataclasses.replace(task)
                for task in self._tasks.values()
                if predicate(task)
            ]
