"""Core models for todo-store.

This module defines the core data structures for task management:
- Task: A dataclass representing a task with its properties
- RepeatCycle: Enum for how often a task repeats
- TaskPatch: A partial update applied to an existing task
- TaskNotFoundError: Raised when an operation references an unknown task id
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional, Union


class RepeatCycle(Enum):
    """Task repetition frequency."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class _Unchanged(Enum):
    UNCHANGED = "unchanged"

    def __repr__(self) -> str:
        return "UNCHANGED"


# Marker for a clearable patch field that was not mentioned at all.
# None on those fields means "clear the value".
UNCHANGED = _Unchanged.UNCHANGED


class TaskNotFoundError(LookupError):
    """Raised when a task id does not exist in the repository."""

    def __init__(self, task_id: int):
        super().__init__(f"Task #{task_id} not found")
        self.task_id = task_id


@dataclass
class Task:
    """Task model representing a single task item.

    Attributes:
        id: Unique identifier assigned by the repository
        title: Task description/title
        is_completed: Whether the task has been completed
        is_important: Whether the task is flagged as important
        due_date: Due time in seconds since the epoch, if any
        reminder: Reminder time in seconds since the epoch, if any
        repeat: How often the task repeats, if at all
        assigned_to: Principal the task is assigned to, if any
    """

    id: int
    title: str
    is_completed: bool = False
    is_important: bool = False
    due_date: Optional[int] = None
    reminder: Optional[int] = None
    repeat: Optional[RepeatCycle] = None
    assigned_to: Optional[str] = None


@dataclass(frozen=True)
class TaskPatch:
    """Partial update for a task.

    ``title``, ``is_completed`` and ``is_important`` are left alone when None.
    The optional fields (``due_date``, ``reminder``, ``repeat``,
    ``assigned_to``) default to UNCHANGED; setting one of them to None clears
    it on the task, any other value replaces it.
    """

    title: Optional[str] = None
    is_completed: Optional[bool] = None
    is_important: Optional[bool] = None
    due_date: Union[int, None, _Unchanged] = UNCHANGED
    reminder: Union[int, None, _Unchanged] = UNCHANGED
    repeat: Union[RepeatCycle, None, _Unchanged] = UNCHANGED
    assigned_to: Union[str, None, _Unchanged] = UNCHANGED

    CLEARABLE = ("due_date", "reminder", "repeat", "assigned_to")

    def changes(self) -> Dict[str, Any]:
        """Return the fields this patch mentions, mapped to their new values."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in self.CLEARABLE:
                if value is not UNCHANGED:
                    result[f.name] = value
            elif value is not None:
                result[f.name] = value
        return result

    def is_empty(self) -> bool:
        return not self.changes()
