"""Transport mapping for tasks and patches.

Converts Task and TaskPatch objects to and from plain dicts that can be
passed to json.dumps/json.loads. Field names are kept as-is and RepeatCycle
is carried by its value, so every field survives a round trip.

In a patch dict a missing key means "leave unchanged" and a null value
clears one of the optional fields.
"""

from typing import Any, Dict, Optional

from todo_store.models import RepeatCycle, Task, TaskPatch

PATCH_FIELDS = (
    "title",
    "is_completed",
    "is_important",
    "due_date",
    "reminder",
    "repeat",
    "assigned_to",
)


def task_to_dict(task: Task) -> Dict[str, Any]:
    """Convert a Task into a JSON-ready dict."""
    return {
        "id": task.id,
        "title": task.title,
        "is_completed": task.is_completed,
        "is_important": task.is_important,
        "due_date": task.due_date,
        "reminder": task.reminder,
        "repeat": task.repeat.value if task.repeat is not None else None,
        "assigned_to": task.assigned_to,
    }


def task_from_dict(data: Dict[str, Any]) -> Task:
    """Build a Task from a dict produced by task_to_dict.

    Raises:
        ValueError: If a required key is missing or a value has the wrong type
    """
    try:
        task_id = data["id"]
        title = data["title"]
    except KeyError as exc:
        raise ValueError(f"Missing task field: {exc.args[0]}") from None

    if not isinstance(task_id, int) or isinstance(task_id, bool) or task_id < 0:
        raise ValueError(f"Invalid task id: {task_id!r}")

    return Task(
        id=task_id,
        title=_check_title(title),
        is_completed=_check_bool("is_completed", data.get("is_completed", False)),
        is_important=_check_bool("is_important", data.get("is_important", False)),
        due_date=_check_timestamp("due_date", data.get("due_date")),
        reminder=_check_timestamp("reminder", data.get("reminder")),
        repeat=_parse_repeat(data.get("repeat")),
        assigned_to=_check_principal(data.get("assigned_to")),
    )


def patch_from_dict(data: Dict[str, Any]) -> TaskPatch:
    """Build a TaskPatch from a dict of mentioned fields.

    Raises:
        ValueError: On unknown keys, on an attempt to change the id, or when
            a non-clearable field is given null
    """
    unknown = set(data) - set(PATCH_FIELDS)
    if unknown:
        raise ValueError(f"Unknown patch fields: {', '.join(sorted(unknown))}")

    for name in ("title", "is_completed", "is_important"):
        if name in data and data[name] is None:
            raise ValueError(f"Field '{name}' cannot be cleared")

    kwargs: Dict[str, Any] = {}
    if "title" in data:
        kwargs["title"] = _check_title(data["title"])
    if "is_completed" in data:
        kwargs["is_completed"] = _check_bool("is_completed", data["is_completed"])
    if "is_important" in data:
        kwargs["is_important"] = _check_bool("is_important", data["is_important"])
    if "due_date" in data:
        kwargs["due_date"] = _check_timestamp("due_date", data["due_date"])
    if "reminder" in data:
        kwargs["reminder"] = _check_timestamp("reminder", data["reminder"])
    if "repeat" in data:
        kwargs["repeat"] = _parse_repeat(data["repeat"])
    if "assigned_to" in data:
        kwargs["assigned_to"] = _check_principal(data["assigned_to"])

    return TaskPatch(**kwargs)


def patch_to_dict(patch: TaskPatch) -> Dict[str, Any]:
    """Convert a TaskPatch into a dict holding only the fields it mentions."""
    result = patch.changes()
    if isinstance(result.get("repeat"), RepeatCycle):
        result["repeat"] = result["repeat"].value
    return result


def _check_title(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Invalid title: {value!r}")
    return value


def _check_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Field '{name}' must be a boolean, got {value!r}")
    return value


def _check_timestamp(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"Field '{name}' must be a non-negative integer, got {value!r}")
    return value


def _check_principal(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    raise ValueError(f"Invalid principal: {value!r}")


def _parse_repeat(value: Any) -> Optional[RepeatCycle]:
    if value is None:
        return None
    if isinstance(value, RepeatCycle):
        return value
    try:
        return RepeatCycle(value)
    except ValueError:
        choices = ", ".join(cycle.value for cycle in RepeatCycle)
        raise ValueError(f"Invalid repeat cycle {value!r} (expected one of: {choices})") from None
