"""Command shell for todo-store.

The task collection lives in memory, so the shell keeps one TaskRepository
for the whole process and reads commands from stdin, one per line:
- add: Create a new task
- update: Change, or clear, fields of a task
- done: Mark a task as completed
- delete: Delete a task
- list: List all tasks or one of the filtered views
- count-today: Print how many tasks are due today
- help / quit
"""

import argparse
import json
import logging
import shlex
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, TextIO

from todo_store.codec import patch_from_dict, task_to_dict
from todo_store.config import load_settings, parse_log_level
from todo_store.logging_setup import setup_logging
from todo_store.models import RepeatCycle, Task, TaskNotFoundError, TaskPatch
from todo_store.repository import TaskRepository

logger = logging.getLogger(__name__)

PROMPT = "todo> "
REPEAT_CHOICES = [cycle.value for cycle in RepeatCycle]
# Latest time a datetime can represent (9999-12-31 23:59:59 UTC)
MAX_TIMESTAMP = int(datetime.max.replace(tzinfo=timezone.utc).timestamp())
LIST_FILTERS = ["all", "active", "completed", "important", "today", "planned", "mine"]

# (option name, task field, argument type) for fields that can be cleared
CLEARABLE_OPTIONS = (
    ("due", "due_date", "timestamp"),
    ("reminder", "reminder", "timestamp"),
    ("repeat", "repeat", "repeat"),
    ("assign", "assigned_to", "principal"),
)


class CommandError(Exception):
    """Raised when a shell command line cannot be parsed or executed."""


class _HelpShown(Exception):
    pass


class _QuitShell(Exception):
    pass


class ShellArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports errors instead of exiting the process."""

    def error(self, message: str) -> None:
        raise CommandError(message)

    def exit(self, status: int = 0, message: Optional[str] = None) -> None:
        if status:
            raise CommandError((message or "invalid command").strip())
        raise _HelpShown()


@dataclass
class Session:
    """State shared by every command of one shell run."""

    repo: TaskRepository
    principal: str
    as_json: bool = False


def parse_timestamp(text: str) -> int:
    """Parse epoch seconds or an ISO-8601 date/datetime into epoch seconds.

    Naive datetimes are read as UTC; a trailing "Z" is accepted for UTC.
    """
    text = text.strip()
    if text.isdigit():
        seconds = int(text)
        if seconds > MAX_TIMESTAMP:
            raise argparse.ArgumentTypeError(f"timestamp after year 9999: '{text}'")
        return seconds

    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        moment = datetime.fromisoformat(iso_text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timestamp: '{text}'") from None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    seconds = int(moment.timestamp())
    if seconds < 0:
        raise argparse.ArgumentTypeError(f"timestamp before 1970: '{text}'")
    if seconds > MAX_TIMESTAMP:
        raise argparse.ArgumentTypeError(f"timestamp after year 9999: '{text}'")
    return seconds


def format_timestamp(seconds: int) -> str:
    """Render epoch seconds as a UTC date, or the raw number if out of range."""
    try:
        moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return str(seconds)
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def format_task(task: Task) -> str:
    """Render a task as a single human-readable line."""
    status_icon = "✓" if task.is_completed else " "
    line = f"[{status_icon}] #{task.id} {task.title}"

    if task.is_important:
        line += " (important)"
    if task.due_date is not None:
        line += f" due: {format_timestamp(task.due_date)}"
    if task.reminder is not None:
        line += f" reminder: {format_timestamp(task.reminder)}"
    if task.repeat is not None:
        line += f" repeats: {task.repeat.value}"
    if task.assigned_to is not None:
        line += f" -> {task.assigned_to}"

    return line


def create_parser() -> argparse.ArgumentParser:
    """Create the parser for the process command line."""
    parser = argparse.ArgumentParser(
        prog="todo",
        description="In-memory task store driven by commands read from stdin"
    )
    parser.add_argument(
        "--principal",
        help="Identity used for 'list --filter mine' (default: $TODO_PRINCIPAL)"
    )
    parser.add_argument(
        "--log-level",
        help="Console log level (default: $TODO_LOG_LEVEL or WARNING)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print task listings as JSON"
    )
    return parser


def _argument_type(kind: str) -> Dict[str, Any]:
    """Return add_argument keyword arguments for an option kind."""
    if kind == "timestamp":
        return {"type": parse_timestamp, "metavar": "TIME"}
    if kind == "repeat":
        return {"choices": REPEAT_CHOICES}
    return {"metavar": "PRINCIPAL"}


def create_command_parser() -> ShellArgumentParser:
    """Create the parser for a single shell command line."""
    parser = ShellArgumentParser(prog="", add_help=False)
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a new task")
    add_parser.add_argument("title", help="Task title")
    add_parser.add_argument("--important", action="store_true", help="Flag the task as important")
    for option, field_name, kind in CLEARABLE_OPTIONS:
        add_parser.add_argument(f"--{option}", dest=field_name, **_argument_type(kind))

    # Update command
    update_parser = subparsers.add_parser("update", help="Update fields of a task")
    update_parser.add_argument("id", type=int, help="Task ID")
    update_parser.add_argument("--title", help="New title")

    completed = update_parser.add_mutually_exclusive_group()
    completed.add_argument("--completed", dest="is_completed", action="store_const", const=True)
    completed.add_argument("--not-completed", dest="is_completed", action="store_const", const=False)

    important = update_parser.add_mutually_exclusive_group()
    important.add_argument("--important", dest="is_important", action="store_const", const=True)
    important.add_argument("--not-important", dest="is_important", action="store_const", const=False)

    for option, field_name, kind in CLEARABLE_OPTIONS:
        group = update_parser.add_mutually_exclusive_group()
        group.add_argument(f"--{option}", dest=field_name, **_argument_type(kind))
        group.add_argument(f"--clear-{option}", dest=f"clear_{field_name}", action="store_true")

    # Done command
    done_parser = subparsers.add_parser("done", help="Mark a task as done")
    done_parser.add_argument("id", type=int, help="Task ID")

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a task")
    delete_parser.add_argument("id", type=int, help="Task ID")

    # List command
    list_parser = subparsers.add_parser("list", help="List tasks")
    list_parser.add_argument(
        "--filter",
        choices=LIST_FILTERS,
        default="all",
        help="Which view to list (default: all)"
    )

    subparsers.add_parser("count-today", help="Count tasks due today")
    subparsers.add_parser("help", help="Show available commands")
    subparsers.add_parser("quit", help="Leave the shell", aliases=["exit"])

    return parser


def cmd_add(args: argparse.Namespace, session: Session) -> int:
    """Handle the 'add' command.

    Args:
        args: Parsed command arguments
        session: Current shell session

    Returns:
        Exit code (0 for success)
    """
    repeat = RepeatCycle(args.repeat) if args.repeat else None
    task_id = session.repo.create_task(
        title=args.title,
        is_important=args.important,
        due_date=args.due_date,
        reminder=args.reminder,
        repeat=repeat,
        assigned_to=args.assigned_to,
    )
    print(f"Task added: #{task_id} {args.title}")
    return 0


def build_patch(args: argparse.Namespace) -> TaskPatch:
    """Turn parsed 'update' options into a TaskPatch."""
    data = {}
    for name in ("title", "is_completed", "is_important"):
        if getattr(args, name) is not None:
            data[name] = getattr(args, name)

    for _, field_name, _ in CLEARABLE_OPTIONS:
        if getattr(args, f"clear_{field_name}"):
            data[field_name] = None
        elif getattr(args, field_name) is not None:
            data[field_name] = getattr(args, field_name)

    return patch_from_dict(data)


def cmd_update(args: argparse.Namespace, session: Session) -> int:
    """Handle the 'update' command.

    Args:
        args: Parsed command arguments
        session: Current shell session

    Returns:
        Exit code (0 for success)

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    session.repo.update_task(args.id, build_patch(args))
    print(f"Task #{args.id} updated.")
    return 0


def cmd_done(args: argparse.Namespace, session: Session) -> int:
    """Handle the 'done' command.

    Args:
        args: Parsed command arguments
        session: Current shell session

    Returns:
        Exit code (0 for success)

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    session.repo.update_task(args.id, TaskPatch(is_completed=True))
    print(f"Task #{args.id} marked as done.")
    return 0


def cmd_delete(args: argparse.Namespace, session: Session) -> int:
    """Handle the 'delete' command.

    Args:
        args: Parsed command arguments
        session: Current shell session

    Returns:
        Exit code (0 for success)

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    session.repo.delete_task(args.id)
    print(f"Task #{args.id} deleted.")
    return 0


def select_tasks(view: str, session: Session) -> List[Task]:
    """Return the tasks of the named view, sorted by ID."""
    repo = session.repo
    views = {
        "all": repo.get_all_tasks,
        "active": repo.get_active_tasks,
        "completed": repo.get_completed_tasks,
        "important": repo.get_important_tasks,
        "today": repo.get_today_tasks,
        "planned": repo.get_planned_tasks,
        "mine": lambda: repo.get_assigned_to_caller(session.principal),
    }
    # Views are unordered; list them by id for stable output.
    return sorted(views[view](), key=lambda task: task.id)


def cmd_list(args: argparse.Namespace, session: Session) -> int:
    """Handle the 'list' command.

    Args:
        args: Parsed command arguments
        session: Current shell session

    Returns:
        Exit code (0 for success)
    """
    tasks = select_tasks(args.filter, session)

    if session.as_json:
        print(json.dumps([task_to_dict(task) for task in tasks], indent=2))
        return 0

    if not tasks:
        print("No tasks found.")
        return 0

    for task in tasks:
        print(format_task(task))

    return 0


def cmd_count_today(args: argparse.Namespace, session: Session) -> int:
    """Handle the 'count-today' command.

    Args:
        args: Parsed command arguments
        session: Current shell session

    Returns:
        Exit code (0 for success)
    """
    print(session.repo.count_today_tasks())
    return 0


COMMANDS = {
    "add": cmd_add,
    "update": cmd_update,
    "done": cmd_done,
    "delete": cmd_delete,
    "list": cmd_list,
    "count-today": cmd_count_today,
}


def execute(line: str, session: Session, parser: Optional[ShellArgumentParser] = None) -> int:
    """Run one command line against the session.

    Returns:
        Exit code (0 for success, 1 for error)

    Raises:
        _QuitShell: If the line asks the shell to stop
    """
    parser = parser or create_command_parser()

    try:
        argv = shlex.split(line, comments=True)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not argv:
        return 0

    try:
        args = parser.parse_args(argv)
    except _HelpShown:
        return 0
    except CommandError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.command is None:
        print("Error: no command given", file=sys.stderr)
        return 1

    if args.command in ("quit", "exit"):
        raise _QuitShell()

    if args.command == "help":
        parser.print_help()
        return 0

    logger.debug("Running command %s", args.command)
    handler = COMMANDS[args.command]

    try:
        return handler(args, session)
    except TaskNotFoundError as exc:
        print(f"Error: {exc}.", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def run_shell(session: Session, lines: Iterable[str], prompt: bool = False) -> int:
    """Execute command lines until input ends or 'quit' is read.

    Returns:
        0 if every command succeeded, 1 otherwise
    """
    parser = create_command_parser()
    status = 0

    if prompt:
        print(PROMPT, end="", flush=True)

    for line in lines:
        try:
            if execute(line, session, parser) != 0:
                status = 1
        except _QuitShell:
            break

        if prompt:
            print(PROMPT, end="", flush=True)

    return status


def main(argv: Optional[List[str]] = None, stdin: Optional[TextIO] = None) -> int:
    """Main entry point for the shell.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:]
        stdin: Stream to read commands from. If None, uses sys.stdin

    Returns:
        Exit code (0 for success, non-zero if any command failed)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    log_level = settings.log_level
    if args.log_level:
        log_level = parse_log_level(args.log_level, settings.log_level)
    setup_logging(log_level)

    stream = stdin if stdin is not None else sys.stdin
    session = Session(
        repo=TaskRepository(),
        principal=args.principal or settings.principal,
        as_json=args.json,
    )
    logger.info("Shell started principal=%s", session.principal)

    return run_shell(session, stream, prompt=stream.isatty())


if __name__ == "__main__":
    sys.exit(main())
