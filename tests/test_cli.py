"""Comprehensive tests for the command shell."""

import argparse
import io
import json
import logging

import pytest

from todo_store.cli import (
    Session,
    build_patch,
    cmd_add,
    cmd_count_today,
    cmd_delete,
    cmd_done,
    cmd_list,
    cmd_update,
    create_command_parser,
    create_parser,
    execute,
    format_task,
    format_timestamp,
    main,
    parse_timestamp,
    run_shell,
)
from todo_store.clock import FixedClock
from todo_store.models import UNCHANGED, RepeatCycle, Task, TaskPatch
from todo_store.repository import TaskRepository

DAY_START = 1_760_745_600  # 2025-10-18 00:00:00 UTC
NOON = DAY_START + 12 * 3600


class TestParsing:
    """Test suite for argument parsing helpers."""

    def test_parse_timestamp_epoch_seconds(self):
        assert parse_timestamp("1760745600") == DAY_START

    def test_parse_timestamp_iso_date_is_utc(self):
        assert parse_timestamp("2025-10-18") == DAY_START
        assert parse_timestamp("2025-10-18T12:00:00") == NOON

    def test_parse_timestamp_with_offset(self):
        assert parse_timestamp("2025-10-18T14:00:00+02:00") == NOON

    def test_parse_timestamp_trailing_z_is_utc(self):
        assert parse_timestamp("2025-10-18T12:00:00Z") == NOON

    def test_parse_timestamp_after_year_9999(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_timestamp("999999999999")
        with pytest.raises(argparse.ArgumentTypeError):
            parse_timestamp(str(10 ** 19))

    def test_format_timestamp_out_of_range_prints_raw_number(self):
        assert format_timestamp(10 ** 19) == str(10 ** 19)
        assert format_timestamp(999999999999) == "999999999999"

    def test_parse_timestamp_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_timestamp("next tuesday")

    def test_parse_timestamp_before_epoch(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_timestamp("1969-12-31")

    def test_process_parser(self):
        parser = create_parser()
        args = parser.parse_args(["--principal", "alice", "--json"])
        assert parser.prog == "todo"
        assert args.principal == "alice"
        assert args.json is True
        assert args.log_level is None

    def test_parser_add_command(self):
        args = create_command_parser().parse_args(
            ["add", "Test task", "--important", "--due", "2025-10-18", "--repeat", "weekly"]
        )
        assert args.command == "add"
        assert args.title == "Test task"
        assert args.important is True
        assert args.due_date == DAY_START
        assert args.repeat == "weekly"
        assert args.assigned_to is None

    def test_build_patch_only_mentions_given_options(self):
        args = create_command_parser().parse_args(["update", "3", "--title", "New"])
        patch = build_patch(args)

        assert patch == TaskPatch(title="New")
        assert patch.due_date is UNCHANGED

    def test_build_patch_clear_and_set(self):
        args = create_command_parser().parse_args(
            [
                "update", "3",
                "--not-completed",
                "--important",
                "--clear-due",
                "--reminder", "60",
                "--repeat", "daily",
                "--clear-assign",
            ]
        )

        assert build_patch(args) == TaskPatch(
            is_completed=False,
            is_important=True,
            due_date=None,
            reminder=60,
            repeat=RepeatCycle.DAILY,
            assigned_to=None,
        )

    def test_format_task(self):
        task = Task(
            id=2,
            title="Pay rent",
            is_completed=True,
            is_important=True,
            due_date=NOON,
            repeat=RepeatCycle.MONTHLY,
            assigned_to="alice",
        )

        assert format_task(task) == (
            "[✓] #2 Pay rent (important) due: 2025-10-18 12:00 UTC "
            "repeats: monthly -> alice"
        )


class TestCommands:
    """Test suite for the command handlers."""

    @pytest.fixture
    def repo(self):
        return TaskRepository(FixedClock(NOON))

    @pytest.fixture
    def session(self, repo):
        return Session(repo=repo, principal="alice")

    @pytest.fixture
    def parser(self):
        return create_command_parser()

    def test_cmd_add(self, parser, session, repo, capsys):
        args = parser.parse_args(["add", "Test task", "--important", "--assign", "bob"])

        assert cmd_add(args, session) == 0
        assert "Task added: #0 Test task" in capsys.readouterr().out

        task = repo.get_task(0)
        assert task.is_important is True
        assert task.assigned_to == "bob"

    def test_cmd_update(self, parser, session, repo, capsys):
        repo.create_task("Old", due_date=NOON)
        args = parser.parse_args(["update", "0", "--title", "New", "--clear-due"])

        assert cmd_update(args, session) == 0
        assert "Task #0 updated." in capsys.readouterr().out

        task = repo.get_task(0)
        assert task.title == "New"
        assert task.due_date is None

    def test_cmd_done(self, parser, session, repo, capsys):
        repo.create_task("Test task")
        args = parser.parse_args(["done", "0"])

        assert cmd_done(args, session) == 0
        assert "Task #0 marked as done." in capsys.readouterr().out
        assert repo.get_task(0).is_completed is True

    def test_cmd_delete(self, parser, session, repo, capsys):
        repo.create_task("Test task")
        args = parser.parse_args(["delete", "0"])

        assert cmd_delete(args, session) == 0
        assert "Task #0 deleted." in capsys.readouterr().out
        assert repo.get_all_tasks() == []

    def test_cmd_list_empty(self, parser, session, capsys):
        assert cmd_list(parser.parse_args(["list"]), session) == 0
        assert "No tasks found." in capsys.readouterr().out

    def test_cmd_list_sorted_by_id(self, parser, session, repo, capsys):
        repo.create_task("Task 0")
        repo.create_task("Task 1")

        cmd_list(parser.parse_args(["list"]), session)

        lines = capsys.readouterr().out.splitlines()
        assert lines == ["[ ] #0 Task 0", "[ ] #1 Task 1"]

    @pytest.mark.parametrize(
        "view, expected",
        [
            ("active", ["Later today", "Mine"]),
            ("completed", ["Done"]),
            ("important", ["Later today"]),
            ("today", ["Later today", "Done"]),
            ("planned", ["Later today"]),
            ("mine", ["Mine"]),
        ],
    )
    def test_cmd_list_views(self, parser, session, repo, capsys, view, expected):
        repo.create_task("Later today", is_important=True, due_date=NOON + 60)
        done = repo.create_task("Done", due_date=NOON - 60)
        repo.create_task("Mine", assigned_to="alice")
        repo.update_task(done, TaskPatch(is_completed=True))

        cmd_list(parser.parse_args(["list", "--filter", view]), session)

        output = capsys.readouterr().out
        for title in ["Later today", "Done", "Mine"]:
            assert (title in output) == (title in expected)

    def test_cmd_list_json(self, parser, repo, capsys):
        session = Session(repo=repo, principal="alice", as_json=True)
        repo.create_task("Task", repeat=RepeatCycle.DAILY)

        cmd_list(parser.parse_args(["list"]), session)

        data = json.loads(capsys.readouterr().out)
        assert data == [
            {
                "id": 0,
                "title": "Task",
                "is_completed": False,
                "is_important": False,
                "due_date": None,
                "reminder": None,
                "repeat": "daily",
                "assigned_to": None,
            }
        ]

    def test_cmd_count_today(self, parser, session, repo, capsys):
        repo.create_task("Today", due_date=DAY_START)
        repo.create_task("Tomorrow", due_date=DAY_START + 86400)

        assert cmd_count_today(parser.parse_args(["count-today"]), session) == 0
        assert capsys.readouterr().out.strip() == "1"


class TestShell:
    """Test suite for line execution and the shell loop."""

    @pytest.fixture
    def session(self):
        return Session(repo=TaskRepository(FixedClock(NOON)), principal="alice")

    def test_execute_unknown_task(self, session, capsys):
        assert execute("done 999", session) == 1
        assert "Error: Task #999 not found." in capsys.readouterr().err

    def test_execute_bad_arguments(self, session, capsys):
        assert execute("update notanumber", session) == 1
        assert "Error:" in capsys.readouterr().err

    def test_execute_unknown_command(self, session, capsys):
        assert execute("frobnicate", session) == 1
        assert "Error:" in capsys.readouterr().err

    def test_execute_conflicting_options(self, session, capsys):
        session.repo.create_task("Task")
        assert execute("update 0 --due 60 --clear-due", session) == 1
        assert "not allowed with" in capsys.readouterr().err

    def test_execute_unbalanced_quotes(self, session, capsys):
        assert execute('add "Buy milk', session) == 1
        assert "Error:" in capsys.readouterr().err

    def test_execute_rejects_due_date_beyond_year_9999(self, session, capsys):
        assert execute("add big --due 999999999999", session) == 1
        assert execute(f"add bigger --due {10 ** 19}", session) == 1
        assert "after year 9999" in capsys.readouterr().err
        assert session.repo.get_all_tasks() == []

    def test_execute_lists_far_future_task_added_directly(self, session, capsys):
        session.repo.create_task("Far future", due_date=10 ** 19)

        assert execute("list", session) == 0
        assert f"#0 Far future due: {10 ** 19}" in capsys.readouterr().out

    def test_execute_blank_and_comment_lines(self, session):
        assert execute("", session) == 0
        assert execute("   # just a comment", session) == 0
        assert session.repo.get_all_tasks() == []

    def test_execute_help(self, session, capsys):
        assert execute("help", session) == 0
        assert "count-today" in capsys.readouterr().out

    def test_execute_subcommand_help(self, session, capsys):
        assert execute("update -h", session) == 0
        assert "--clear-due" in capsys.readouterr().out

    def test_run_shell_stops_at_quit(self, session, capsys):
        lines = ['add "Buy milk"', "quit", 'add "Never added"']

        assert run_shell(session, lines) == 0
        assert [t.title for t in session.repo.get_all_tasks()] == ["Buy milk"]

    def test_run_shell_reports_failure_and_continues(self, session, capsys):
        lines = ["delete 5", 'add "Still works"']

        assert run_shell(session, lines) == 1
        assert len(session.repo.get_all_tasks()) == 1

    def test_run_shell_prompt(self, session, capsys):
        run_shell(session, ["list"], prompt=True)
        assert capsys.readouterr().out.count("todo> ") == 2


class TestMain:
    """Test suite for the main entry point."""

    @pytest.fixture(autouse=True)
    def restore_logging(self, monkeypatch):
        monkeypatch.delenv("TODO_PRINCIPAL", raising=False)
        monkeypatch.delenv("TODO_LOG_LEVEL", raising=False)
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.captureWarnings(False)

    def test_main_scenario(self, capsys):
        script = io.StringIO(
            'add "Buy milk"\n'
            'add "Pay rent" --important\n'
            "done 0\n"
            "list --filter active\n"
            "delete 0\n"
            "update 0 --title x\n"
        )

        assert main([], stdin=script) == 1

        captured = capsys.readouterr()
        assert "Task added: #0 Buy milk" in captured.out
        assert "Task added: #1 Pay rent" in captured.out
        assert "[ ] #1 Pay rent (important)" in captured.out
        assert "Task #0 deleted." in captured.out
        assert "Error: Task #0 not found." in captured.err

    def test_main_uses_principal_from_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("TODO_PRINCIPAL", "alice")
        script = io.StringIO(
            'add "For alice" --assign alice\n'
            'add "For bob" --assign bob\n'
            "list --filter mine\n"
        )

        assert main([], stdin=script) == 0

        lines = capsys.readouterr().out.splitlines()
        assert "[ ] #0 For alice -> alice" in lines
        assert "[ ] #1 For bob -> bob" not in lines

    def test_main_principal_option_overrides_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("TODO_PRINCIPAL", "alice")
        script = io.StringIO('add "For bob" --assign bob\nlist --filter mine\n')

        assert main(["--principal", "bob"], stdin=script) == 0
        assert "#0 For bob" in capsys.readouterr().out

    def test_main_json_output(self, capsys):
        script = io.StringIO('add "Task"\nlist\n')

        assert main(["--json"], stdin=script) == 0

        out = capsys.readouterr().out
        payload = out[out.index("["):]
        assert json.loads(payload)[0]["title"] == "Task"
