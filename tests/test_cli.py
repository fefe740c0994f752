"""Tests for todocore.cli module."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest
from click.testing import CliRunner

from todocore import __version__
from todocore.cli import main


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def todo_project(temp_project: Path) -> Path:
    """A project with a small todo file."""
    (temp_project / "todo.txt").write_text(
        "(A) Call mom @phone\nBuy milk @store\nx 2024-01-01 Old task\n"
    )
    return temp_project


def _run(runner: CliRunner, *args: str):
    return runner.invoke(main, ["-f", "todo.txt", *args])


class TestMain:
    """Tests for the main group."""

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_without_command(self, cli_runner: CliRunner, temp_project: Path) -> None:
        result = cli_runner.invoke(main, [])
        assert result.exit_code == 0
        assert "todo.txt task manager" in result.output

    def test_no_file_configured(self, cli_runner: CliRunner, temp_project: Path) -> None:
        result = cli_runner.invoke(main, ["list"])
        assert result.exit_code == 1
        assert "No todo file configured" in result.output

    def test_missing_file(self, cli_runner: CliRunner, temp_project: Path) -> None:
        result = cli_runner.invoke(main, ["-f", "nope.txt", "list"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestListCommand:
    """Tests for the list command."""

    def test_lists_tasks(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "list")
        assert result.exit_code == 0
        assert "2 open tasks" in result.output
        assert "Call mom" in result.output
        assert "Buy milk" in result.output

    def test_search(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "list", "--search", "milk")
        assert result.exit_code == 0
        assert "Buy milk" in result.output
        assert "Call mom" not in result.output


class TestEditCommands:
    """Tests for commands that change the todo file."""

    def test_add(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "add", "Water", "plants", "@home")
        assert result.exit_code == 0
        assert "Added:" in result.output
        assert "Water plants @home" in (todo_project / "todo.txt").read_text().splitlines()

    def test_do_completes_first_task(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "do", "1")
        assert result.exit_code == 0
        assert "Completed:" in result.output

        stamp = date.today().isoformat()
        lines = (todo_project / "todo.txt").read_text().splitlines()
        assert f"x {stamp} Call mom @phone pri:A" in lines

    def test_do_unknown_number(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "do", "99")
        assert result.exit_code == 1
        assert "No task number 99" in result.output

    def test_edit(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "edit", "2", "Buy", "oat", "milk")
        assert result.exit_code == 0
        assert "Buy oat milk" in (todo_project / "todo.txt").read_text()

    def test_pin(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "pin", "2")
        assert result.exit_code == 0
        assert "Pinned:" in result.output
        assert "Buy milk @store pin:1" in (todo_project / "todo.txt").read_text()

    def test_rm_with_archive(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = cli_runner.invoke(
            main, ["-f", "todo.txt", "--done", "done.txt", "rm", "2", "--archive"]
        )
        assert result.exit_code == 0
        assert "Buy milk" not in (todo_project / "todo.txt").read_text()
        assert "Buy milk @store" in (todo_project / "done.txt").read_text()

    def test_clear(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "clear")
        assert result.exit_code == 0
        assert "Removed 1 completed tasks" in result.output
        assert "Old task" not in (todo_project / "todo.txt").read_text()

    def test_check(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "check")
        assert result.exit_code == 0
        assert "Open:" in result.output
        assert "Completed:" in result.output


class TestFilterCommands:
    """Tests for the filter group."""

    def test_toggle_filters_list(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "filter", "toggle", "@phone")
        assert result.exit_code == 0
        assert "Filtering on" in result.output

        cache = json.loads((todo_project / ".todocore" / "cache.json").read_text())
        assert cache["filters"]["contexts"] == ["@phone"]

        result = _run(cli_runner, "list")
        assert "(filtered)" in result.output
        assert "Call mom" in result.output
        assert "Buy milk" not in result.output

    def test_toggle_rejects_plain_word(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "filter", "toggle", "milk")
        assert result.exit_code == 1
        assert "Not a priority" in result.output

    def test_show_and_reset(self, cli_runner: CliRunner, todo_project: Path) -> None:
        _run(cli_runner, "filter", "custom", "milk")
        result = _run(cli_runner, "filter", "show")
        assert "Custom:" in result.output

        _run(cli_runner, "filter", "reset")
        result = _run(cli_runner, "filter", "show")
        assert "No active filters" in result.output

    def test_set_flag(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "filter", "set", "completed")
        assert result.exit_code == 0
        assert "completed: on" in result.output

    def test_invert(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "filter", "invert")
        assert result.exit_code == 0
        assert "Filters inverted" in result.output


class TestSortCommands:
    """Tests for the sort group."""

    def test_set_and_show(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "sort", "set", "due_date:desc", "priority")
        assert result.exit_code == 0

        result = _run(cli_runner, "sort", "show")
        assert "1. due_date" in result.output
        assert "2. priority" in result.output

    def test_set_invalid(self, cli_runner: CliRunner, todo_project: Path) -> None:
        result = _run(cli_runner, "sort", "set", "colour")
        assert result.exit_code == 1
        assert "Invalid sort rule" in result.output

    def test_reset(self, cli_runner: CliRunner, todo_project: Path) -> None:
        _run(cli_runner, "sort", "set", "context")
        _run(cli_runner, "sort", "reset")
        result = _run(cli_runner, "sort", "show")
        assert "1. pin" in result.output


class TestFilesCommands:
    """Tests for the files group."""

    def test_add_list_switch(self, cli_runner: CliRunner, todo_project: Path) -> None:
        (todo_project / "work.txt").write_text("Send invoice +acme\n")

        result = cli_runner.invoke(main, ["files", "add", "home", "todo.txt"])
        assert result.exit_code == 0
        result = cli_runner.invoke(main, ["files", "add", "work", "work.txt"])
        assert result.exit_code == 0

        result = cli_runner.invoke(main, ["files", "list"])
        assert "home" in result.output
        assert "work" in result.output

        result = cli_runner.invoke(main, ["files", "switch", "wrk"])
        assert result.exit_code == 0
        assert "Switched to work (1 tasks)" in result.output

        config = json.loads((todo_project / ".todocore" / "config.json").read_text())
        assert config["current"] == "work"

    def test_file_option_is_not_saved_by_add(
        self, cli_runner: CliRunner, todo_project: Path
    ) -> None:
        result = _run(cli_runner, "files", "add", "work", "work.txt")
        assert result.exit_code == 0

        config = json.loads((todo_project / ".todocore" / "config.json").read_text())
        assert [f["name"] for f in config["files"]] == ["work"]
        assert config["current"] == "work"

    def test_file_option_is_not_saved_by_switch(
        self, cli_runner: CliRunner, todo_project: Path
    ) -> None:
        (todo_project / "work.txt").write_text("Send invoice +acme\n")
        cli_runner.invoke(main, ["files", "add", "home", "todo.txt"])
        cli_runner.invoke(main, ["files", "add", "work", "work.txt"])

        result = _run(cli_runner, "files", "switch", "work")
        assert result.exit_code == 0

        config = json.loads((todo_project / ".todocore" / "config.json").read_text())
        assert [f["name"] for f in config["files"]] == ["home", "work"]
        assert config["current"] == "work"

    def test_switch_no_match(self, cli_runner: CliRunner, temp_project: Path) -> None:
        result = cli_runner.invoke(main, ["files", "switch", "zzz"])
        assert result.exit_code == 1
        assert "No todo file matches" in result.output
