"""
Tests for cli.py - board commands.
"""

import pytest
import asyncio
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from typer.testing import CliRunner

from kanban_board.cli import app
from kanban_board.config import CONFIG_ENV, AppConfig, save_config
from kanban_board.tasks.kanban import BoardStore
from kanban_board.tasks.storage import JsonFileStorage

from conftest import make_state

runner = CliRunner()


@pytest.fixture
def cli_store(temp_dir, monkeypatch):
    """Point the CLI at a state file inside temp_dir."""
    monkeypatch.setenv(CONFIG_ENV, str(temp_dir / "config.json"))
    state_path = temp_dir / "state.json"
    save_config(AppConfig(storage_path=str(state_path)))
    return BoardStore(JsonFileStorage(state_path))


def seed(store, **columns):
    asyncio.run(store.set_state(make_state(**columns)))


def column_ids(store, column_id):
    board = asyncio.run(store.get_board())
    return board.get_column(column_id).task_ids


class TestBoardCommands:
    """Tests for board / check."""

    def test_board_shows_default(self, cli_store):
        result = runner.invoke(app, ["board"])

        assert result.exit_code == 0
        assert "Team Board" in result.output

    def test_check_consistent(self, cli_store):
        seed(cli_store, todo=["a"])

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0
        assert "consistent" in result.output

    def test_check_reports_orphan(self, cli_store):
        state = make_state(todo=["a"])
        state.boards["default"].get_column("todo").task_ids.append("ghost")
        asyncio.run(cli_store.set_state(state))

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 1
        assert "orphan" in result.output

    def test_board_with_bracketed_assignee(self, cli_store):
        seed(cli_store, todo=["a"])
        assert runner.invoke(app, ["task-edit", "a", "--assignee", "ops[/team]"]).exit_code == 0

        result = runner.invoke(app, ["board"])

        assert result.exit_code == 0
        assert "ops[/team]" in result.output

    def test_corrupt_state_file(self, cli_store, temp_dir):
        (temp_dir / "state.json").write_text("{broken", encoding="utf-8")

        result = runner.invoke(app, ["board"])

        assert result.exit_code == 1
        assert "Storage error" in result.output


class TestTaskCommands:
    """Tests for task-* commands."""

    def test_task_add(self, cli_store):
        result = runner.invoke(app, ["task-add", "Write tests", "--column", "review", "--priority", "high"])

        assert result.exit_code == 0
        board = asyncio.run(cli_store.get_board())
        task_id = board.get_column("review").task_ids[0]
        assert board.tasks[task_id].title == "Write tests"
        assert board.tasks[task_id].priority.value == "high"

    def test_task_add_bad_priority(self, cli_store):
        result = runner.invoke(app, ["task-add", "X", "--priority", "urgent"])

        assert result.exit_code == 1
        assert "Invalid priority" in result.output

    def test_task_edit_and_show(self, cli_store):
        seed(cli_store, todo=["a"])

        edit = runner.invoke(app, ["task-edit", "a", "--title", "Renamed", "--assignee", "kim"])
        show = runner.invoke(app, ["task-show", "a"])

        assert edit.exit_code == 0
        assert "Renamed" in show.output
        assert "kim" in show.output

    def test_task_edit_missing(self, cli_store):
        result = runner.invoke(app, ["task-edit", "ghost", "--title", "x"])

        assert result.exit_code == 0
        assert "task_not_found" in result.output

    def test_task_done_and_delete(self, cli_store):
        seed(cli_store, todo=["a", "b"])

        runner.invoke(app, ["task-done", "a"])
        result = runner.invoke(app, ["task-delete", "b"])

        board = asyncio.run(cli_store.get_board())
        assert result.exit_code == 0
        assert board.tasks["a"].completed is True
        assert "b" not in board.tasks

    def test_task_move_same_column(self, cli_store):
        """Test that --index names the slot as currently listed."""
        seed(cli_store, todo=["a", "b", "c"])

        result = runner.invoke(app, ["task-move", "a", "todo", "--index", "2"])

        assert result.exit_code == 0
        assert column_ids(cli_store, "todo") == ["b", "a", "c"]

    def test_task_move_cross_column_default_end(self, cli_store):
        seed(cli_store, todo=["a"], done=["c"])

        runner.invoke(app, ["task-move", "a", "done"])

        assert column_ids(cli_store, "done") == ["c", "a"]

    def test_task_move_unknown(self, cli_store):
        result = runner.invoke(app, ["task-move", "ghost", "done"])

        assert result.exit_code == 1


class TestDragCommand:
    """Tests for the drag replay command."""

    def test_drag_across_columns(self, cli_store):
        seed(cli_store, todo=["a", "b"], done=["c"])

        result = runner.invoke(app, ["drag", "a", "--over", "done", "--over", "c"])

        assert result.exit_code == 0
        assert column_ids(cli_store, "done") == ["a", "c"]

    def test_drag_cancel(self, cli_store):
        seed(cli_store, todo=["a"], done=["c"])

        result = runner.invoke(app, ["drag", "a", "--over", "c", "--cancel"])

        assert result.exit_code == 0
        assert column_ids(cli_store, "todo") == ["a"]

    def test_drag_unknown_task(self, cli_store):
        result = runner.invoke(app, ["drag", "ghost", "--over", "todo"])

        assert result.exit_code == 1


class TestConfigCommands:
    def test_config_set_and_show(self, cli_store):
        runner.invoke(app, ["config", "--log-level", "info"])

        result = runner.invoke(app, ["config-show"])

        assert '"log_level": "INFO"' in result.output
