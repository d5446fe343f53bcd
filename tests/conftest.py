"""
Pytest configuration and fixtures.
"""

import pytest
import tempfile
import shutil
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kanban_board.tasks.kanban import BoardStore
from kanban_board.tasks.models import KanbanState, Task
from kanban_board.tasks.storage import MemoryStorage


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp, ignore_errors=True)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return BoardStore(storage)


def make_state(**columns):
    """
    Default state with the given column contents, e.g.
    make_state(todo=["a", "b"], done=["c"]).

    Column keyword names use underscores for hyphens (in_progress).
    Every listed id gets a matching task.
    """
    state = KanbanState.default()
    board = state.boards["default"]
    for name, ids in columns.items():
        column = board.get_column(name.replace("_", "-"))
        column.task_ids = list(ids)
        for task_id in ids:
            board.tasks[task_id] = Task(
                id=task_id,
                title=f"Task {task_id}",
                column_id=column.id,
                created_at="2024-01-01T00:00:00+00:00",
                updated_at="2024-01-01T00:00:00+00:00",
            )
    return state


def assert_invariants(board):
    """Each task in exactly one column matching its column_id; no orphans."""
    placements = {}
    for column in board.columns:
        for task_id in column.task_ids:
            assert task_id in board.tasks, f"orphan id {task_id} in {column.id}"
            assert task_id not in placements, f"{task_id} listed twice"
            placements[task_id] = column.id
    for task_id, task in board.tasks.items():
        assert placements.get(task_id) == task.column_id, f"{task_id} misplaced"
