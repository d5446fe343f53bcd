"""
Data models for the Kanban board.

The persisted layout uses camelCase keys (``columnId``, ``taskIds``,
``activeBoard``...); the dataclasses below use snake_case attributes and
translate in ``to_dict`` / ``from_dict``.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


DEFAULT_BOARD_ID = "default"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_task_id() -> str:
    return f"task-{uuid.uuid4().hex[:12]}"


class TaskPriority(str, Enum):
    """Task priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Optional task fields: attribute name -> persisted key.
# Unset values are left out of the serialized record.
_OPTIONAL_FIELDS = {
    "description": "description",
    "assignee": "assignee",
    "priority": "priority",
    "due_date": "dueDate",
    "completed": "completed",
}

EDITABLE_FIELDS = frozenset({"title", *_OPTIONAL_FIELDS})


@dataclass
class Task:
    """A unit of work owned by exactly one column."""
    id: str
    title: str
    column_id: str
    description: Optional[str] = None
    assignee: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[str] = None
    completed: Optional[bool] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        if isinstance(self.priority, str) and not isinstance(self.priority, TaskPriority):
            self.priority = TaskPriority(self.priority)

    @property
    def is_completed(self) -> bool:
        return bool(self.completed)

    def touch(self) -> None:
        """Refresh updated_at, never moving it backwards."""
        stamp = now_iso()
        if stamp > self.updated_at:
            self.updated_at = stamp

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "columnId": self.column_id,
        }
        for attr, key in _OPTIONAL_FIELDS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            result[key] = value.value if isinstance(value, TaskPriority) else value
        result["createdAt"] = self.created_at
        result["updatedAt"] = self.updated_at
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Task:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            column_id=data.get("columnId", ""),
            description=data.get("description"),
            assignee=data.get("assignee"),
            priority=TaskPriority(data["priority"]) if data.get("priority") else None,
            due_date=data.get("dueDate"),
            completed=data.get("completed"),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )

    def __str__(self) -> str:
        return f"[{self.id}] {self.title} ({self.column_id})"


@dataclass
class Column:
    """An ordered bucket of task ids."""
    id: str
    title: str
    task_ids: List[str] = field(default_factory=list)
    color: Optional[str] = None

    def index_of(self, task_id: str) -> int:
        """Position of task_id in this column, or -1."""
        try:
            return self.task_ids.index(task_id)
        except ValueError:
            return -1

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "taskIds": list(self.task_ids),
        }
        if self.color is not None:
            result["color"] = self.color
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Column:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            task_ids=list(data.get("taskIds", [])),
            color=data.get("color"),
        )


@dataclass
class Board:
    """A named collection of columns and the tasks distributed among them."""
    id: str
    title: str
    columns: List[Column] = field(default_factory=list)
    tasks: Dict[str, Task] = field(default_factory=dict)

    def get_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def column_of(self, task_id: str) -> Optional[Column]:
        """First column whose task_ids contain task_id."""
        for column in self.columns:
            if task_id in column.task_ids:
                return column
        return None

    def column_tasks(self, column: Column) -> List[Task]:
        """Tasks of a column in display order; unknown ids are skipped."""
        return [self.tasks[tid] for tid in column.task_ids if tid in self.tasks]

    def copy(self) -> Board:
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "columns": [column.to_dict() for column in self.columns],
            "tasks": {task_id: task.to_dict() for task_id, task in self.tasks.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Board:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            columns=[Column.from_dict(c) for c in data.get("columns", [])],
            tasks={
                task_id: Task.from_dict(task_data)
                for task_id, task_data in data.get("tasks", {}).items()
            },
        )


@dataclass
class KanbanState:
    """All boards plus a weak reference to the displayed one."""
    boards: Dict[str, Board] = field(default_factory=dict)
    active_board: Optional[str] = None

    def get_active_board(self) -> Optional[Board]:
        if self.active_board is None:
            return None
        return self.boards.get(self.active_board)

    def copy(self) -> KanbanState:
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boards": {board_id: board.to_dict() for board_id, board in self.boards.items()},
            "activeBoard": self.active_board,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> KanbanState:
        return cls(
            boards={
                board_id: Board.from_dict(board_data)
                for board_id, board_data in data.get("boards", {}).items()
            },
            active_board=data.get("activeBoard"),
        )

    @classmethod
    def default(cls) -> KanbanState:
        """State used on first run: one board with four empty columns."""
        board = Board(
            id=DEFAULT_BOARD_ID,
            title="Team Board",
            columns=[
                Column(id="todo", title="To Do", color="#6366f1"),
                Column(id="in-progress", title="In Progress", color="#f59e0b"),
                Column(id="review", title="Review", color="#8b5cf6"),
                Column(id="done", title="Done", color="#10b981"),
            ],
        )
        return cls(boards={board.id: board}, active_board=board.id)


# =============================================================================
# Consistency checks
# =============================================================================

class InconsistencyKind(str, Enum):
    DUPLICATE = "duplicate"        # id listed more than once across columns
    ORPHAN = "orphan"              # column lists an id missing from tasks
    UNPLACED = "unplaced"          # task listed in no column
    MISPLACED = "misplaced"        # task.column_id disagrees with owning column
    DANGLING_ACTIVE = "dangling_active"


@dataclass(frozen=True)
class Inconsistency:
    kind: InconsistencyKind
    board_id: Optional[str]
    task_id: Optional[str] = None
    column_id: Optional[str] = None

    def __str__(self) -> str:
        where = f"{self.board_id}"
        if self.column_id:
            where += f"/{self.column_id}"
        subject = self.task_id or ""
        return f"{self.kind.value}: {subject} @ {where}".strip()


def check_board(board: Board) -> List[Inconsistency]:
    """Report every violation of the ownership invariants on a board."""
    issues: List[Inconsistency] = []
    seen: Dict[str, str] = {}

    for column in board.columns:
        for task_id in column.task_ids:
            if task_id in seen:
                issues.append(Inconsistency(InconsistencyKind.DUPLICATE, board.id, task_id, column.id))
                continue
            seen[task_id] = column.id
            if task_id not in board.tasks:
                issues.append(Inconsistency(InconsistencyKind.ORPHAN, board.id, task_id, column.id))

    for task_id, task in board.tasks.items():
        owner = seen.get(task_id)
        if owner is None:
            issues.append(Inconsistency(InconsistencyKind.UNPLACED, board.id, task_id, task.column_id))
        elif owner != task.column_id:
            issues.append(Inconsistency(InconsistencyKind.MISPLACED, board.id, task_id, owner))

    return issues


def check_state(state: KanbanState) -> List[Inconsistency]:
    issues: List[Inconsistency] = []
    if state.active_board is not None and state.active_board not in state.boards:
        issues.append(Inconsistency(InconsistencyKind.DANGLING_ACTIVE, state.active_board))
    for board in state.boards.values():
        issues.extend(check_board(board))
    return issues
