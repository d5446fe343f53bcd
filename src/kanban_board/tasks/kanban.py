"""
Board state store: task CRUD and ordered moves on top of a storage adapter.

Usage:
    from kanban_board.tasks import BoardStore, MemoryStorage

    store = BoardStore(MemoryStorage())

    task = await store.add_task("default", "todo", "Add user auth")
    await store.move_task("default", task.id, "todo", "done", 0)

    print_board((await store.get_state()).get_active_board())

Every mutation loads the full state, changes it and writes the full state
back. Missing boards, columns or tasks are reported through ``OpResult``
rather than raised; only ``add_task`` on a missing board raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from rich.columns import Columns
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .errors import BoardNotFoundError, PersistenceError
from .models import (
    EDITABLE_FIELDS,
    Board,
    KanbanState,
    Task,
    TaskPriority,
    new_task_id,
    now_iso,
)
from .storage import StorageAdapter

logger = logging.getLogger(__name__)

console = Console()

# Fields a partial update may never change.
PROTECTED_FIELDS = frozenset({"id", "column_id", "created_at", "updated_at"})


class OpStatus(str, Enum):
    """Outcome of a store mutation."""
    APPLIED = "applied"
    APPLIED_ORPHAN = "applied_orphan"   # column lists changed, task record missing
    NOOP = "noop"
    BOARD_NOT_FOUND = "board_not_found"
    COLUMN_NOT_FOUND = "column_not_found"
    TASK_NOT_FOUND = "task_not_found"


@dataclass
class OpResult:
    status: OpStatus
    task: Optional[Task] = None

    @property
    def applied(self) -> bool:
        return self.status in (OpStatus.APPLIED, OpStatus.APPLIED_ORPHAN)

    def __bool__(self) -> bool:
        return self.applied


class BoardStore:
    """
    Owner of the durable ``KanbanState``.

    The store keeps no state between calls: each operation works on a fresh
    copy read from the adapter, which is discarded if the write fails.
    """

    def __init__(self, storage: StorageAdapter):
        self.storage = storage

    # -------------------- state access --------------------

    async def _load(self) -> KanbanState:
        record = await self.storage.get()
        if record is None:
            state = KanbanState.default()
            await self._save(state)
            logger.info("Initialized default board state")
            return state
        try:
            return KanbanState.from_dict(record)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(f"Stored state is malformed: {e}") from e

    async def _save(self, state: KanbanState) -> None:
        await self.storage.set(state.to_dict())
        logger.debug("Persisted state (%d boards)", len(state.boards))

    async def get_state(self) -> KanbanState:
        """Full durable state; the default state is created on first use."""
        return await self._load()

    async def set_state(self, state: KanbanState) -> None:
        await self._save(state)

    async def get_board(self, board_id: Optional[str] = None) -> Optional[Board]:
        """Board by id, or the active board when board_id is None."""
        state = await self._load()
        if board_id is None:
            return state.get_active_board()
        return state.boards.get(board_id)

    # -------------------- task operations --------------------

    async def add_task(
        self,
        board_id: str,
        column_id: str,
        title: str,
        description: Optional[str] = None,
        assignee: Optional[str] = None,
        priority: Optional[TaskPriority] = None,
        due_date: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Task:
        """
        Create a task at the end of a column.

        Args:
            board_id: Board to add to
            column_id: Owning column
            title: Task title

        Returns:
            The created Task

        Raises:
            BoardNotFoundError: board_id does not resolve
        """
        state = await self._load()
        board = state.boards.get(board_id)
        if board is None:
            raise BoardNotFoundError(board_id)

        stamp = now_iso()
        task = Task(
            id=new_task_id(),
            title=title,
            column_id=column_id,
            description=description,
            assignee=assignee,
            priority=priority,
            due_date=due_date,
            completed=completed,
            created_at=stamp,
            updated_at=stamp,
        )
        while task.id in board.tasks:
            task.id = new_task_id()
        board.tasks[task.id] = task

        column = board.get_column(column_id)
        if column is not None:
            column.task_ids.append(task.id)
        else:
            logger.warning("Column %s not found on board %s; task %s stored unplaced",
                           column_id, board_id, task.id)

        await self._save(state)
        logger.info("Created task %s in %s/%s", task.id, board_id, column_id)
        return task

    async def update_task(self, board_id: str, task_id: str, **changes: Any) -> OpResult:
        """
        Merge field changes into a task.

        id, column_id and the timestamps are not editable here; such keys
        are dropped. Unknown keys, or a title that is not a string, raise
        TypeError.
        """
        unknown = set(changes) - EDITABLE_FIELDS - PROTECTED_FIELDS
        if unknown:
            raise TypeError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        if "title" in changes and not isinstance(changes["title"], str):
            raise TypeError("Task title must be a string")

        state = await self._load()
        board = state.boards.get(board_id)
        if board is None:
            return self._missing(OpStatus.BOARD_NOT_FOUND, "update", board_id, task_id)
        task = board.tasks.get(task_id)
        if task is None:
            return self._missing(OpStatus.TASK_NOT_FOUND, "update", board_id, task_id)

        ignored = sorted(set(changes) & PROTECTED_FIELDS)
        if ignored:
            logger.warning("Ignoring protected fields on %s: %s", task_id, ", ".join(ignored))

        for name, value in changes.items():
            if name in PROTECTED_FIELDS:
                continue
            if name == "priority" and value is not None:
                value = TaskPriority(value)
            setattr(task, name, value)
        task.touch()

        await self._save(state)
        logger.info("Updated task %s", task_id)
        return OpResult(OpStatus.APPLIED, task)

    async def delete_task(self, board_id: str, task_id: str) -> OpResult:
        """Remove a task and every column reference to it."""
        state = await self._load()
        board = state.boards.get(board_id)
        if board is None:
            return self._missing(OpStatus.BOARD_NOT_FOUND, "delete", board_id, task_id)
        task = board.tasks.pop(task_id, None)
        if task is None:
            return self._missing(OpStatus.TASK_NOT_FOUND, "delete", board_id, task_id)

        # Every column, not only task.column_id: tolerate earlier drift.
        for column in board.columns:
            column.task_ids = [tid for tid in column.task_ids if tid != task_id]

        await self._save(state)
        logger.info("Deleted task %s", task_id)
        return OpResult(OpStatus.APPLIED, task)

    async def toggle_complete(self, board_id: str, task_id: str) -> OpResult:
        state = await self._load()
        board = state.boards.get(board_id)
        if board is None:
            return self._missing(OpStatus.BOARD_NOT_FOUND, "toggle", board_id, task_id)
        task = board.tasks.get(task_id)
        if task is None:
            return self._missing(OpStatus.TASK_NOT_FOUND, "toggle", board_id, task_id)

        task.completed = not task.is_completed
        task.touch()

        await self._save(state)
        logger.info("Task %s completed=%s", task_id, task.completed)
        return OpResult(OpStatus.APPLIED, task)

    async def move_task(
        self,
        board_id: str,
        task_id: str,
        source_column_id: str,
        dest_column_id: str,
        destination_index: int,
    ) -> OpResult:
        """
        Move a task to a position in a column.

        The index is applied after the task is removed from the source
        column. For moves within one column the caller must already have
        shifted it (see ``reorder.compute_insertion_index``); the store does
        a plain remove-then-insert.

        Args:
            board_id: Board id
            task_id: Task to move
            source_column_id: Column the task is removed from
            dest_column_id: Column the task is inserted into
            destination_index: Insert position, clamped to [0, len]

        Returns:
            OpResult; APPLIED_ORPHAN when the id was moved but has no task record
        """
        state = await self._load()
        board = state.boards.get(board_id)
        if board is None:
            return self._missing(OpStatus.BOARD_NOT_FOUND, "move", board_id, task_id)

        source = board.get_column(source_column_id)
        dest = board.get_column(dest_column_id)
        if source is None or dest is None:
            return self._missing(OpStatus.COLUMN_NOT_FOUND, "move", board_id, task_id)

        source.task_ids = [tid for tid in source.task_ids if tid != task_id]
        index = max(0, min(destination_index, len(dest.task_ids)))
        dest.task_ids.insert(index, task_id)

        task = board.tasks.get(task_id)
        if task is not None:
            task.column_id = dest_column_id
            task.touch()
            status = OpStatus.APPLIED
        else:
            logger.warning("Moved id %s without a task record on board %s", task_id, board_id)
            status = OpStatus.APPLIED_ORPHAN

        await self._save(state)
        logger.info("Moved %s: %s -> %s[%d]", task_id, source_column_id, dest_column_id, index)
        return OpResult(status, task)

    @staticmethod
    def _missing(status: OpStatus, action: str, board_id: str, task_id: str) -> OpResult:
        logger.warning("Skipped %s of %s on board %s: %s", action, task_id, board_id, status.value)
        return OpResult(status)


# =============================================================================
# Rendering
# =============================================================================

PRIORITY_COLORS = {
    TaskPriority.LOW: "green",
    TaskPriority.MEDIUM: "yellow",
    TaskPriority.HIGH: "red",
}


def _task_line(task: Task) -> str:
    color = PRIORITY_COLORS.get(task.priority, "white")
    mark = "[green]✓[/green] " if task.is_completed else ""
    title = task.title[:30] + "..." if len(task.title) > 30 else task.title
    line = f"{mark}[{color}]{escape(task.id)}[/{color}]\n  {escape(title)}"
    if task.priority:
        line += f"\n  [{color}]{task.priority.value}[/{color}]"
    if task.assignee:
        line += f"\n  [dim]→ {escape(task.assignee)}[/dim]"
    if task.due_date:
        line += f"\n  [dim]due {escape(task.due_date[:10])}[/dim]"
    return line


def print_board(board: Board, out: Optional[Console] = None) -> None:
    """Render a board as one panel per column."""
    out = out or console
    panels = []
    for column in board.columns:
        tasks = board.column_tasks(column)
        lines = [_task_line(task) for task in tasks]
        content = "\n\n".join(lines) if lines else "[dim]No tasks[/dim]"
        panels.append(Panel(
            content,
            title=f"{escape(column.title)} ({len(tasks)})",
            border_style=column.color or "white",
            width=32,
        ))

    out.print(f"[bold]{escape(board.title)}[/bold]")
    out.print(Columns(panels))

    done = sum(1 for t in board.tasks.values() if t.is_completed)
    out.print(f"[dim]Total: {len(board.tasks)} tasks | Completed: {done}[/dim]")


def print_task_detail(task: Task, out: Optional[Console] = None) -> None:
    out = out or console
    content = (
        f"ID: {escape(task.id)}\n"
        f"Title: {escape(task.title)}\n"
        f"Column: {escape(task.column_id)}\n"
        f"Priority: {task.priority.value if task.priority else '-'}\n"
        f"Assignee: {escape(task.assignee or 'Unassigned')}\n"
        f"Due: {escape(task.due_date or '-')}\n"
        f"Completed: {'yes' if task.is_completed else 'no'}\n\n"
        f"{escape(task.description or 'No description')}\n\n"
        f"Created: {task.created_at[:19]}\n"
        f"Updated: {task.updated_at[:19]}"
    )
    out.print(Panel(content, title=f"Task: {escape(task.id)}", border_style="cyan"))
