"""
Live reordering of tasks during a drag gesture.

Two kinds of board state are kept apart:

- ``committed``: the last snapshot read from the store. Never mutated.
- ``preview``: a copy derived from it on every hover, shown to the
  renderer and thrown away when the gesture ends.

The arithmetic lives in pure functions so it can be tested without a
store; ``ReorderController`` wires them to gesture events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import PersistenceError
from .kanban import BoardStore, OpResult, OpStatus
from .models import Board, Task

logger = logging.getLogger(__name__)


def compute_insertion_index(old_index: int, raw_target_index: int) -> int:
    """
    Final insert position for a move inside one column.

    raw_target_index is measured on the list that still contains the moving
    task. Removing it shifts every later item left by one, so targets after
    the old position are decremented.

    >>> compute_insertion_index(0, 2)
    1
    >>> compute_insertion_index(2, 0)
    0
    """
    if raw_target_index > old_index:
        return raw_target_index - 1
    return raw_target_index


def resolve_destination(board: Board, target_id: str) -> str:
    """Column id a hover/drop target stands for."""
    task = board.tasks.get(target_id)
    if task is not None:
        return task.column_id
    return target_id


def preview_move(board: Board, active_task_id: str, target_id: str) -> Board:
    """
    Board as it should look while active_task_id hovers over target_id.

    Only cross-column hovers change anything: the active id leaves its
    column and is inserted at the hovered task's position (or at the end
    when hovering the column itself). The input board is not modified.
    """
    preview = board.copy()
    task = preview.tasks.get(active_task_id)
    if task is None:
        return preview

    source_id = task.column_id
    dest_id = resolve_destination(preview, target_id)
    if dest_id == source_id:
        return preview

    source = preview.get_column(source_id)
    dest = preview.get_column(dest_id)
    if source is None or dest is None:
        return preview

    source.task_ids = [tid for tid in source.task_ids if tid != active_task_id]
    dest.task_ids = [tid for tid in dest.task_ids if tid != active_task_id]
    position = dest.index_of(target_id)
    if position == -1:
        dest.task_ids.append(active_task_id)
    else:
        dest.task_ids.insert(position, active_task_id)
    task.column_id = dest_id
    return preview


@dataclass(frozen=True)
class MovePlan:
    """Arguments for ``BoardStore.move_task``."""
    task_id: str
    source_column_id: str
    dest_column_id: str
    index: int


def plan_commit(board: Board, active_task_id: str, target_id: str) -> Optional[MovePlan]:
    """
    Work out the durable move for a drop, from a committed snapshot.

    Returns None when nothing should be written: unknown task or column, or
    a drop onto the task's own position.
    """
    task = board.tasks.get(active_task_id)
    if task is None:
        return None

    source = board.get_column(task.column_id)
    dest = board.get_column(resolve_destination(board, target_id))
    if source is None or dest is None:
        return None

    raw_index = dest.index_of(target_id)
    if raw_index == -1:
        raw_index = len(dest.task_ids)

    if source.id == dest.id:
        old_index = source.index_of(active_task_id)
        if old_index == raw_index:
            return None
        if old_index == -1:
            # Not actually listed; nothing shifts on removal.
            index = raw_index
        else:
            index = compute_insertion_index(old_index, raw_index)
    else:
        index = raw_index

    return MovePlan(active_task_id, source.id, dest.id, index)


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class ReorderController:
    """
    Drag-and-drop state machine over one board.

    Hover events only rewrite ``preview``. The drop is planned against
    ``committed`` and written through the store, after which both are
    reloaded from durable state.
    """

    def __init__(self, store: BoardStore, board_id: Optional[str] = None):
        self.store = store
        self.board_id = board_id
        self.committed: Optional[Board] = None
        self.preview: Optional[Board] = None
        self.active_task_id: Optional[str] = None
        self.phase = DragPhase.IDLE

    @property
    def active_task(self) -> Optional[Task]:
        """Task shown in the drag overlay."""
        if self.active_task_id is None or self.preview is None:
            return None
        return self.preview.tasks.get(self.active_task_id)

    @property
    def is_dragging(self) -> bool:
        return self.phase == DragPhase.DRAGGING

    async def load(self) -> Optional[Board]:
        """Replace both committed and preview state with the durable board."""
        board = await self.store.get_board(self.board_id)
        self.committed = board
        self.preview = board.copy() if board is not None else None
        return self.preview

    def on_gesture_start(self, task_id: str) -> bool:
        if self.preview is None or task_id not in self.preview.tasks:
            logger.debug("Ignoring drag start on unknown item %s", task_id)
            return False
        self.active_task_id = task_id
        self.phase = DragPhase.DRAGGING
        logger.debug("Drag started: %s", task_id)
        return True

    def on_gesture_hover(self, target_id: str) -> Optional[Board]:
        if not self.is_dragging or self.preview is None:
            return self.preview
        # Hovers chain on the previous preview so the dragged card follows the
        # pointer across columns; the drop is still planned from committed.
        self.preview = preview_move(self.preview, self.active_task_id, target_id)
        logger.debug("Preview %s over %s", self.active_task_id, target_id)
        return self.preview

    async def on_gesture_end(self, target_id: Optional[str]) -> OpResult:
        active_id = self.active_task_id
        self.active_task_id = None
        self.phase = DragPhase.IDLE

        if target_id is None or active_id is None or self.committed is None:
            await self.load()
            return OpResult(OpStatus.NOOP)

        plan = plan_commit(self.committed, active_id, target_id)
        if plan is None:
            await self.load()
            return OpResult(OpStatus.NOOP)

        try:
            result = await self.store.move_task(
                self.committed.id,
                plan.task_id,
                plan.source_column_id,
                plan.dest_column_id,
                plan.index,
            )
        except PersistenceError:
            logger.warning("Drop of %s not saved; reverting preview", active_id)
            await self._revert()
            raise
        await self.load()
        return result

    async def _revert(self) -> None:
        try:
            await self.load()
        except PersistenceError as e:
            logger.warning("Reload after failed drop also failed: %s", e)
            self.preview = self.committed.copy() if self.committed is not None else None

    async def on_gesture_cancel(self) -> OpResult:
        return await self.on_gesture_end(None)
