"""Task management: board model, durable store and live reordering."""

from .errors import BoardNotFoundError, KanbanError, NotFoundError, PersistenceError
from .kanban import BoardStore, OpResult, OpStatus, print_board, print_task_detail
from .models import Board, Column, KanbanState, Task, TaskPriority, check_board, check_state
from .reorder import ReorderController, compute_insertion_index, plan_commit, preview_move
from .storage import JsonFileStorage, MemoryStorage, StorageAdapter

__all__ = [
    "Board",
    "BoardNotFoundError",
    "BoardStore",
    "Column",
    "JsonFileStorage",
    "KanbanError",
    "KanbanState",
    "MemoryStorage",
    "NotFoundError",
    "OpResult",
    "OpStatus",
    "PersistenceError",
    "ReorderController",
    "StorageAdapter",
    "Task",
    "TaskPriority",
    "check_board",
    "check_state",
    "compute_insertion_index",
    "plan_commit",
    "preview_move",
    "print_board",
    "print_task_detail",
]
