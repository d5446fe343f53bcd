"""Exceptions raised by the Kanban board core."""

from __future__ import annotations


class KanbanError(Exception):
    """Base class for board errors."""
    pass


class NotFoundError(KanbanError):
    """A referenced entity does not exist."""
    pass


class BoardNotFoundError(NotFoundError):
    """Board id does not resolve in the stored state."""

    def __init__(self, board_id: str):
        super().__init__(f"Board not found: {board_id}")
        self.board_id = board_id


class PersistenceError(KanbanError):
    """Reading or writing the stored state failed."""
    pass
