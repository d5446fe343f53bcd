"""Kanban board with ordered task moves and drag-and-drop reordering."""

__version__ = "0.1.0"
