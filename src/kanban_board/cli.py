from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape

from .config import AppConfig, load_config, save_config
from .tasks import (
    BoardNotFoundError,
    BoardStore,
    PersistenceError,
    ReorderController,
    TaskPriority,
    check_state,
    compute_insertion_index,
    print_board,
    print_task_detail,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Kanban board with ordered task moves."""
    level = "DEBUG" if verbose else load_config().log_level.upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format="%(message)s")


def _store() -> BoardStore:
    cfg = load_config()
    try:
        cfg.validate_ready()
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    return BoardStore(cfg.make_storage())


def _run(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)
    except PersistenceError as e:
        logger.error("Storage failure: %s", e)
        console.print(f"[red]Storage error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except BoardNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


async def _board_id(store: BoardStore) -> str:
    configured = load_config().board_id
    if configured:
        return configured
    state = await store.get_state()
    if state.active_board is None:
        raise BoardNotFoundError("<active>")
    return state.active_board


def _parse_priority(priority: Optional[str]) -> Optional[TaskPriority]:
    if priority is None:
        return None
    try:
        return TaskPriority(priority.lower())
    except ValueError:
        console.print(f"[red]Invalid priority: {escape(priority)}[/red]")
        raise typer.Exit(1)


def _report(result, action: str, task_id: str) -> None:
    if result.applied:
        console.print(f"[green]{action}: {escape(task_id)}[/green]")
    else:
        console.print(f"[yellow]Nothing to do ({result.status.value}): {escape(task_id)}[/yellow]")


# ==============================================================================
# Board
# ==============================================================================

@app.command("board")
def board_cmd() -> None:
    """Show the board."""
    store = _store()

    async def _show():
        board = await store.get_board(await _board_id(store))
        if board is None:
            raise BoardNotFoundError(load_config().board_id or "<active>")
        return board

    print_board(_run(_show()))


@app.command("check")
def check_cmd() -> None:
    """Report broken task/column references."""
    store = _store()
    issues = check_state(_run(store.get_state()))
    if not issues:
        console.print("[green]Board state is consistent[/green]")
        return
    for issue in issues:
        console.print(f"[red]{escape(str(issue))}[/red]")
    raise typer.Exit(1)


# ==============================================================================
# Tasks
# ==============================================================================

@app.command("task-add")
def task_add_cmd(
    title: str = typer.Argument(..., help="Task title"),
    column: str = typer.Option("todo", "--column", "-c", help="Column id"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="Description"),
    priority: Optional[str] = typer.Option(None, "--priority", "-p", help="low/medium/high"),
    assignee: Optional[str] = typer.Option(None, "--assignee", "-a", help="Assignee"),
    due: Optional[str] = typer.Option(None, "--due", help="Due date (YYYY-MM-DD)"),
) -> None:
    """Create a task at the end of a column."""
    store = _store()
    prio = _parse_priority(priority)

    async def _add():
        return await store.add_task(
            await _board_id(store), column, title,
            description=description, assignee=assignee, priority=prio, due_date=due,
        )

    task = _run(_add())
    console.print(f"[green]Created: {escape(str(task))}[/green]")


@app.command("task-show")
def task_show_cmd(task_id: str = typer.Argument(..., help="Task id")) -> None:
    """Show task details."""
    store = _store()

    async def _get():
        return await store.get_board(await _board_id(store))

    board = _run(_get())
    task = board.tasks.get(task_id) if board else None
    if task is None:
        console.print(f"[red]Task not found: {escape(task_id)}[/red]")
        raise typer.Exit(1)
    print_task_detail(task)


@app.command("task-edit")
def task_edit_cmd(
    task_id: str = typer.Argument(..., help="Task id"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    description: Optional[str] = typer.Option(None, "--desc", "-d"),
    priority: Optional[str] = typer.Option(None, "--priority", "-p", help="low/medium/high"),
    assignee: Optional[str] = typer.Option(None, "--assignee", "-a"),
    due: Optional[str] = typer.Option(None, "--due"),
) -> None:
    """Change task fields."""
    store = _store()
    changes = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description
    if priority is not None:
        changes["priority"] = _parse_priority(priority)
    if assignee is not None:
        changes["assignee"] = assignee
    if due is not None:
        changes["due_date"] = due

    async def _edit():
        return await store.update_task(await _board_id(store), task_id, **changes)

    _report(_run(_edit()), "Updated", task_id)


@app.command("task-delete")
def task_delete_cmd(task_id: str = typer.Argument(..., help="Task id")) -> None:
    """Delete a task."""
    store = _store()

    async def _delete():
        return await store.delete_task(await _board_id(store), task_id)

    _report(_run(_delete()), "Deleted", task_id)


@app.command("task-done")
def task_done_cmd(task_id: str = typer.Argument(..., help="Task id")) -> None:
    """Toggle the completed flag."""
    store = _store()

    async def _toggle():
        return await store.toggle_complete(await _board_id(store), task_id)

    _report(_run(_toggle()), "Toggled", task_id)


@app.command("task-move")
def task_move_cmd(
    task_id: str = typer.Argument(..., help="Task id"),
    column: str = typer.Argument(..., help="Destination column id"),
    index: Optional[int] = typer.Option(None, "--index", "-i", help="Slot in the column as currently listed (default: end)"),
) -> None:
    """Move a task to a column position."""
    store = _store()

    async def _move():
        board_id = await _board_id(store)
        board = await store.get_board(board_id)
        task = board.tasks.get(task_id) if board else None
        dest = board.get_column(column) if board else None
        if task is None or dest is None:
            console.print(f"[red]Unknown task or column: {escape(task_id)} / {escape(column)}[/red]")
            raise typer.Exit(1)

        raw = len(dest.task_ids) if index is None else index
        if task.column_id == column:
            old = dest.index_of(task_id)
            if old == raw:
                return None
            if old != -1:
                raw = compute_insertion_index(old, raw)
        return await store.move_task(board_id, task_id, task.column_id, column, raw)

    result = _run(_move())
    if result is None:
        console.print(f"[yellow]Task {escape(task_id)} already there[/yellow]")
        return
    _report(result, "Moved", task_id)


@app.command("drag")
def drag_cmd(
    task_id: str = typer.Argument(..., help="Dragged task id"),
    over: List[str] = typer.Option([], "--over", "-o", help="Hover target (repeatable)"),
    drop: Optional[str] = typer.Option(None, "--drop", help="Drop target (default: last --over)"),
    cancel: bool = typer.Option(False, "--cancel", help="Release without a target"),
    show: bool = typer.Option(False, "--show", "-s", help="Render every preview"),
) -> None:
    """Replay a drag gesture: start, hover over targets, then drop."""
    store = _store()

    async def _drag():
        controller = ReorderController(store, load_config().board_id)
        await controller.load()
        if not controller.on_gesture_start(task_id):
            console.print(f"[red]Task not found: {escape(task_id)}[/red]")
            raise typer.Exit(1)
        for target in over:
            preview = controller.on_gesture_hover(target)
            if show and preview is not None:
                print_board(preview)
        if cancel:
            result = await controller.on_gesture_cancel()
        else:
            result = await controller.on_gesture_end(drop or (over[-1] if over else None))
        return result, controller.preview

    result, board = _run(_drag())
    _report(result, "Dropped", task_id)
    if board is not None:
        print_board(board)


# ==============================================================================
# Config
# ==============================================================================

@app.command("config")
def config_set(
    storage_path: Optional[str] = typer.Option(None, "--storage-path"),
    storage_key: Optional[str] = typer.Option(None, "--storage-key"),
    board_id: Optional[str] = typer.Option(None, "--board"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
) -> None:
    """Save or update the config."""
    cfg = load_config()
    data = cfg.model_dump()
    if storage_path is not None:
        data["storage_path"] = storage_path
    if storage_key is not None:
        data["storage_key"] = storage_key
    if board_id is not None:
        data["board_id"] = board_id or None
    if log_level is not None:
        data["log_level"] = log_level.upper()

    save_config(AppConfig(**data))
    console.print("OK")


@app.command("config-show")
def config_show() -> None:
    """Show the config."""
    console.print(load_config().model_dump_json(indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
