"""
Persistence adapters for the board state.

An adapter stores exactly one record (the whole serialized ``KanbanState``)
under a fixed storage key. It knows nothing about boards or tasks.

    storage = JsonFileStorage(Path("~/.kanban-board/state.json").expanduser())
    record = await storage.get()      # dict or None
    await storage.set(record)
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import PersistenceError

logger = logging.getLogger(__name__)

STORAGE_KEY = "kanban-board-state"

Record = Dict[str, Any]


class StorageAdapter(ABC):
    """Durable get/set of one serialized state record."""

    def __init__(self, key: str = STORAGE_KEY):
        self.key = key

    @abstractmethod
    async def get(self) -> Optional[Record]:
        """Return the stored record, or None if nothing was stored yet."""
        pass

    @abstractmethod
    async def set(self, record: Record) -> None:
        """Replace the stored record."""
        pass


def _encode(record: Record) -> str:
    try:
        return json.dumps(record, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"State is not serializable: {e}") from e


class MemoryStorage(StorageAdapter):
    """
    Process-local adapter.

    Records are kept as encoded JSON text so that callers never share
    mutable structures with the stored copy.
    """

    def __init__(self, key: str = STORAGE_KEY):
        super().__init__(key)
        self._items: Dict[str, str] = {}

    async def get(self) -> Optional[Record]:
        raw = self._items.get(self.key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, record: Record) -> None:
        self._items[self.key] = _encode(record)


class JsonFileStorage(StorageAdapter):
    """
    Adapter backed by a JSON document on disk.

    The document maps storage keys to records, so several keys can share one
    file. Writes go to a temporary file that replaces the original.
    """

    def __init__(self, path: Path, key: str = STORAGE_KEY):
        super().__init__(key)
        self.path = Path(path)

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected document in {self.path}: {type(data).__name__}")
        return data

    def _write_document(self, document: Dict[str, Any]) -> None:
        text = _encode(document)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e

    def _get_sync(self) -> Optional[Record]:
        return self._read_document().get(self.key)

    def _set_sync(self, record: Record) -> None:
        document = self._read_document()
        document[self.key] = record
        self._write_document(document)
        logger.debug("Wrote %s (key=%s)", self.path, self.key)

    async def get(self) -> Optional[Record]:
        return await asyncio.to_thread(self._get_sync)

    async def set(self, record: Record) -> None:
        await asyncio.to_thread(self._set_sync, record)
