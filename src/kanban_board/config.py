from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .tasks.storage import STORAGE_KEY, JsonFileStorage

CONFIG_ENV = "KANBAN_BOARD_CONFIG"


class AppConfig(BaseModel):
    """Global board settings."""

    storage_path: str = Field(default_factory=lambda: str(Path.home() / ".kanban-board" / "state.json"))
    storage_key: str = Field(default=STORAGE_KEY)

    # None: use the state's active board
    board_id: Optional[str] = Field(default=None)

    # DEBUG | INFO | WARNING | ERROR
    log_level: str = Field(default="WARNING")

    def validate_ready(self) -> None:
        if not self.storage_key:
            raise ValueError("Config 'storage_key' is empty. Run: kanban-board config --storage-key ...")

    def make_storage(self) -> JsonFileStorage:
        return JsonFileStorage(Path(self.storage_path).expanduser(), key=self.storage_key)


def config_dir() -> Path:
    return Path.home() / ".kanban-board"


def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return config_dir() / "config.json"


def load_config() -> AppConfig:
    path = config_path()
    if not path.exists():
        return AppConfig()
    data = json.loads(path.read_text(encoding="utf-8"))
    return AppConfig(**data)


def save_config(cfg: AppConfig) -> None:
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(cfg.model_dump_json(indent=2), encoding="utf-8")
