"""Where the entity store lives on disk."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

APP_DIR_NAME: Final[str] = "bcdc-catalog"
DEFAULT_DB_FILENAME: Final[str] = "catalog.db"
DATA_DIR_ENV: Final[str] = "BCDC_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def resolve_data_dir(self, *, create: bool = False) -> Path:
        resolved = self.data_dir.expanduser().resolve()
        if create:
            resolved.mkdir(parents=True, exist_ok=True)
        return resolved

    def database_path(self) -> Path:
        return self.resolve_data_dir(create=True) / DEFAULT_DB_FILENAME

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


def _platform_data_home() -> Path:
    if sys.platform == "win32":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    explicit = optional_env_var(DATA_DIR_ENV)
    data_dir = Path(explicit) if explicit else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def resolve_database_uri(
    override: str | None = None, *, storage: StorageConfig | None = None
) -> str:
    """Pick the entity store URI: explicit argument, then ``DATABASE_URI``, then the data dir."""

    if override:
        return override
    from_env = optional_env_var(DATABASE_URI_ENV)
    if from_env:
        return from_env
    return (storage or get_storage_config()).database_uri()
