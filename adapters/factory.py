from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from adapters.base import DatabaseAdapter
from adapters.postgres import PostgresAdapter
from adapters.sqlite import SQLiteAdapter
from utils.env_loader import first_env

DEFAULT_SQLITE_FILENAME = "recims.db"


@dataclass(frozen=True)
class PersistenceConfig:
    database_url: Optional[str] = None
    sqlite_path: str = DEFAULT_SQLITE_FILENAME
    ssl_mode: Optional[str] = None

    @property
    def engine(self) -> str:
        return "postgres" if self.database_url else "sqlite"

    @classmethod
    def from_env(cls) -> "PersistenceConfig":
        return cls(
            database_url=first_env("DATABASE_URL"),
            sqlite_path=first_env("DATABASE_PATH", default=str(Path(os.getcwd()) / DEFAULT_SQLITE_FILENAME)),
            ssl_mode=first_env("DATABASE_SSL_MODE", "DATABASE_SSL"),
        )


async def get_adapter(config: Optional[PersistenceConfig] = None) -> DatabaseAdapter:
    settings = config or PersistenceConfig.from_env()
    if settings.database_url:
        adapter = PostgresAdapter(settings.database_url, ssl_mode=settings.ssl_mode)
        return await adapter.open()
    return SQLiteAdapter(settings.sqlite_path)
