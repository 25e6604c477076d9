from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from adapters.sql_renderer import SQLDialect


class AdapterError(RuntimeError):
    pass


class DatabaseConnectionError(AdapterError, ConnectionError):
    """Backend unreachable or misconfigured at construction time."""


class MissingParameterError(AdapterError, ValueError):
    pass


class ErrorOutcome(Enum):
    IGNORABLE = "ignorable"
    FATAL = "fatal"


@dataclass(frozen=True)
class RunResult:
    rows_affected: int
    generated_id: Optional[Any] = None


class PreparedStatement(ABC):
    def __init__(self, sql: str):
        self.sql = sql

    @abstractmethod
    async def all(self, *args: Any) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def get(self, *args: Any) -> Optional[Dict[str, Any]]:
        rows = await self.all(*args)
        return rows[0] if rows else None

    @abstractmethod
    async def run(self, *args: Any, want_generated_id: bool = True) -> RunResult:
        raise NotImplementedError


class DatabaseAdapter(ABC):
    engine: str = "unknown"
    dialect: SQLDialect

    @abstractmethod
    async def execute(self, sql: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def prepare(self, sql: str) -> PreparedStatement:
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def classify_schema_error(self, exc: BaseException) -> ErrorOutcome:
        """Tell an expected "column already exists" failure apart from a real one."""
        raise NotImplementedError
