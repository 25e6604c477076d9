"""Database adapter layer running the same statements on SQLite or PostgreSQL."""

from adapters.base import (
    AdapterError,
    DatabaseAdapter,
    DatabaseConnectionError,
    ErrorOutcome,
    MissingParameterError,
    PreparedStatement,
    RunResult,
)
from adapters.factory import PersistenceConfig, get_adapter

__all__ = [
    "AdapterError",
    "DatabaseAdapter",
    "DatabaseConnectionError",
    "ErrorOutcome",
    "MissingParameterError",
    "PersistenceConfig",
    "PreparedStatement",
    "RunResult",
    "get_adapter",
]
