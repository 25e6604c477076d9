from __future__ import annotations

import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, List

import structlog

from adapters.base import (
    DatabaseAdapter,
    DatabaseConnectionError,
    ErrorOutcome,
    PreparedStatement,
    RunResult,
)
from adapters.sql_renderer import get_sql_dialect
from adapters.translator import translate_statement

logger = structlog.get_logger(__name__)

_DUPLICATE_COLUMN = re.compile(r"duplicate column", re.IGNORECASE)


class SQLitePreparedStatement(PreparedStatement):
    def __init__(self, adapter: "SQLiteAdapter", sql: str):
        super().__init__(sql)
        self._adapter = adapter

    async def all(self, *args: Any) -> List[Dict[str, Any]]:
        statement = translate_statement(self.sql, args, self._adapter.dialect)
        cur = self._adapter.connection.execute(statement.text, statement.values)
        try:
            return [dict(row) for row in cur.fetchall()]
        finally:
            cur.close()

    async def get(self, *args: Any) -> Dict[str, Any] | None:
        statement = translate_statement(self.sql, args, self._adapter.dialect)
        cur = self._adapter.connection.execute(statement.text, statement.values)
        try:
            row = cur.fetchone()
            return dict(row) if row is not None else None
        finally:
            cur.close()

    async def run(self, *args: Any, want_generated_id: bool = True) -> RunResult:
        # lastrowid already reports the generated id, so no RETURNING is appended here.
        statement = translate_statement(self.sql, args, self._adapter.dialect)
        cur = self._adapter.connection.execute(statement.text, statement.values)
        try:
            rows = [dict(row) for row in cur.fetchall()] if cur.description else []
            rows_affected = cur.rowcount if cur.rowcount >= 0 else len(rows)
            generated_id = None
            if want_generated_id and statement.is_insert:
                if rows and "id" in rows[0]:
                    generated_id = rows[0]["id"]
                elif cur.rowcount > 0:
                    # lastrowid is left over from an earlier insert when nothing was written.
                    generated_id = cur.lastrowid
            return RunResult(rows_affected=rows_affected, generated_id=generated_id)
        finally:
            cur.close()


class SQLiteAdapter(DatabaseAdapter):
    engine = "sqlite"

    def __init__(self, db_path: str | Path):
        self.dialect = get_sql_dialect(self.engine)
        self.db_path = str(db_path)
        self._conn = self._connect()

    def _connect(self) -> sqlite3.Connection:
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            # Autocommit: every statement commits on its own.
            conn = sqlite3.connect(self.db_path, isolation_level=None, check_same_thread=False)
            conn.execute("SELECT 1").close()
        except (sqlite3.Error, OSError) as exc:
            raise DatabaseConnectionError(f"Cannot open SQLite database at {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        logger.info("sqlite_adapter_opened", db_path=self.db_path)
        return conn

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
        return self._conn

    async def execute(self, sql: str) -> None:
        # Accepts several statements; autocommit makes the script's COMMIT a no-op.
        self.connection.executescript(sql).close()

    def prepare(self, sql: str) -> SQLitePreparedStatement:
        return SQLitePreparedStatement(self, sql)

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("sqlite_adapter_closed", db_path=self.db_path)

    def classify_schema_error(self, exc: BaseException) -> ErrorOutcome:
        if isinstance(exc, sqlite3.OperationalError) and _DUPLICATE_COLUMN.search(str(exc)):
            return ErrorOutcome.IGNORABLE
        return ErrorOutcome.FATAL
