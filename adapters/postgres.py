from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import psycopg
import structlog
from psycopg.conninfo import conninfo_to_dict
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool, PoolTimeout

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

DUPLICATE_COLUMN_SQLSTATE = "42701"
_DUPLICATE_COLUMN = re.compile(r"duplicate column|already exists", re.IGNORECASE)


class SSLPolicy(Enum):
    DISABLED = "disable"
    ENCRYPTED_UNVERIFIED = "require"
    VERIFIED = "verify-full"

    @property
    def sslmode(self) -> str:
        return self.value


_SSL_DISABLED = {"disable", "false", "off", "none"}
_SSL_UNVERIFIED = {"allow", "prefer"}
_SSL_VERIFIED = {"strict", "verify-full"}


def resolve_ssl_policy(mode: Optional[str]) -> SSLPolicy:
    normalized = (mode or "").strip().lower()
    if normalized in _SSL_DISABLED:
        return SSLPolicy.DISABLED
    if normalized in _SSL_VERIFIED:
        return SSLPolicy.VERIFIED
    if normalized and normalized not in _SSL_UNVERIFIED:
        logger.warning("unrecognized_ssl_mode", ssl_mode=normalized, fallback=SSLPolicy.ENCRYPTED_UNVERIFIED.sslmode)
    return SSLPolicy.ENCRYPTED_UNVERIFIED


def url_sslmode(database_url: Optional[str]) -> Optional[str]:
    if not database_url:
        return None
    try:
        return conninfo_to_dict(database_url).get("sslmode") or None
    except psycopg.ProgrammingError:
        return None


def effective_sslmode(database_url: Optional[str], ssl_mode: Optional[str] = None) -> str:
    """libpq sslmode a connection will use.

    An explicitly configured mode wins; otherwise an ``sslmode`` carried by the
    connection string is kept as written, and only then does the default apply.
    """
    if ssl_mode is None or not ssl_mode.strip():
        from_url = url_sslmode(database_url)
        if from_url:
            return from_url
    return resolve_ssl_policy(ssl_mode).sslmode


def _policy_for_sslmode(sslmode: str) -> SSLPolicy:
    if sslmode == "verify-full":
        return SSLPolicy.VERIFIED
    if sslmode == "disable":
        return SSLPolicy.DISABLED
    return SSLPolicy.ENCRYPTED_UNVERIFIED


class PostgresPreparedStatement(PreparedStatement):
    def __init__(self, adapter: "PostgresAdapter", sql: str):
        super().__init__(sql)
        self._adapter = adapter

    async def all(self, *args: Any) -> List[Dict[str, Any]]:
        statement = translate_statement(self.sql, args, self._adapter.dialect)
        rows, _rowcount = await self._adapter.query(statement.text, statement.values)
        return rows

    async def run(self, *args: Any, want_generated_id: bool = True) -> RunResult:
        statement = translate_statement(self.sql, args, self._adapter.dialect, want_generated_id=want_generated_id)
        rows, rowcount = await self._adapter.query(statement.text, statement.values)
        generated_id = None
        if want_generated_id and statement.is_insert and rows and "id" in rows[0]:
            generated_id = rows[0]["id"]
        return RunResult(rows_affected=rowcount, generated_id=generated_id)


class PostgresAdapter(DatabaseAdapter):
    engine = "postgres"

    def __init__(self, database_url: str, ssl_mode: Optional[str] = None, min_size: int = 1, max_size: int = 10):
        self.dialect = get_sql_dialect(self.engine)
        try:
            conninfo_to_dict(database_url)
        except psycopg.ProgrammingError as exc:
            raise DatabaseConnectionError(f"Malformed DATABASE_URL: {exc}") from exc
        self.sslmode = effective_sslmode(database_url, ssl_mode)
        self.ssl_policy = _policy_for_sslmode(self.sslmode)
        self._pool = AsyncConnectionPool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            kwargs={"sslmode": self.sslmode},
            open=False,
        )

    async def open(self, timeout: float = 30.0) -> "PostgresAdapter":
        if self.ssl_policy is not SSLPolicy.VERIFIED:
            logger.warning(
                "postgres_certificate_not_verified",
                sslmode=self.sslmode,
                hint="set DATABASE_SSL_MODE=verify-full to authenticate the server",
            )
        try:
            await self._pool.open(wait=True, timeout=timeout)
        except (PoolTimeout, psycopg.OperationalError) as exc:
            await self._pool.close()
            raise DatabaseConnectionError(f"Cannot reach PostgreSQL server: {exc}") from exc
        logger.info("postgres_adapter_opened", sslmode=self.sslmode)
        return self

    async def query(self, sql: str, values: Optional[List[Any]] = None) -> Tuple[List[Dict[str, Any]], int]:
        # The raw cursor sends $n markers to the server untouched.
        async with self._pool.connection() as conn:
            async with psycopg.AsyncRawCursor(conn, row_factory=dict_row) as cur:
                await cur.execute(sql, values or None)
                rows = await cur.fetchall() if cur.description is not None else []
                return rows, cur.rowcount

    async def execute(self, sql: str) -> None:
        await self.query(sql)

    def prepare(self, sql: str) -> PostgresPreparedStatement:
        return PostgresPreparedStatement(self, sql)

    async def close(self) -> None:
        if not self._pool.closed:
            await self._pool.close()
            logger.info("postgres_adapter_closed")

    def classify_schema_error(self, exc: BaseException) -> ErrorOutcome:
        if getattr(exc, "sqlstate", None) == DUPLICATE_COLUMN_SQLSTATE:
            return ErrorOutcome.IGNORABLE
        if isinstance(exc, psycopg.Error) and _DUPLICATE_COLUMN.search(str(exc)):
            return ErrorOutcome.IGNORABLE
        return ErrorOutcome.FATAL
