from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SQLDialect:
    engine: str
    numbered_placeholders: bool
    primary_key_type: str
    timestamp_type: str

    def render_placeholder(self, position: int) -> str:
        if self.numbered_placeholders:
            return f"${position}"
        return "?"

    def render_identity_resync(self, table_name: str, column: str = "id") -> Optional[str]:
        # Explicit-id inserts leave a postgres serial sequence behind MAX(id).
        if self.engine != "postgres":
            return None
        return (
            f"SELECT setval(pg_get_serial_sequence('{table_name}', '{column}'), "
            f"COALESCE((SELECT MAX({column}) FROM {table_name}), 1))"
        )


def get_sql_dialect(db_engine: str) -> SQLDialect:
    engine = (db_engine or "sqlite").strip().lower()
    if engine in {"postgres", "postgresql"}:
        return SQLDialect(
            engine="postgres",
            numbered_placeholders=True,
            primary_key_type="BIGSERIAL PRIMARY KEY",
            timestamp_type="TIMESTAMPTZ",
        )
    if engine == "sqlite":
        return SQLDialect(
            engine="sqlite",
            numbered_placeholders=False,
            primary_key_type="INTEGER PRIMARY KEY AUTOINCREMENT",
            timestamp_type="DATETIME",
        )
    raise ValueError(f"Unsupported db_engine: {engine}")
