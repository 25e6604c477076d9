from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from adapters.factory import PersistenceConfig
from adapters.postgres import effective_sslmode
from persistence.initializer import InitState


def redact_database_url(database_url: Optional[str]) -> Optional[str]:
    """Keep only scheme and host so credentials never reach a report."""
    if not database_url:
        return None
    parts = urlsplit(database_url)
    if not parts.scheme or not parts.hostname:
        return None
    host = parts.hostname
    if parts.port:
        host = f"{host}:{parts.port}"
    return f"{parts.scheme}://{host}"


def describe_persistence(config: PersistenceConfig, state: Optional[InitState] = None) -> Dict[str, Any]:
    is_postgres = config.engine == "postgres"
    return {
        "mode": config.engine,
        "has_database_url": bool(config.database_url),
        "database_url_prefix": redact_database_url(config.database_url),
        "sqlite_path": None if is_postgres else config.sqlite_path,
        "ssl_mode": effective_sslmode(config.database_url, config.ssl_mode) if is_postgres else None,
        "state": (state or InitState.UNINITIALIZED).value,
    }
