"""Idempotent table creation and additive evolution of the tenants table.

Every statement here is safe to repeat: tables and indexes use
``IF NOT EXISTS`` and column additions swallow the backend's
"duplicate column" failure, as classified by the adapter.

The unique index on ``tenants.tenant_id`` is built after column evolution.
A store that already holds two tenants with the same ``tenant_id`` cannot
gain it, and startup stops with a ``SchemaEvolutionError`` listing the
duplicates. Give those rows distinct ids (or clear one so the default fill
derives ``TNT-<id>``) and restart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import structlog

from adapters.base import AdapterError, DatabaseAdapter, ErrorOutcome
from adapters.sql_renderer import SQLDialect

logger = structlog.get_logger(__name__)


class SchemaEvolutionError(AdapterError):
    pass


TENANT_OPTIONAL_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("tenant_id", "TEXT"),
    ("display_name", "TEXT"),
    ("region", "TEXT"),
    ("code", "TEXT"),
    ("base_subdomain", "TEXT"),
    ("tenant_code", "TEXT"),
    ("business_type", "TEXT"),
    ("primary_contact_name", "TEXT"),
    ("primary_contact_email", "TEXT"),
    ("primary_contact_phone", "TEXT"),
    ("default_currency", "TEXT"),
    ("country_code", "TEXT"),
    ("phone_number_format", "TEXT"),
    ("unit_system", "TEXT"),
    ("timezone", "TEXT"),
    ("date_format", "TEXT"),
    ("number_format_json", "TEXT"),
    ("branding_primary_color", "TEXT"),
    ("branding_secondary_color", "TEXT"),
    ("branding_logo_url", "TEXT"),
    ("address_line1", "TEXT"),
    ("address_line2", "TEXT"),
    ("city", "TEXT"),
    ("state_province", "TEXT"),
    ("postal_code", "TEXT"),
    ("address_country_code", "TEXT"),
    ("website", "TEXT"),
    ("description", "TEXT"),
    ("default_load_types_json", "TEXT"),
    ("features_json", "TEXT"),
    ("api_keys_json", "TEXT"),
    ("created_date", "TIMESTAMP"),
    ("updated_date", "TIMESTAMP"),
)

SCHEMA_TABLES = (
    "users",
    "tenants",
    "shiftlog",
    "tenant_categories",
    "tenant_contacts",
    "entity_records",
    "appsettings",
)


@dataclass
class SchemaReport:
    engine: str
    tables: List[str] = field(default_factory=lambda: list(SCHEMA_TABLES))
    columns_added: List[str] = field(default_factory=list)


def table_statements(dialect: SQLDialect) -> List[str]:
    pk = dialect.primary_key_type
    ts = dialect.timestamp_type
    return [
        f"""
        CREATE TABLE IF NOT EXISTS users (
            id {pk},
            email TEXT UNIQUE NOT NULL,
            password TEXT NOT NULL,
            full_name TEXT,
            tenant_id TEXT,
            role TEXT DEFAULT 'user',
            created_at {ts} DEFAULT CURRENT_TIMESTAMP,
            updated_at {ts} DEFAULT CURRENT_TIMESTAMP
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS tenants (
            id {pk},
            name TEXT NOT NULL,
            status TEXT DEFAULT 'ACTIVE',
            created_at {ts} DEFAULT CURRENT_TIMESTAMP
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS shiftlog (
            id {pk},
            operator_email TEXT,
            operator_name TEXT,
            tenant_id TEXT,
            shift_start {ts},
            shift_end {ts},
            status TEXT DEFAULT 'active',
            shipments_processed INTEGER DEFAULT 0,
            materials_classified INTEGER DEFAULT 0,
            bins_assigned INTEGER DEFAULT 0,
            created_date {ts} DEFAULT CURRENT_TIMESTAMP,
            updated_date {ts} DEFAULT CURRENT_TIMESTAMP
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS tenant_categories (
            id {pk},
            tenant_id TEXT NOT NULL,
            category_name TEXT NOT NULL,
            product_category TEXT,
            category_type TEXT DEFAULT 'predefined',
            sub_categories_json TEXT,
            load_type_mapping TEXT,
            description TEXT,
            sort_order INTEGER DEFAULT 0,
            is_active INTEGER DEFAULT 1,
            created_date {ts} DEFAULT CURRENT_TIMESTAMP,
            updated_date {ts} DEFAULT CURRENT_TIMESTAMP
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS tenant_contacts (
            id {pk},
            tenant_id TEXT NOT NULL,
            contact_type TEXT DEFAULT 'primary',
            contact_name TEXT NOT NULL,
            first_name TEXT,
            last_name TEXT,
            contact_email TEXT NOT NULL,
            contact_phone TEXT,
            job_title TEXT NOT NULL,
            signature_type TEXT DEFAULT 'none',
            signature_url TEXT,
            signature_font TEXT DEFAULT 'Allura',
            is_active INTEGER DEFAULT 1,
            created_date {ts} DEFAULT CURRENT_TIMESTAMP,
            updated_date {ts} DEFAULT CURRENT_TIMESTAMP
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS entity_records (
            id {pk},
            entity_name TEXT NOT NULL,
            tenant_id TEXT,
            payload_json TEXT NOT NULL,
            created_date {ts} DEFAULT CURRENT_TIMESTAMP,
            updated_date {ts} DEFAULT CURRENT_TIMESTAMP
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS appsettings (
            id {pk},
            tenant_id TEXT,
            setting_key TEXT NOT NULL,
            setting_value TEXT,
            setting_category TEXT DEFAULT 'features',
            description TEXT,
            phase TEXT,
            created_date {ts} DEFAULT CURRENT_TIMESTAMP,
            updated_date {ts} DEFAULT CURRENT_TIMESTAMP
        )
        """,
    ]


INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_tenant_categories_tenant ON tenant_categories (tenant_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_tenant_categories_tenant_name ON tenant_categories (tenant_id, category_name)",
    "CREATE INDEX IF NOT EXISTS idx_tenant_contacts_tenant ON tenant_contacts (tenant_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_tenant_contacts_tenant_email ON tenant_contacts (tenant_id, contact_email)",
    "CREATE INDEX IF NOT EXISTS idx_entity_records_entity ON entity_records (entity_name)",
    "CREATE INDEX IF NOT EXISTS idx_entity_records_tenant ON entity_records (tenant_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_appsettings_tenant_key ON appsettings (tenant_id, setting_key)",
)

TENANT_INDEX_STATEMENTS = (
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_tenants_tenant_id ON tenants (tenant_id)",
)


def _column_type(dialect: SQLDialect, declared: str) -> str:
    return dialect.timestamp_type if declared == "TIMESTAMP" else declared


async def create_tables(adapter: DatabaseAdapter) -> None:
    for statement in table_statements(adapter.dialect):
        await adapter.execute(statement)
    for statement in INDEX_STATEMENTS:
        await adapter.execute(statement)


async def ensure_tenant_columns(adapter: DatabaseAdapter) -> List[str]:
    added: List[str] = []
    for column, declared in TENANT_OPTIONAL_COLUMNS:
        column_type = _column_type(adapter.dialect, declared)
        try:
            await adapter.prepare(f"ALTER TABLE tenants ADD COLUMN {column} {column_type}").run(want_generated_id=False)
        except Exception as exc:
            if adapter.classify_schema_error(exc) is ErrorOutcome.IGNORABLE:
                continue
            raise SchemaEvolutionError(f"Failed to add tenants.{column}: {exc}") from exc
        added.append(column)
    if added:
        logger.info("tenant_columns_added", engine=adapter.engine, columns=added)
    return added


DUPLICATE_TENANT_IDS_SQL = """
    SELECT tenant_id, COUNT(*) AS copies
    FROM tenants
    WHERE tenant_id IS NOT NULL
    GROUP BY tenant_id
    HAVING COUNT(*) > 1
    ORDER BY tenant_id
"""


async def create_tenant_indexes(adapter: DatabaseAdapter) -> None:
    for statement in TENANT_INDEX_STATEMENTS:
        try:
            await adapter.execute(statement)
        except Exception as exc:
            duplicates = await adapter.prepare(DUPLICATE_TENANT_IDS_SQL).all()
            if not duplicates:
                raise
            tenant_ids = [row["tenant_id"] for row in duplicates]
            logger.error("tenant_id_index_blocked_by_duplicates", engine=adapter.engine, tenant_ids=tenant_ids)
            raise SchemaEvolutionError(
                f"Cannot enforce unique tenants.tenant_id; duplicate tenant_id values: {', '.join(tenant_ids)}"
            ) from exc


async def ensure_schema(adapter: DatabaseAdapter) -> SchemaReport:
    await create_tables(adapter)
    columns_added = await ensure_tenant_columns(adapter)
    await create_tenant_indexes(adapter)
    return SchemaReport(engine=adapter.engine, columns_added=columns_added)
