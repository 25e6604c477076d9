from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

import bcrypt
import structlog

from adapters.base import AdapterError, DatabaseAdapter
from seed.merge import merge_missing
from seed.records import (
    ADMIN_EMAIL,
    ADMIN_FULL_NAME,
    ADMIN_ROLE,
    CATEGORY_SEEDS,
    CONTACT_SEEDS,
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_TENANT_ID,
    FALLBACK_TENANT_NAME,
    FALLBACK_TENANT_PK,
    LEGACY_ADMIN_TENANT_SENTINEL,
    TENANT_CATEGORIES,
    TENANT_CONTACTS,
    TENANT_SEEDS,
    TENANTS,
    SeedTable,
    category_payload,
    contact_payload,
    tenant_payload,
)
from utils.env_loader import first_env

logger = structlog.get_logger(__name__)

BCRYPT_ROUNDS = 10


class SeedError(AdapterError):
    pass


# Only fills NULL or empty values; derived columns read the row's other columns.
TENANT_DEFAULTS_SQL = """
    UPDATE tenants
    SET tenant_id = COALESCE(NULLIF(tenant_id, ''), 'TNT-' || substr('000' || CAST(id AS TEXT), LENGTH('000' || CAST(id AS TEXT)) - 2, 3)),
        display_name = COALESCE(NULLIF(display_name, ''), name),
        region = COALESCE(NULLIF(region, ''), 'Global'),
        status = COALESCE(NULLIF(UPPER(status), ''), 'ACTIVE'),
        code = COALESCE(NULLIF(code, ''), LOWER(REPLACE(name, ' ', ''))),
        tenant_code = COALESCE(NULLIF(tenant_code, ''), NULLIF(code, ''), LOWER(REPLACE(name, ' ', ''))),
        base_subdomain = COALESCE(NULLIF(base_subdomain, ''), LOWER(REPLACE(name, ' ', ''))),
        business_type = COALESCE(NULLIF(business_type, ''), 'general_manufacturing'),
        default_currency = COALESCE(NULLIF(default_currency, ''), 'USD'),
        country_code = COALESCE(NULLIF(country_code, ''), 'US'),
        phone_number_format = COALESCE(NULLIF(phone_number_format, ''), '+1 (XXX) XXX-XXXX'),
        unit_system = COALESCE(NULLIF(unit_system, ''), 'METRIC'),
        timezone = COALESCE(NULLIF(timezone, ''), 'America/New_York'),
        date_format = COALESCE(NULLIF(date_format, ''), 'YYYY-MM-DD'),
        number_format_json = COALESCE(NULLIF(number_format_json, ''), '{"decimal": ".", "thousand": ","}'),
        branding_primary_color = COALESCE(NULLIF(branding_primary_color, ''), '#007A6E'),
        branding_secondary_color = COALESCE(NULLIF(branding_secondary_color, ''), '#005247'),
        address_country_code = COALESCE(NULLIF(address_country_code, ''), NULLIF(country_code, ''), 'US'),
        default_load_types_json = COALESCE(NULLIF(default_load_types_json, ''), '[]'),
        features_json = COALESCE(NULLIF(features_json, ''), '{}'),
        api_keys_json = COALESCE(NULLIF(api_keys_json, ''), '{}'),
        created_date = COALESCE(created_date, CURRENT_TIMESTAMP),
        updated_date = COALESCE(updated_date, CURRENT_TIMESTAMP)
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


async def apply_tenant_defaults(adapter: DatabaseAdapter) -> int:
    result = await adapter.prepare(TENANT_DEFAULTS_SQL).run(want_generated_id=False)
    return result.rows_affected


async def _resync_identity(adapter: DatabaseAdapter, table_name: str) -> None:
    statement = adapter.dialect.render_identity_resync(table_name)
    if statement:
        await adapter.execute(statement)


async def _insert_row(adapter: DatabaseAdapter, table_name: str, row: Dict[str, Any]) -> Optional[Any]:
    columns = list(row)
    sql = (
        f"INSERT INTO {table_name} ({', '.join(columns)}) "
        f"VALUES ({', '.join('@' + column for column in columns)})"
    )
    result = await adapter.prepare(sql).run(row)
    return result.generated_id


async def upsert_seed(adapter: DatabaseAdapter, table: SeedTable, payload: Dict[str, Any], now: str) -> str:
    """Insert ``payload`` when its business key is unknown, else fill the stored row's empty fields.

    Returns ``"inserted"``, ``"patched"`` or ``"unchanged"``.
    """
    key_filter = " AND ".join(f"{column} = @{column}" for column in table.key_columns)
    keys = {column: payload[column] for column in table.key_columns}
    existing = await adapter.prepare(f"SELECT * FROM {table.name} WHERE {key_filter}").get(keys)

    if existing is None:
        row = dict(payload)
        if "id" in row:
            taken = await adapter.prepare(f"SELECT id FROM {table.name} WHERE id = ?").get(row["id"])
            if taken is not None:
                row.pop("id")
        row["created_date"] = row.get("created_date") or now
        row["updated_date"] = row.get("updated_date") or now
        await _insert_row(adapter, table.name, row)
        return "inserted"

    updates = merge_missing(
        existing,
        payload,
        json_columns=table.json_columns,
        skip=set(table.protected_columns) | set(table.key_columns),
    )
    if not updates:
        return "unchanged"

    updates["updated_date"] = now
    assignments = ", ".join(f"{column} = @{column}" for column in updates)
    await adapter.prepare(f"UPDATE {table.name} SET {assignments} WHERE id = @id").run(
        {**updates, "id": existing["id"]}, want_generated_id=False
    )
    return "patched"


async def _seed_many(adapter: DatabaseAdapter, table: SeedTable, payloads: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    now = _now_iso()
    counts = {"inserted": 0, "patched": 0, "unchanged": 0}
    for payload in payloads:
        outcome = await upsert_seed(adapter, table, payload, now)
        counts[outcome] += 1
    logger.info("seed_table_synced", table=table.name, **counts)
    return counts


async def seed_tenants(adapter: DatabaseAdapter) -> Dict[str, int]:
    counts = await _seed_many(adapter, TENANTS, (tenant_payload(seed) for seed in TENANT_SEEDS))
    await _resync_identity(adapter, TENANTS.name)
    return counts


async def seed_tenant_categories(adapter: DatabaseAdapter) -> Dict[str, int]:
    return await _seed_many(adapter, TENANT_CATEGORIES, (category_payload(seed) for seed in CATEGORY_SEEDS))


async def seed_tenant_contacts(adapter: DatabaseAdapter) -> Dict[str, int]:
    return await _seed_many(adapter, TENANT_CONTACTS, (contact_payload(seed) for seed in CONTACT_SEEDS))


async def ensure_bootstrap_identity(adapter: DatabaseAdapter, admin_password: Optional[str] = None) -> bool:
    """Make sure the fallback tenant and the bootstrap administrator exist.

    Returns True when the administrator account was created on this run. An
    existing account keeps its password hash; its role and legacy tenant
    reference are re-asserted every time.
    """
    tenant = await adapter.prepare("SELECT id FROM tenants WHERE id = ?").get(FALLBACK_TENANT_PK)
    if tenant is None:
        await adapter.prepare("INSERT INTO tenants (id, name) VALUES (?, ?)").run(FALLBACK_TENANT_PK, FALLBACK_TENANT_NAME)
        await _resync_identity(adapter, TENANTS.name)

    created = False
    user = await adapter.prepare("SELECT id FROM users WHERE email = ?").get(ADMIN_EMAIL)
    if user is None:
        password = admin_password or first_env("BOOTSTRAP_ADMIN_PASSWORD", default=DEFAULT_ADMIN_PASSWORD)
        await adapter.prepare(
            "INSERT INTO users (email, password, full_name, tenant_id, role) VALUES (?, ?, ?, ?, ?)"
        ).run(ADMIN_EMAIL, hash_password(password), ADMIN_FULL_NAME, DEFAULT_TENANT_ID, ADMIN_ROLE)
        created = True
        logger.info("bootstrap_admin_created", email=ADMIN_EMAIL)

    await adapter.prepare(
        """
        UPDATE users
        SET role = @role,
            tenant_id = COALESCE(tenant_id, @tenant_id)
        WHERE email = @email
        """
    ).run({"role": ADMIN_ROLE, "tenant_id": DEFAULT_TENANT_ID, "email": ADMIN_EMAIL}, want_generated_id=False)

    await adapter.prepare("UPDATE users SET tenant_id = ? WHERE email = ? AND tenant_id = ?").run(
        DEFAULT_TENANT_ID, ADMIN_EMAIL, LEGACY_ADMIN_TENANT_SENTINEL, want_generated_id=False
    )
    return created


SEED_STEPS: List[Tuple[str, Callable[[DatabaseAdapter], Awaitable[Any]]]] = [
    ("tenant_defaults", apply_tenant_defaults),
    ("tenants", seed_tenants),
    ("tenant_categories", seed_tenant_categories),
    ("tenant_contacts", seed_tenant_contacts),
    ("bootstrap_identity", ensure_bootstrap_identity),
]


async def run_seeds(adapter: DatabaseAdapter) -> Dict[str, Any]:
    summary: Dict[str, Any] = {}
    for step_name, step in SEED_STEPS:
        try:
            summary[step_name] = await step(adapter)
        except Exception as exc:
            logger.error("seed_step_failed", step=step_name, error=str(exc))
            raise SeedError(f"Seed step '{step_name}' failed: {exc}") from exc
    return summary
