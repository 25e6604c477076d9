"""Canonical reference rows installed on every start."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class SeedTable:
    name: str
    key_columns: Tuple[str, ...]
    json_columns: Tuple[str, ...] = ()
    # Never compared or patched on an existing row.
    protected_columns: Tuple[str, ...] = ("id", "created_date", "updated_date")


TENANTS = SeedTable(
    name="tenants",
    key_columns=("tenant_id",),
    json_columns=("number_format_json", "default_load_types_json", "features_json", "api_keys_json"),
)
TENANT_CATEGORIES = SeedTable(
    name="tenant_categories",
    key_columns=("tenant_id", "category_name"),
    json_columns=("sub_categories_json",),
)
TENANT_CONTACTS = SeedTable(
    name="tenant_contacts",
    key_columns=("tenant_id", "contact_email"),
)

DEFAULT_TENANT_ID = "TNT-001"
FALLBACK_TENANT_PK = 1
FALLBACK_TENANT_NAME = "Default Tenant"
ADMIN_EMAIL = "admin@recims.com"
ADMIN_FULL_NAME = "Admin User"
ADMIN_ROLE = "super_admin"
DEFAULT_ADMIN_PASSWORD = "admin123"
LEGACY_ADMIN_TENANT_SENTINEL = "1"

_NUMBER_FORMAT = {"decimal": ".", "thousand": ","}

TENANT_SEEDS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "tenant_id": "TNT-001",
        "name": "MIN-TECH RECYCLING",
        "display_name": "MIN-TECH Recycling",
        "status": "ACTIVE",
        "code": "min-tech",
        "tenant_code": "MIN-TECH",
        "base_subdomain": "min-tech",
        "business_type": "metal_recycling",
        "primary_contact_name": "Maria Chen",
        "primary_contact_email": "operations@mintech.com",
        "primary_contact_phone": "+1 (203) 555-0145",
        "default_currency": "USD",
        "country_code": "US",
        "region": "USA",
        "phone_number_format": "+1 (XXX) XXX-XXXX",
        "unit_system": "IMPERIAL",
        "timezone": "America/New_York",
        "date_format": "YYYY-MM-DD",
        "branding_primary_color": "#0D9488",
        "branding_secondary_color": "#164E63",
        "branding_logo_url": "",
        "address_line1": "125 Recycling Way",
        "address_line2": "",
        "city": "Hartford",
        "state_province": "CT",
        "postal_code": "06103",
        "address_country_code": "US",
        "website": "https://www.mintechrecycling.com",
        "description": "Regional recycling and materials recovery facility.",
        "number_format_json": _NUMBER_FORMAT,
        "default_load_types_json": ["METAL", "PLASTIC", "MIXED"],
        "features_json": {
            "po_module_enabled": True,
            "bin_capacity_enabled": True,
            "photo_upload_enabled": True,
            "ai_classification_enabled": True,
            "qc_module_enabled": True,
            "multi_zone_enabled": True,
        },
        "api_keys_json": {},
    },
    {
        "id": 2,
        "tenant_id": "TNT-002",
        "name": "CONNECTICUT METALS",
        "display_name": "Connecticut Metals",
        "status": "ACTIVE",
        "code": "connecticut-metals",
        "tenant_code": "CONNECTICUT-METALS",
        "base_subdomain": "connecticut-metals",
        "business_type": "metal_recycling",
        "primary_contact_name": "Ethan Reynolds",
        "primary_contact_email": "info@ctmetals.com",
        "primary_contact_phone": "+1 (475) 555-0198",
        "default_currency": "USD",
        "country_code": "US",
        "region": "USA",
        "phone_number_format": "+1 (XXX) XXX-XXXX",
        "unit_system": "IMPERIAL",
        "timezone": "America/New_York",
        "date_format": "YYYY-MM-DD",
        "branding_primary_color": "#B45309",
        "branding_secondary_color": "#78350F",
        "branding_logo_url": "",
        "address_line1": "412 Foundry Avenue",
        "address_line2": "",
        "city": "Bridgeport",
        "state_province": "CT",
        "postal_code": "06604",
        "address_country_code": "US",
        "website": "https://www.ctmetals.com",
        "description": "Advanced metals recycling and processing partner.",
        "number_format_json": _NUMBER_FORMAT,
        "default_load_types_json": ["METAL", "MIXED"],
        "features_json": {
            "po_module_enabled": True,
            "bin_capacity_enabled": False,
            "photo_upload_enabled": False,
            "ai_classification_enabled": False,
            "qc_module_enabled": True,
            "multi_zone_enabled": False,
        },
        "api_keys_json": {},
    },
]

CATEGORY_SEEDS: List[Dict[str, Any]] = [
    {
        "tenant_id": "TNT-001",
        "category_name": "Mixed Plastics",
        "product_category": "Plastics",
        "sub_categories": ["PET", "HDPE", "LDPE", "PP", "PS"],
        "load_type_mapping": "PLASTIC",
        "description": "Various plastic types",
        "sort_order": 10,
    },
    {
        "tenant_id": "TNT-001",
        "category_name": "Ferrous Metals",
        "product_category": "Ferrous Metals",
        "sub_categories": ["Steel", "Iron", "Cast Iron"],
        "load_type_mapping": "METAL",
        "description": "Iron-based metals",
        "sort_order": 20,
    },
    {
        "tenant_id": "TNT-001",
        "category_name": "Non-Ferrous Metals",
        "product_category": "Non-Ferrous Metals",
        "sub_categories": ["Aluminum", "Copper", "Brass", "Stainless Steel"],
        "load_type_mapping": "METAL",
        "description": "Non-iron metals",
        "sort_order": 30,
    },
    {
        "tenant_id": "TNT-002",
        "category_name": "Aluminum foil and laminate scrap",
        "product_category": "Non-Ferrous Metals",
        "sub_categories": ["Foil", "Laminate", "Packaging"],
        "load_type_mapping": "MIXED",
        "description": "Aluminum foil and laminate materials",
        "sort_order": 10,
    },
    {
        "tenant_id": "TNT-002",
        "category_name": "Copper scrap",
        "product_category": "Non-Ferrous Metals",
        "sub_categories": ["Bare Bright", "#1 Copper", "#2 Copper", "Insulated Wire"],
        "load_type_mapping": "MIXED",
        "description": "Various copper grades",
        "sort_order": 20,
    },
    {
        "tenant_id": "TNT-002",
        "category_name": "Stainless steel scrap",
        "product_category": "Non-Ferrous Metals",
        "sub_categories": ["304", "316", "430", "Mixed SS"],
        "load_type_mapping": "MIXED",
        "description": "Stainless steel materials",
        "sort_order": 30,
    },
    {
        "tenant_id": "TNT-002",
        "category_name": "Aluminum scrap",
        "product_category": "Non-Ferrous Metals",
        "sub_categories": ["Extrusion", "Sheet", "Cast", "UBC"],
        "load_type_mapping": "MIXED",
        "description": "Various aluminum forms",
        "sort_order": 40,
    },
    {
        "tenant_id": "TNT-002",
        "category_name": "Brass and bronze scrap",
        "product_category": "Non-Ferrous Metals",
        "sub_categories": ["Yellow Brass", "Red Brass", "Bronze", "Plumbing Brass"],
        "load_type_mapping": "MIXED",
        "description": "Brass and bronze materials",
        "sort_order": 50,
    },
]

CONTACT_SEEDS: List[Dict[str, Any]] = [
    {
        "tenant_id": "TNT-001",
        "contact_type": "primary",
        "contact_name": "Maria Chen",
        "first_name": "Maria",
        "last_name": "Chen",
        "contact_email": "maria.chen@mintechrecycling.com",
        "contact_phone": "+1 (203) 555-0145",
        "job_title": "Director of Operations",
        "signature_type": "generated",
        "signature_font": "Great Vibes",
    },
    {
        "tenant_id": "TNT-001",
        "contact_type": "secondary",
        "contact_name": "David Patel",
        "first_name": "David",
        "last_name": "Patel",
        "contact_email": "david.patel@mintechrecycling.com",
        "contact_phone": "+1 (203) 555-0166",
        "job_title": "Logistics Manager",
        "signature_type": "none",
    },
    {
        "tenant_id": "TNT-002",
        "contact_type": "primary",
        "contact_name": "Ethan Reynolds",
        "first_name": "Ethan",
        "last_name": "Reynolds",
        "contact_email": "ethan.reynolds@ctmetals.com",
        "contact_phone": "+1 (475) 555-0198",
        "job_title": "General Manager",
        "signature_type": "generated",
        "signature_font": "Allura",
    },
    {
        "tenant_id": "TNT-002",
        "contact_type": "secondary",
        "contact_name": "Sofia Martinez",
        "first_name": "Sofia",
        "last_name": "Martinez",
        "contact_email": "sofia.martinez@ctmetals.com",
        "contact_phone": "+1 (475) 555-0204",
        "job_title": "Customer Success Lead",
        "signature_type": "none",
    },
]


def _dump_json(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def tenant_payload(seed: Dict[str, Any]) -> Dict[str, Any]:
    payload = dict(seed)
    for column in TENANTS.json_columns:
        if column in payload:
            payload[column] = _dump_json(payload[column])
    payload["status"] = (payload.get("status") or "ACTIVE").upper()
    return payload


def category_payload(seed: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "tenant_id": seed["tenant_id"],
        "category_name": seed["category_name"],
        "product_category": seed.get("product_category") or "",
        "category_type": (seed.get("category_type") or "predefined").lower(),
        "sub_categories_json": _dump_json(seed.get("sub_categories") or []),
        "load_type_mapping": (seed.get("load_type_mapping") or "").upper(),
        "description": seed.get("description") or "",
        "sort_order": seed.get("sort_order") if seed.get("sort_order") is not None else 0,
        "is_active": 0 if seed.get("is_active") is False else 1,
    }


def contact_payload(seed: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "tenant_id": seed["tenant_id"],
        "contact_type": (seed.get("contact_type") or "primary").lower(),
        "contact_name": seed["contact_name"],
        "first_name": seed.get("first_name") or "",
        "last_name": seed.get("last_name") or "",
        "contact_email": seed["contact_email"],
        "contact_phone": seed.get("contact_phone") or "",
        "job_title": seed["job_title"],
        "signature_type": (seed.get("signature_type") or "none").lower(),
        "signature_url": seed.get("signature_url") or "",
        "signature_font": seed.get("signature_font") or "Allura",
        "is_active": 0 if seed.get("is_active") is False else 1,
    }
