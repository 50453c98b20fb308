"""
Upgrades stored registry documents to the current schema.

Version 0 is the legacy layout: a bare list of integrations whose settings
keep credentials and sync toggles as flat keys, e.g.
``{"clientId": ..., "accessToken": ..., "syncProducts": true}``.
Version 1 wraps the list as ``{"schemaVersion": 1, "integrations": [...]}``
and nests those keys under ``credentials`` and ``sync``.
"""

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

LEGACY_CREDENTIAL_KEYS = (
    "clientId",
    "clientSecret",
    "accessToken",
    "refreshToken",
    "realmId",
    "apiKey",
    "apiSecret",
    "shopDomain",
    "webhookSecret",
)

LEGACY_SYNC_KEYS = {
    "syncProducts": "products",
    "syncCustomers": "customers",
    "syncOrders": "orders",
    "syncInventory": "inventory",
    "syncInvoices": "invoices",
    "syncPayments": "payments",
}


def schema_version(document: Any) -> int:
    """Stored schema version; 0 for legacy or unreadable version markers."""
    if not isinstance(document, dict):
        return 0

    value = document.get("schemaVersion", 0)
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Unreadable schemaVersion {value!r}; treating as legacy")
        return 0


def migrate_document(document: Any) -> Dict[str, Any]:
    """Return ``document`` in the current schema. Input is never modified."""
    version = schema_version(document)

    if isinstance(document, list):
        integrations = document
    elif isinstance(document, dict):
        integrations = document.get("integrations") or []
    else:
        logger.warning(f"Ignoring stored integrations of type {type(document)}")
        integrations = []

    if version > SCHEMA_VERSION:
        logger.warning(
            f"Stored integrations use schema version {version}, newer than "
            f"{SCHEMA_VERSION}; unknown fields are ignored"
        )

    records: List[Dict[str, Any]] = [r for r in integrations if isinstance(r, dict)]
    if version < 1:
        records = [_migrate_v0_record(r) for r in records]

    return {"schemaVersion": SCHEMA_VERSION, "integrations": records}


def _migrate_v0_record(record: Dict[str, Any]) -> Dict[str, Any]:
    migrated = dict(record)

    provider_type = (
        migrated.pop("type", None) or migrated.get("providerType") or migrated.get("id")
    )
    migrated["providerType"] = provider_type
    if "name" in migrated:
        name = migrated.pop("name")
        migrated.setdefault("displayName", name)

    settings = dict(migrated.get("settings") or {})
    credentials = dict(settings.get("credentials") or {})
    sync = dict(settings.get("sync") or {})

    for key in LEGACY_CREDENTIAL_KEYS:
        if key in settings:
            value = settings.pop(key)
            if value is not None:
                credentials[key] = value

    for key, category in LEGACY_SYNC_KEYS.items():
        if key in settings:
            sync[category] = settings.pop(key)

    settings["providerType"] = provider_type
    settings["credentials"] = credentials
    settings["sync"] = sync
    migrated["settings"] = settings
    return migrated
