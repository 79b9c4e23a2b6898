# =============================================================================
# File: tenantsync/user_sync/tenant_fields.py
# Description: Pure functions that partition user attributes per tenant
# =============================================================================
#
# A stored user row keeps its standard attributes in columns and every
# tenant's extension attributes in one JSONB map:
#
#     custom_fields = {"acme": {"dept": "Eng"}, "globex": {"dept": "Sales"}}
#
# Nothing here performs I/O. Every function returns new containers and leaves
# its inputs untouched.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from tenantsync.common.exceptions.exceptions import ValidationError
from tenantsync.user_sync.read_models import CustomFields, StandardFields, UserRecord

STANDARD_FIELDS = ("name", "email", "role")

# Upstream spellings of standard attributes
FIELD_ALIASES = {"username": "name"}

# Keys the CMS attaches to every entry; never stored per tenant. An upstream
# password is never stored either: the column only ever holds the placeholder.
UPSTREAM_METADATA_FIELDS = frozenset({
    "id",
    "documentId",
    "provider",
    "confirmed",
    "blocked",
    "createdAt",
    "updatedAt",
    "publishedAt",
    "locale",
    "password",
    "resetPasswordToken",
    "confirmationToken",
})


def require_tenant(tenant_id: Optional[str]) -> str:
    if not isinstance(tenant_id, str) or not tenant_id.strip():
        raise ValidationError("tenant id is required")
    return tenant_id


def coerce_role(value: Any) -> Optional[int]:
    """Accept an int, an int-like string or a relation mapping carrying `id`."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        if value.get("id") is None:
            raise ValidationError("role relation has no id")
        value = value["id"]
    if isinstance(value, bool):
        raise ValidationError(f"invalid role: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"invalid role: {value!r}")


def split(raw: Mapping[str, Any], tenant_id: str) -> Tuple[StandardFields, CustomFields]:
    """
    Partition an upstream record into standard attributes and a tenant-scoped map.

    Args:
        raw: Attribute set as received from upstream
        tenant_id: Tenant the event belongs to

    Returns:
        (standard fields, {tenant_id: every remaining non-metadata attribute})
    """
    require_tenant(tenant_id)
    if not isinstance(raw, Mapping):
        raise ValidationError("record must be a mapping")

    standard: Dict[str, Any] = {}
    remainder: Dict[str, Any] = {}

    for key, value in raw.items():
        target = FIELD_ALIASES.get(key, key)
        if target in STANDARD_FIELDS:
            # An explicit standard key wins over its alias
            if target != key and target in raw:
                continue
            standard[target] = value
        elif key not in UPSTREAM_METADATA_FIELDS:
            remainder[key] = value

    standard["role"] = coerce_role(standard.get("role"))

    try:
        fields = StandardFields(**standard)
    except PydanticValidationError as e:
        raise ValidationError(f"invalid standard fields: {e.errors()[0].get('msg')}") from e

    return fields, {tenant_id: remainder}


def require_fields(standard: StandardFields, *names: str) -> None:
    missing = [name for name in names if getattr(standard, name) is None]
    if missing:
        raise ValidationError(f"missing required field(s): {', '.join(missing)}")


def merge(existing: Optional[CustomFields], tenant_id: str, new_fields: Mapping[str, Any]) -> CustomFields:
    """Replace tenant_id's slice; other tenants' slices are carried over unchanged."""
    merged = dict(existing or {})
    merged[tenant_id] = dict(new_fields)
    return merged


def strip(existing: Optional[CustomFields], tenant_id: str) -> Tuple[CustomFields, bool]:
    """Remove tenant_id's slice and report whether it was present."""
    remaining = dict(existing or {})
    had_entry = tenant_id in remaining
    remaining.pop(tenant_id, None)
    return remaining, had_entry


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def project(record: UserRecord, tenant_id: str) -> Dict[str, Any]:
    """
    Tenant-flattened view: standard attributes plus this tenant's slice.

    Timestamps are rendered as ISO strings so the view survives a JSON round
    trip through the cache unchanged. Custom keys override standard ones.
    """
    view: Dict[str, Any] = {
        "id": record.id,
        "name": record.name,
        "email": record.email,
        "password": record.password,
        "role": record.role,
        "created_at": _iso(record.created_at),
        "updated_at": _iso(record.updated_at),
    }
    view.update(record.custom_fields.get(tenant_id) or {})
    return view
