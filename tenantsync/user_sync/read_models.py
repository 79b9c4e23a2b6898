# =============================================================================
# File: tenantsync/user_sync/read_models.py
# Description: Pydantic models for user records and their standard attributes
# =============================================================================

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# tenant id -> that tenant's extension attributes
CustomFields = Dict[str, Dict[str, Any]]


class StandardFields(BaseModel):
    """Fixed attributes every user record carries, whatever the tenant.

    A field left as None means "not supplied by the event".
    """
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class UserRecord(BaseModel):
    """Authoritative user row as stored in the users table."""
    id: int
    name: str
    email: str
    password: str = ""
    role: int
    custom_fields: CustomFields = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("custom_fields", mode="before")
    @classmethod
    def _decode_custom_fields(cls, v):
        # Rows fetched without the JSONB codec carry the column as text
        if v is None:
            return {}
        if isinstance(v, (str, bytes)):
            return json.loads(v)
        return v

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> UserRecord:
        return cls.model_validate(dict(row))
