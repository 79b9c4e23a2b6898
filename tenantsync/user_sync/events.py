# =============================================================================
# File: tenantsync/user_sync/events.py
# Description: Envelope for an upstream user lifecycle event
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from tenantsync.user_sync.enums import EventKind


class SyncEvent(BaseModel):
    """One (kind, raw record, tenant) triple handed to the synchronizer."""
    kind: EventKind
    tenant_id: str = Field(min_length=1)
    record: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_webhook(cls, event: Optional[str], entry: Optional[Dict[str, Any]], tenant_id: str) -> Optional[SyncEvent]:
        """Build an event from a CMS webhook payload; None when the event name is not handled."""
        kind = EventKind.from_upstream(event)
        if kind is None:
            return None
        return cls(kind=kind, tenant_id=tenant_id, record=entry or {})
