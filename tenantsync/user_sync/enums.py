# tenantsync/user_sync/enums.py
# =============================================================================
# File: tenantsync/user_sync/enums.py
# Description: Enums for upstream user lifecycle events
# =============================================================================

from enum import Enum
from typing import Optional


class EventKind(str, Enum):
    """Lifecycle operation requested by an upstream event."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def from_upstream(cls, event: Optional[str]) -> Optional["EventKind"]:
        """Map a CMS webhook event name (e.g. "entry.update") to a kind; None if unhandled."""
        return UPSTREAM_EVENT_NAMES.get(event or "")


UPSTREAM_EVENT_NAMES = {
    "entry.create": EventKind.CREATE,
    "entry.update": EventKind.UPDATE,
    "entry.delete": EventKind.DELETE,
}
