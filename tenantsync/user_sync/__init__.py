"""
Per-tenant user synchronization: field codec, store, cache projection
and the synchronizer that orders them.
"""

from tenantsync.user_sync.enums import EventKind
from tenantsync.user_sync.events import SyncEvent
from tenantsync.user_sync.read_models import StandardFields, UserRecord
from tenantsync.user_sync.synchronizer import UserSynchronizer

__all__ = [
    "EventKind",
    "SyncEvent",
    "StandardFields",
    "UserRecord",
    "UserSynchronizer",
]
