# =============================================================================
# File: tenantsync/core/app_state.py
# Description: Application state definition
# =============================================================================

from datetime import datetime, timezone
from typing import Optional

from tenantsync.infra.persistence.pg_client import PostgresClient
from tenantsync.infra.persistence.redis_client import RedisClient
from tenantsync.user_sync.cache_projector import UserCacheProjector
from tenantsync.user_sync.synchronizer import UserSynchronizer
from tenantsync.user_sync.user_store import UserStore

_START_TIME = datetime.now(timezone.utc)


class AppState:
    """Type definition for FastAPI app.state with proper type hints"""

    def __init__(self):
        # Infrastructure
        self.pg_client: Optional[PostgresClient] = None
        self.redis_client: Optional[RedisClient] = None

        # Domain
        self.user_store: Optional[UserStore] = None
        self.cache_projector: Optional[UserCacheProjector] = None
        self.synchronizer: Optional[UserSynchronizer] = None


def get_start_time() -> datetime:
    """Process start time (UTC)."""
    return _START_TIME
