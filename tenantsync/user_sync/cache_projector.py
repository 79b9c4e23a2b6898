# =============================================================================
# File: tenantsync/user_sync/cache_projector.py
# Description: Per-tenant user projections in Redis
# Key pattern: {prefix}:{tenant_id}:user:{user_id}
# =============================================================================

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from tenantsync.config.cache_config import CacheConfig, get_cache_config
from tenantsync.infra.persistence.redis_client import RedisClient

log = logging.getLogger("tenantsync.user_sync.cache")


class UserCacheProjector:
    """
    Reads and writes tenant-flattened user views.

    The cache is never authoritative. Writes overwrite unconditionally and
    expire after the configured TTL. Redis failures raise CacheError.
    """

    def __init__(self, redis_client: RedisClient, config: Optional[CacheConfig] = None):
        self._redis = redis_client
        self._config = config or get_cache_config()

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def ttl_seconds(self) -> int:
        return self._config.ttl_user_projection

    def make_key(self, tenant_id: str, user_id: int) -> str:
        return f"{self._config.key_prefix}:{tenant_id}:user:{user_id}"

    async def write(self, tenant_id: str, user_id: int, view: Dict[str, Any]) -> None:
        key = self.make_key(tenant_id, user_id)
        await self._redis.setex(key, self.ttl_seconds, json.dumps(view, default=str))
        log.debug(f"Cached projection {key} (ttl={self.ttl_seconds}s)")

    async def read(self, tenant_id: str, user_id: int) -> Optional[Dict[str, Any]]:
        """Cached view, or None on a miss. An undecodable entry counts as a miss."""
        key = self.make_key(tenant_id, user_id)
        raw = await self._redis.get(key)
        if raw is None:
            return None

        try:
            view = json.loads(raw)
        except (TypeError, ValueError) as e:
            log.warning(f"Discarding undecodable cache entry {key}: {e}")
            return None

        if not isinstance(view, dict):
            log.warning(f"Discarding non-object cache entry {key}")
            return None
        return view

    async def evict(self, tenant_id: str, user_id: int) -> None:
        key = self.make_key(tenant_id, user_id)
        removed = await self._redis.delete(key)
        log.debug(f"Evicted {key} (existed={bool(removed)})")
