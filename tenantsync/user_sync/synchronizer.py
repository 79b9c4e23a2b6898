# =============================================================================
# File: tenantsync/user_sync/synchronizer.py
# Description: Applies upstream user lifecycle events to the store and cache
# =============================================================================
#
# Every mutation follows the same path:
#
#     validate -> store transaction (commit | rollback + raise) -> cache -> return
#
# Cache effects happen only after the store transaction has committed and
# released its connection. A cache failure at that point is logged and
# counted, never raised: the store is the source of truth and the read path
# repopulates missing or stale entries.
# =============================================================================

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional

from tenantsync.common.exceptions.exceptions import (
    CacheError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from tenantsync.infra.metrics.sync_metrics import (
    cache_lookups,
    cache_write_failures,
    sync_operation_duration,
    sync_operations,
)
from tenantsync.user_sync import tenant_fields
from tenantsync.user_sync.cache_projector import UserCacheProjector
from tenantsync.user_sync.enums import EventKind
from tenantsync.user_sync.events import SyncEvent
from tenantsync.user_sync.user_store import UserStore

log = logging.getLogger("tenantsync.user_sync.synchronizer")

UserView = Dict[str, Any]


@contextmanager
def _track(operation: str) -> Iterator[None]:
    start = time.monotonic()
    result = "ok"
    try:
        yield
    except ValidationError:
        result = "validation_error"
        raise
    except NotFoundError:
        result = "not_found"
        raise
    except StoreError:
        result = "store_error"
        raise
    except Exception:
        result = "error"
        raise
    finally:
        sync_operations.labels(operation=operation, result=result).inc()
        sync_operation_duration.labels(operation=operation).observe(time.monotonic() - start)


class UserSynchronizer:
    """Keeps the users table and the per-tenant projection cache in step."""

    def __init__(self, store: UserStore, cache: UserCacheProjector):
        self.store = store
        self.cache = cache

    # -------------------------------------------------------------------------
    # Event dispatch
    # -------------------------------------------------------------------------

    async def handle_event(self, event: SyncEvent) -> UserView:
        """Route an event to the matching lifecycle operation."""
        if event.kind == EventKind.CREATE:
            return await self.on_create(event.record, event.tenant_id)
        if event.kind == EventKind.UPDATE:
            return await self.on_update(event.record, event.tenant_id)
        if event.kind == EventKind.DELETE:
            return await self.on_delete(event.record, event.tenant_id)
        raise ValidationError(f"Unsupported event kind: {event.kind!r}")

    # -------------------------------------------------------------------------
    # Lifecycle operations
    # -------------------------------------------------------------------------

    async def on_create(self, raw: Mapping[str, Any], tenant_id: str) -> UserView:
        with _track("create"):
            standard, scoped = tenant_fields.split(raw, tenant_id)
            tenant_fields.require_fields(standard, "name", "email", "role")
            log.info(f"Creating user email={standard.email} for tenant={tenant_id}")

            record = await self.store.create(standard, scoped)

            view = tenant_fields.project(record, tenant_id)
            await self._write_cache(tenant_id, record.id, view, "create")
            return view

    async def on_update(self, raw: Mapping[str, Any], tenant_id: str) -> UserView:
        with _track("update"):
            standard, scoped = tenant_fields.split(raw, tenant_id)
            tenant_fields.require_fields(standard, "email")
            log.info(f"Updating user email={standard.email} for tenant={tenant_id}")

            record = await self.store.update_by_email(standard.email, standard, tenant_id, scoped[tenant_id])

            view = tenant_fields.project(record, tenant_id)
            await self._write_cache(tenant_id, record.id, view, "update")
            return view

    async def on_delete(self, raw: Mapping[str, Any], tenant_id: str) -> UserView:
        """Remove tenant_id from the user and return the tenant's view as it was before removal."""
        with _track("delete"):
            standard, _ = tenant_fields.split(raw, tenant_id)
            tenant_fields.require_fields(standard, "email")
            log.info(f"Removing tenant={tenant_id} from user email={standard.email}")

            snapshot, deleted_row = await self.store.delete_tenant_slice(standard.email, tenant_id)

            if self.cache.enabled:
                try:
                    await self.cache.evict(tenant_id, snapshot.id)
                except CacheError as e:
                    cache_write_failures.labels(operation="delete").inc()
                    log.warning(
                        f"Cache eviction failed for tenant={tenant_id} user_id={snapshot.id} "
                        f"(row_deleted={deleted_row}): {e}"
                    )

            return tenant_fields.project(snapshot, tenant_id)

    async def get_user(self, user_id: int, tenant_id: str) -> UserView:
        """Cached view when present, otherwise read the store and repopulate the cache."""
        with _track("get"):
            tenant_fields.require_tenant(tenant_id)

            cached = await self._read_cache(tenant_id, user_id)
            if cached is not None:
                return cached

            record = await self.store.get_by_id(user_id)
            view = tenant_fields.project(record, tenant_id)
            await self._write_cache(tenant_id, record.id, view, "get")
            return view

    # -------------------------------------------------------------------------
    # Cache helpers
    # -------------------------------------------------------------------------

    async def _read_cache(self, tenant_id: str, user_id: int) -> Optional[UserView]:
        if not self.cache.enabled:
            return None
        try:
            cached = await self.cache.read(tenant_id, user_id)
        except CacheError as e:
            cache_lookups.labels(result="error").inc()
            log.warning(f"Cache read failed for tenant={tenant_id} user_id={user_id}, reading store: {e}")
            return None

        cache_lookups.labels(result="hit" if cached is not None else "miss").inc()
        return cached

    async def _write_cache(self, tenant_id: str, user_id: int, view: UserView, operation: str) -> None:
        if not self.cache.enabled:
            return
        try:
            await self.cache.write(tenant_id, user_id, view)
        except CacheError as e:
            cache_write_failures.labels(operation=operation).inc()
            log.warning(f"Cache write failed after commit for tenant={tenant_id} user_id={user_id}: {e}")
