# =============================================================================
# File: tenantsync/user_sync/user_store.py
# Description: Transactional access to the users table
# - Every mutation runs in exactly one transaction: commit on success,
#   rollback on any failure (including the transaction timeout)
# - Read-merge-write locks the row with SELECT ... FOR UPDATE and the whole
#   transaction is re-run on serialization failure or deadlock
# - Driver failures surface as StoreError; NotFoundError aborts the transaction
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

import asyncpg

from tenantsync.common.exceptions.exceptions import NotFoundError, StoreError, TenantSyncException
from tenantsync.config.reliability_config import ReliabilityConfigs
from tenantsync.infra.persistence.pg_client import PostgresClient
from tenantsync.infra.reliability.retry import retry_async
from tenantsync.user_sync import tenant_fields
from tenantsync.user_sync.read_models import CustomFields, StandardFields, UserRecord

log = logging.getLogger("tenantsync.user_sync.store")

T = TypeVar("T")

INSERT_USER_SQL = """
    INSERT INTO users (name, email, password, role, custom_fields)
    VALUES ($1, $2, '', $3, $4)
    RETURNING *
"""

SELECT_USER_FOR_UPDATE_SQL = """
    SELECT * FROM users
    WHERE email = $1
    FOR UPDATE
"""

UPDATE_USER_SQL = """
    UPDATE users
    SET name          = COALESCE($2, name),
        role          = COALESCE($3, role),
        custom_fields = $4,
        updated_at    = CURRENT_TIMESTAMP
    WHERE id = $1
    RETURNING *
"""

UPDATE_CUSTOM_FIELDS_SQL = """
    UPDATE users
    SET custom_fields = $2,
        updated_at    = CURRENT_TIMESTAMP
    WHERE id = $1
"""

DELETE_USER_SQL = "DELETE FROM users WHERE id = $1"

SELECT_USER_BY_ID_SQL = "SELECT * FROM users WHERE id = $1"

SELECT_USERS_BY_TENANT_SQL = """
    SELECT * FROM users
    WHERE custom_fields ? $1
    ORDER BY id
"""


def is_transaction_conflict(error: Exception) -> bool:
    return isinstance(error, (asyncpg.SerializationError, asyncpg.DeadlockDetectedError))


class UserStore:
    """Record store for users; the only component that talks SQL."""

    def __init__(self, pg: PostgresClient, conflict_retries: Optional[int] = None):
        self._pg = pg
        self._tx_timeout = pg.config.transaction_timeout
        self._conflict_retry = ReliabilityConfigs.transaction_conflict_retry(is_transaction_conflict, conflict_retries)

    async def _in_transaction(self, operation: str, work: Callable[[asyncpg.Connection], Awaitable[T]]) -> T:
        async def attempt() -> T:
            async with asyncio.timeout(self._tx_timeout):
                async with self._pg.transaction() as conn:
                    return await work(conn)

        try:
            return await retry_async(attempt, retry_config=self._conflict_retry, context=f"user_store.{operation}")
        except TenantSyncException:
            raise
        except Exception as e:
            log.error(f"user_store.{operation} failed: {type(e).__name__}: {e}")
            raise StoreError(f"{operation} failed: {e}") from e

    async def create(self, standard: StandardFields, scoped_custom_fields: CustomFields) -> UserRecord:
        """Insert a new row. A duplicate email violates the unique constraint and raises StoreError."""
        async def work(conn: asyncpg.Connection) -> UserRecord:
            row = await conn.fetchrow(
                INSERT_USER_SQL,
                standard.name,
                standard.email,
                standard.role,
                scoped_custom_fields,
            )
            return UserRecord.from_row(row)

        record = await self._in_transaction("create", work)
        log.info(f"User row created id={record.id} tenants={sorted(record.custom_fields)}")
        return record

    async def update_by_email(
            self,
            email: str,
            standard: StandardFields,
            tenant_id: str,
            new_tenant_fields: dict,
    ) -> UserRecord:
        """Replace tenant_id's slice and apply supplied standard fields to the row matching email."""
        async def work(conn: asyncpg.Connection) -> UserRecord:
            existing = await conn.fetchrow(SELECT_USER_FOR_UPDATE_SQL, email)
            if existing is None:
                raise NotFoundError(f"No user with email {email}")

            current = UserRecord.from_row(existing)
            merged = tenant_fields.merge(current.custom_fields, tenant_id, new_tenant_fields)
            row = await conn.fetchrow(
                UPDATE_USER_SQL,
                current.id,
                standard.name,
                standard.role,
                merged,
            )
            return UserRecord.from_row(row)

        record = await self._in_transaction("update", work)
        log.info(f"User row updated id={record.id} tenant={tenant_id}")
        return record

    async def delete_tenant_slice(self, email: str, tenant_id: str) -> Tuple[UserRecord, bool]:
        """
        Strip tenant_id's slice from the row matching email.

        The row itself is deleted once no tenant references it.

        Returns:
            (row as it was before the change, whether the row was deleted)

        Raises:
            NotFoundError: no row for email, or the tenant holds no slice in it
        """
        async def work(conn: asyncpg.Connection) -> Tuple[UserRecord, bool]:
            existing = await conn.fetchrow(SELECT_USER_FOR_UPDATE_SQL, email)
            if existing is None:
                raise NotFoundError(f"No user with email {email}")

            snapshot = UserRecord.from_row(existing)
            remaining, had_entry = tenant_fields.strip(snapshot.custom_fields, tenant_id)
            if not had_entry:
                raise NotFoundError(f"User {email} has no data for tenant {tenant_id}")

            if remaining:
                await conn.execute(UPDATE_CUSTOM_FIELDS_SQL, snapshot.id, remaining)
                return snapshot, False

            await conn.execute(DELETE_USER_SQL, snapshot.id)
            return snapshot, True

        snapshot, deleted_row = await self._in_transaction("delete", work)
        if deleted_row:
            log.info(f"User row deleted id={snapshot.id} (last tenant {tenant_id} removed)")
        else:
            log.info(f"Tenant {tenant_id} stripped from user id={snapshot.id}")
        return snapshot, deleted_row

    async def get_by_id(self, user_id: int) -> UserRecord:
        try:
            row = await self._pg.fetchrow(SELECT_USER_BY_ID_SQL, user_id)
        except Exception as e:
            log.error(f"user_store.get failed for id={user_id}: {e}")
            raise StoreError(f"get failed: {e}") from e

        if row is None:
            raise NotFoundError(f"User {user_id} not found")
        return UserRecord.from_row(row)

    async def list_by_tenant(self, tenant_id: str) -> List[UserRecord]:
        """Every row that holds a slice for tenant_id."""
        try:
            rows = await self._pg.fetch(SELECT_USERS_BY_TENANT_SQL, tenant_id)
        except Exception as e:
            log.error(f"user_store.list_by_tenant failed for tenant={tenant_id}: {e}")
            raise StoreError(f"list_by_tenant failed: {e}") from e
        return [UserRecord.from_row(row) for row in rows]
