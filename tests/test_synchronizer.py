# =============================================================================
# File: tests/test_synchronizer.py
# Description: End-to-end lifecycle behaviour of UserSynchronizer over the
#              real store, codec and cache projector backed by fakes
# =============================================================================

import asyncio

import pytest

from tenantsync.common.exceptions.exceptions import NotFoundError, StoreError, ValidationError
from tenantsync.config.cache_config import CacheConfig
from tenantsync.user_sync import tenant_fields
from tenantsync.user_sync.cache_projector import UserCacheProjector
from tenantsync.user_sync.enums import EventKind
from tenantsync.user_sync.events import SyncEvent
from tenantsync.user_sync.read_models import UserRecord
from tenantsync.user_sync.synchronizer import UserSynchronizer

JOHN = {"name": "John", "email": "john@x.com", "role": 1, "dept": "Eng"}


# =============================================================================
# Concrete scenarios
# =============================================================================

@pytest.mark.asyncio
async def test_create_then_get(synchronizer, pg):
    created = await synchronizer.on_create(JOHN, "acme")

    row = pg.row_by_email("john@x.com")
    assert row["custom_fields"] == {"acme": {"dept": "Eng"}}

    view = await synchronizer.get_user(created["id"], "acme")
    assert view == {
        "id": created["id"],
        "name": "John",
        "email": "john@x.com",
        "password": "",
        "role": 1,
        "created_at": row["created_at"].isoformat(),
        "updated_at": row["updated_at"].isoformat(),
        "dept": "Eng",
    }


@pytest.mark.asyncio
async def test_upstream_password_never_stored_or_served(synchronizer, pg, cache, fake_redis):
    created = await synchronizer.on_create({**JOHN, "password": "hunter2"}, "acme")
    updated = await synchronizer.on_update({"email": "john@x.com", "password": "hunter3"}, "acme")

    row = pg.row_by_email("john@x.com")
    assert row["password"] == ""
    assert row["custom_fields"] == {"acme": {}}
    for view in (created, updated, await synchronizer.get_user(created["id"], "acme")):
        assert view["password"] == ""
    assert "hunter" not in fake_redis.store[cache.make_key("acme", created["id"])][0]


@pytest.mark.asyncio
async def test_second_tenant_update_keeps_first_tenant_view(synchronizer, pg):
    created = await synchronizer.on_create(JOHN, "acme")

    await synchronizer.on_update({"email": "john@x.com", "dept": "Sales"}, "globex")

    assert pg.row_by_email("john@x.com")["custom_fields"] == {
        "acme": {"dept": "Eng"},
        "globex": {"dept": "Sales"},
    }
    assert (await synchronizer.get_user(created["id"], "acme"))["dept"] == "Eng"
    assert (await synchronizer.get_user(created["id"], "globex"))["dept"] == "Sales"


@pytest.mark.asyncio
async def test_delete_one_of_two_tenants(synchronizer, pg, cache, fake_redis):
    created = await synchronizer.on_create(JOHN, "acme")
    await synchronizer.on_update({"email": "john@x.com", "dept": "Sales"}, "globex")
    user_id = created["id"]

    removed = await synchronizer.on_delete({"email": "john@x.com"}, "acme")

    assert removed["dept"] == "Eng"
    assert pg.rows[user_id]["custom_fields"] == {"globex": {"dept": "Sales"}}
    assert cache.make_key("acme", user_id) not in fake_redis.store
    assert cache.make_key("globex", user_id) in fake_redis.store


# =============================================================================
# Properties
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("t1_fields", [
    {"dept": "Ops"},
    {},
    {"dept": None, "badge": 42},
    {"nickname": "Johnny"},
])
async def test_update_in_one_tenant_never_changes_another_projection(synchronizer, store, t1_fields):
    await synchronizer.on_create(JOHN, "acme")
    await synchronizer.on_update({"email": "john@x.com", "team": "Blue"}, "globex")
    before = await store.get_by_id(1)

    await synchronizer.on_update({"email": "john@x.com", **t1_fields}, "acme")

    after = await store.get_by_id(1)
    assert after.custom_fields["globex"] == before.custom_fields["globex"]
    globex_before = tenant_fields.project(before, "globex")
    globex_after = tenant_fields.project(after, "globex")
    globex_before.pop("updated_at")
    globex_after.pop("updated_at")
    assert globex_after == globex_before


@pytest.mark.asyncio
async def test_cache_hit_equals_store_fallback(synchronizer, store, cache, fake_redis):
    created = await synchronizer.on_create(JOHN, "acme")

    from_cache = await synchronizer.get_user(created["id"], "acme")
    assert fake_redis.get_call_count("get") == 1

    await cache.evict("acme", created["id"])
    from_store = await synchronizer.get_user(created["id"], "acme")

    expected = tenant_fields.project(await store.get_by_id(created["id"]), "acme")
    assert from_cache == created == from_store == expected


@pytest.mark.asyncio
async def test_cache_miss_repopulates(synchronizer, pg, cache, fake_redis):
    user_id = pg.seed("John", "john@x.com", 1, {"acme": {"dept": "Eng"}})

    view = await synchronizer.get_user(user_id, "acme")

    assert view["dept"] == "Eng"
    assert await cache.read("acme", user_id) == view
    assert fake_redis.ttl_of(cache.make_key("acme", user_id)) == 86400


@pytest.mark.asyncio
async def test_delete_last_tenant_removes_row(synchronizer, pg):
    await synchronizer.on_create(JOHN, "acme")

    await synchronizer.on_delete({"email": "john@x.com"}, "acme")

    assert pg.rows == {}


@pytest.mark.asyncio
async def test_second_delete_is_not_found(synchronizer):
    await synchronizer.on_create(JOHN, "acme")
    await synchronizer.on_update({"email": "john@x.com"}, "globex")

    await synchronizer.on_delete({"email": "john@x.com"}, "acme")
    with pytest.raises(NotFoundError):
        await synchronizer.on_delete({"email": "john@x.com"}, "acme")


@pytest.mark.asyncio
async def test_second_delete_after_row_removed_is_not_found(synchronizer):
    await synchronizer.on_create(JOHN, "acme")

    await synchronizer.on_delete({"email": "john@x.com"}, "acme")
    with pytest.raises(NotFoundError):
        await synchronizer.on_delete({"email": "john@x.com"}, "acme")


# =============================================================================
# Validation and store failures
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [
    {"email": "john@x.com", "role": 1},
    {"name": "John", "role": 1},
    {"name": "John", "email": "john@x.com"},
])
async def test_create_requires_standard_fields(synchronizer, pg, raw):
    with pytest.raises(ValidationError):
        await synchronizer.on_create(raw, "acme")
    assert pg.statements == []


@pytest.mark.asyncio
async def test_missing_tenant_rejected_before_io(synchronizer, pg, fake_redis):
    with pytest.raises(ValidationError):
        await synchronizer.on_update({"email": "john@x.com"}, "")
    with pytest.raises(ValidationError):
        await synchronizer.get_user(1, "")

    assert pg.statements == []
    assert not fake_redis.was_called("get")


@pytest.mark.asyncio
async def test_update_unknown_email_touches_no_cache(synchronizer, fake_redis):
    with pytest.raises(NotFoundError):
        await synchronizer.on_update({"email": "nobody@x.com", "dept": "x"}, "acme")
    assert not fake_redis.was_called("setex")


@pytest.mark.asyncio
async def test_get_unknown_id_is_not_found(synchronizer):
    with pytest.raises(NotFoundError):
        await synchronizer.get_user(404, "acme")


@pytest.mark.asyncio
async def test_store_failure_propagates_and_skips_cache(synchronizer, pg, fake_redis):
    pg.configure_failure("insert", OSError("connection refused"))

    with pytest.raises(StoreError):
        await synchronizer.on_create(JOHN, "acme")

    assert pg.rows == {}
    assert not fake_redis.was_called("setex")


# =============================================================================
# Cache degradation
# =============================================================================

@pytest.mark.asyncio
async def test_cache_write_failure_after_commit_is_swallowed(synchronizer, pg, fake_redis):
    fake_redis.configure_failure("setex")

    view = await synchronizer.on_create(JOHN, "acme")

    assert view["dept"] == "Eng"
    assert pg.committed == 1
    assert pg.row_by_email("john@x.com") is not None


@pytest.mark.asyncio
async def test_cache_evict_failure_does_not_undo_delete(synchronizer, pg, fake_redis):
    await synchronizer.on_create(JOHN, "acme")
    fake_redis.configure_failure("delete")

    removed = await synchronizer.on_delete({"email": "john@x.com"}, "acme")

    assert removed["email"] == "john@x.com"
    assert pg.rows == {}


@pytest.mark.asyncio
async def test_cache_read_failure_falls_back_to_store(synchronizer, pg, fake_redis):
    user_id = pg.seed("John", "john@x.com", 1, {"acme": {"dept": "Eng"}})
    fake_redis.configure_failure("get", "setex")

    view = await synchronizer.get_user(user_id, "acme")

    assert view["dept"] == "Eng"


@pytest.mark.asyncio
async def test_disabled_cache_is_never_touched(store, redis_client, fake_redis):
    synchronizer = UserSynchronizer(store, UserCacheProjector(redis_client, CacheConfig(enabled=False)))

    created = await synchronizer.on_create(JOHN, "acme")
    await synchronizer.get_user(created["id"], "acme")
    await synchronizer.on_delete({"email": "john@x.com"}, "acme")

    assert fake_redis.store == {}
    assert not fake_redis.was_called("get")
    assert not fake_redis.was_called("delete")


# =============================================================================
# Dispatch
# =============================================================================

@pytest.mark.asyncio
async def test_handle_event_dispatches_by_kind(synchronizer, pg):
    created = await synchronizer.handle_event(SyncEvent(kind=EventKind.CREATE, tenant_id="acme", record=JOHN))
    updated = await synchronizer.handle_event(
        SyncEvent(kind=EventKind.UPDATE, tenant_id="acme", record={"email": "john@x.com", "dept": "Ops"})
    )
    removed = await synchronizer.handle_event(
        SyncEvent(kind=EventKind.DELETE, tenant_id="acme", record={"email": "john@x.com"})
    )

    assert created["dept"] == "Eng"
    assert updated["dept"] == "Ops"
    assert removed["dept"] == "Ops"
    assert pg.rows == {}


@pytest.mark.asyncio
async def test_concurrent_updates_for_different_tenants_both_survive(synchronizer, store, pg):
    await synchronizer.on_create(JOHN, "acme")
    # Each transaction yields between reading the row and writing the merge
    pg.configure_delay("update", 0.05)

    await asyncio.gather(
        synchronizer.on_update({"email": "john@x.com", "dept": "Ops"}, "acme"),
        synchronizer.on_update({"email": "john@x.com", "dept": "Sales"}, "globex"),
    )

    record: UserRecord = await store.get_by_id(1)
    assert record.custom_fields == {"acme": {"dept": "Ops"}, "globex": {"dept": "Sales"}}
    assert pg.committed == 3
    assert pg.rolled_back == 0
