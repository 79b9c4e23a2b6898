# =============================================================================
# File: tests/test_events.py
# Description: Mapping CMS webhook events onto lifecycle kinds
# =============================================================================

import pytest
from pydantic import ValidationError as PydanticValidationError

from tenantsync.user_sync.enums import EventKind
from tenantsync.user_sync.events import SyncEvent


@pytest.mark.parametrize("name, kind", [
    ("entry.create", EventKind.CREATE),
    ("entry.update", EventKind.UPDATE),
    ("entry.delete", EventKind.DELETE),
])
def test_upstream_names_map_to_kinds(name, kind):
    assert EventKind.from_upstream(name) is kind


@pytest.mark.parametrize("name", ["entry.publish", "media.create", "", None])
def test_unhandled_names(name):
    assert EventKind.from_upstream(name) is None


def test_from_webhook_builds_event():
    event = SyncEvent.from_webhook("entry.update", {"email": "a@b.c"}, "acme")

    assert event.kind is EventKind.UPDATE
    assert event.tenant_id == "acme"
    assert event.record == {"email": "a@b.c"}


def test_from_webhook_missing_entry_is_empty_record():
    assert SyncEvent.from_webhook("entry.delete", None, "acme").record == {}


def test_from_webhook_unhandled_returns_none():
    assert SyncEvent.from_webhook("entry.unpublish", {}, "acme") is None


def test_empty_tenant_rejected():
    with pytest.raises(PydanticValidationError):
        SyncEvent(kind=EventKind.CREATE, tenant_id="", record={})
