# =============================================================================
# File: tests/test_webhook_router.py
# Description: HTTP surface: webhook intake, user lookup, error mapping
# =============================================================================

import json

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from tenantsync.config.webhook_config import WebhookConfig, get_webhook_config
from tenantsync.core.exceptions import setup_exception_handlers
from tenantsync.core.fastapi_types import FastAPI
from tenantsync.core.routes import setup_routes
from tenantsync.security.webhook_security import compute_signature

SECRET = "s3cret"


@pytest.fixture
def client(synchronizer) -> TestClient:
    app = FastAPI()
    setup_routes(app)
    setup_exception_handlers(app)
    app.state.synchronizer = synchronizer
    app.dependency_overrides[get_webhook_config] = lambda: WebhookConfig(secret=SecretStr(SECRET))
    return TestClient(app)


def _post(client: TestClient, payload, tenant="acme", sign=True, signature=None):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    headers = {"content-type": "application/json"}
    if tenant is not None:
        headers["x-company-id"] = tenant
    if sign:
        headers["strapi-signature"] = signature or compute_signature(body, SECRET)
    return client.post("/strapi/webhook", content=body, headers=headers)


def _event(event: str, entry: dict, model: str = "user") -> dict:
    return {"event": event, "model": model, "entry": entry}


CREATE_JOHN = _event("entry.create", {
    "id": 12,
    "documentId": "x1",
    "username": "John",
    "email": "john@x.com",
    "role": {"id": 1, "name": "Authenticated"},
    "dept": "Eng",
})


def test_create_event_processed(client, pg):
    response = _post(client, CREATE_JOHN)

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["message"] == "Webhook processed successfully"
    assert data["event"] == "entry.create"
    assert data["user"]["name"] == "John"
    assert data["user"]["dept"] == "Eng"
    assert pg.row_by_email("john@x.com")["custom_fields"] == {"acme": {"dept": "Eng"}}


def test_update_and_lookup(client):
    created = _post(client, CREATE_JOHN).json()["user"]
    _post(client, _event("entry.update", {"email": "john@x.com", "dept": "Sales"}), tenant="globex")

    acme = client.get(f"/users/{created['id']}", headers={"x-company-id": "acme"})
    globex = client.get(f"/users/{created['id']}", headers={"x-company-id": "globex"})

    assert acme.status_code == 200
    assert acme.json()["dept"] == "Eng"
    assert globex.json()["dept"] == "Sales"


def test_delete_returns_removed_view(client, pg):
    _post(client, CREATE_JOHN)

    response = _post(client, _event("entry.delete", {"email": "john@x.com"}))

    assert response.status_code == 200
    assert response.json()["user"]["dept"] == "Eng"
    assert pg.rows == {}


def test_non_user_model_ignored(client, pg):
    response = _post(client, _event("entry.create", {"title": "Hello"}, model="article"))

    assert response.status_code == 200
    assert response.json()["message"] == "Ignoring non-user event"
    assert pg.statements == []


def test_unhandled_event_acknowledged(client, pg):
    response = _post(client, _event("entry.publish", {"email": "john@x.com"}))

    assert response.status_code == 200
    assert response.json()["message"] == "Unhandled event type"
    assert pg.statements == []


def test_missing_tenant_header_is_400(client, pg):
    response = _post(client, CREATE_JOHN, tenant=None)

    assert response.status_code == 400
    assert response.json()["type"] == "ValidationError"
    assert pg.statements == []


def test_missing_signature_is_401(client, pg):
    response = _post(client, CREATE_JOHN, sign=False)

    assert response.status_code == 401
    assert pg.statements == []


def test_wrong_signature_is_401(client):
    response = _post(client, CREATE_JOHN, signature="0" * 64)
    assert response.status_code == 401


def test_malformed_body_is_400(client):
    response = _post(client, b"{not json")
    assert response.status_code == 400


def test_missing_required_field_is_400(client, pg):
    response = _post(client, _event("entry.create", {"email": "john@x.com", "role": 1}))

    assert response.status_code == 400
    assert "name" in response.json()["detail"]
    assert pg.statements == []


def test_update_unknown_user_is_404(client):
    response = _post(client, _event("entry.update", {"email": "nobody@x.com"}))
    assert response.status_code == 404


def test_duplicate_create_is_503(client):
    _post(client, CREATE_JOHN)

    response = _post(client, CREATE_JOHN, tenant="globex")

    assert response.status_code == 503
    assert response.json()["type"] == "StoreError"


def test_get_user_requires_tenant(client):
    response = client.get("/users/1")
    assert response.status_code == 400


def test_get_unknown_user_is_404(client):
    response = client.get("/users/404", headers={"x-company-id": "acme"})
    assert response.status_code == 404


def test_metrics_exposed(client):
    _post(client, CREATE_JOHN)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "tenantsync_sync_operations_total" in response.text


def test_health_unhealthy_without_store(client):
    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_health_degraded_when_cache_down(client, redis_client, fake_redis):
    class HealthyStore:
        async def health_check(self):
            return {"is_healthy": True}

    client.app.state.pg_client = HealthyStore()
    client.app.state.redis_client = redis_client
    fake_redis.configure_failure("ping")

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
