# tests/test_api.py
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from catalog.contentful import EntryPage
from catalog.main import app
from catalog.models import SyncState
from catalog.services import get_sync_service
from catalog.sync import SyncService


def _create(client, auth_headers, **fields):
    body = {"contentful_id": f"manual-{uuid.uuid4().hex[:8]}", "name": "Mug", **fields}
    res = client.post("/api/products", json=body, headers=auth_headers)
    assert res.status_code == 201, res.text
    return res.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_issues_usable_token(client):
    res = client.post("/api/auth/login", json={"email": "someone@example.com"})
    assert res.status_code == 200
    token = res.json()["access_token"]
    assert res.json()["token_type"] == "bearer"

    res = client.get("/api/sync/status", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401
    res = client.post(
        "/api/products",
        json={"contentful_id": "x", "name": "X"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert res.status_code == 201


def test_login_without_body_uses_default_email(client):
    assert client.post("/api/auth/login").status_code == 200


def test_mutations_require_token(client):
    assert client.post("/api/products", json={"contentful_id": "x", "name": "X"}).status_code == 401
    assert client.patch(f"/api/products/{uuid.uuid4()}", json={"name": "X"}).status_code == 401
    assert client.delete(f"/api/products/{uuid.uuid4()}").status_code == 401
    assert client.get("/api/reports/overview").status_code == 401


def test_create_normalizes_input(client, auth_headers):
    data = _create(
        client, auth_headers,
        contentful_id="  abc  ", name="  Fancy   Chair ", sku=" sku-1 ",
        currency="usd", price="199.99", stock="5",
    )
    assert data["contentful_id"] == "abc"
    assert data["name"] == "Fancy Chair"
    assert data["sku"] == "SKU-1"
    assert data["currency"] == "USD"
    assert data["price"] == pytest.approx(199.99)
    assert data["stock"] == 5


def test_create_rejects_blank_name_and_negative_stock(client, auth_headers):
    res = client.post("/api/products", json={"contentful_id": "a", "name": "   "}, headers=auth_headers)
    assert res.status_code == 422
    res = client.post("/api/products", json={"contentful_id": "a", "name": "A", "stock": -1},
                      headers=auth_headers)
    assert res.status_code == 422


def test_create_duplicate_is_conflict(client, auth_headers):
    _create(client, auth_headers, contentful_id="dup")
    res = client.post("/api/products", json={"contentful_id": "dup", "name": "Again"}, headers=auth_headers)
    assert res.status_code == 409


def test_list_filters_and_caps_page_size(client, auth_headers):
    for i in range(7):
        _create(client, auth_headers, name=f"Lamp {i}", category="Lighting", sku=f"L-{i}")
    _create(client, auth_headers, name="Chair", category="Chairs", price="20")

    res = client.get("/api/products", params={"limit": 50})
    body = res.json()
    assert body["limit"] == 5
    assert body["total"] == 8
    assert len(body["data"]) == 5

    res = client.get("/api/products", params={"category": "  lighting "})
    assert res.json()["total"] == 7

    res = client.get("/api/products", params={"name": "chai"})
    assert [p["name"] for p in res.json()["data"]] == ["Chair"]

    res = client.get("/api/products", params={"sku": "l-3"})
    assert [p["sku"] for p in res.json()["data"]] == ["L-3"]


def test_get_update_and_soft_delete(client, auth_headers):
    created = _create(client, auth_headers, currency="CLP")
    pid = created["id"]

    assert client.get(f"/api/products/{pid}").json()["name"] == "Mug"

    res = client.patch(f"/api/products/{pid}", json={"currency": "clp", "stock": 3, "name": " Big  Mug "},
                       headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["currency"] == "CLP"
    assert res.json()["stock"] == 3
    assert res.json()["name"] == "Big Mug"

    res = client.delete(f"/api/products/{pid}", headers=auth_headers)
    assert res.json() == {"id": pid, "deleted": True}

    assert client.get(f"/api/products/{pid}").status_code == 404
    assert client.delete(f"/api/products/{pid}", headers=auth_headers).status_code == 404
    assert client.patch(f"/api/products/{pid}", json={"stock": 1}, headers=auth_headers).status_code == 404
    assert client.get("/api/products").json()["total"] == 0


def test_invalid_product_id_is_unprocessable(client):
    assert client.get("/api/products/not-a-uuid").status_code == 422


def test_reports_overview_and_by_category(client, auth_headers):
    _create(client, auth_headers, category="Lamps", price="10")
    _create(client, auth_headers, category="Lamps", price="30")
    _create(client, auth_headers, category="Chairs")
    gone = _create(client, auth_headers, price="20")
    client.delete(f"/api/products/{gone['id']}", headers=auth_headers)

    res = client.get("/api/reports/overview", headers=auth_headers)
    assert res.status_code == 200
    assert res.json() == {
        "total": 4,
        "deleted_count": 1,
        "deleted_pct": 25.0,
        "priced_count": 3,
        "priced_pct": 75.0,
        "no_price_count": 1,
        "no_price_pct": 25.0,
        "price_min": 10.0,
        "price_max": 30.0,
        "price_avg": 20.0,
    }

    res = client.get("/api/reports/overview", params={"category": "lamps"}, headers=auth_headers)
    assert res.json()["total"] == 2
    assert res.json()["price_avg"] == 20.0

    res = client.get("/api/reports/by-category", headers=auth_headers)
    rows = res.json()
    assert rows[0] == {"category": "Lamps", "total": 2}
    assert {"category": "Chairs", "total": 1} in rows
    assert {"category": None, "total": 1} in rows


def test_reports_empty_window_and_invalid_range(client, auth_headers):
    old = datetime(2000, 1, 1, tzinfo=timezone.utc)
    params = {"from": old.isoformat(), "to": (old + timedelta(days=1)).isoformat()}
    res = client.get("/api/reports/overview", params=params, headers=auth_headers)
    assert res.json()["total"] == 0
    assert res.json()["deleted_pct"] == 0
    assert res.json()["price_avg"] is None

    params = {"from": "2025-09-20T00:00:00Z", "to": "2025-09-01T00:00:00Z"}
    assert client.get("/api/reports/overview", params=params, headers=auth_headers).status_code == 400
    assert client.get("/api/reports/by-category", params=params, headers=auth_headers).status_code == 400
    res = client.get("/api/reports/overview", params={"date_field": "name"}, headers=auth_headers)
    assert res.status_code == 422


class _StubClient:
    def __init__(self, pages):
        self.pages = list(pages)

    def list_products(self, limit, skip, updated_at_gte=None):
        return self.pages.pop(0) if self.pages else EntryPage()


class _FailingClient:
    def list_products(self, limit, skip, updated_at_gte=None):
        raise RuntimeError("upstream down")


@pytest.fixture
def sync_override(session_factory):
    def install(client):
        service = SyncService(client, session_factory, page_size=10, source_key="contentful:product")
        app.dependency_overrides[get_sync_service] = lambda: service
        return service
    return install


def test_manual_sync_run_and_status(client, auth_headers, sync_override):
    page = EntryPage.model_validate({"total": 1, "items": [{
        "sys": {"id": "ctf-1", "updatedAt": "2025-09-19T10:00:00.000Z"},
        "fields": {"name": "Synced", "price": "5,5"},
    }]})
    sync_override(_StubClient([page]))

    res = client.post("/api/sync/run", headers=auth_headers)
    assert res.status_code == 200, res.text
    assert res.json()["processed"] == 1

    listed = client.get("/api/products").json()["data"]
    assert listed[0]["name"] == "Synced"
    assert listed[0]["price"] == 5.5

    status = client.get("/api/sync/status", headers=auth_headers).json()
    assert status["phase"] == "done"
    assert status["running"] is False
    assert status["last_result"]["processed"] == 1
    assert status["cursor"].startswith("2025-09-19T10:00:00")


def test_manual_sync_conflict_and_failure(client, auth_headers, sync_override):
    service = sync_override(_StubClient([]))
    service._lock.acquire()
    try:
        assert client.post("/api/sync/run", headers=auth_headers).status_code == 409
    finally:
        service._lock.release()

    service = sync_override(_FailingClient())
    assert client.post("/api/sync/run", headers=auth_headers).status_code == 502
    status = client.get("/api/sync/status", headers=auth_headers).json()
    assert status["phase"] == "failed"
    assert status["last_error"] == "upstream down"
    assert status["cursor"] is None


def test_sync_status_does_not_create_state_row(client, auth_headers, sync_override, db):
    sync_override(_StubClient([]))

    status = client.get("/api/sync/status", headers=auth_headers).json()

    assert status["phase"] == "idle"
    assert status["cursor"] is None
    assert db.query(SyncState).count() == 0


def test_list_select_projects_columns(client, auth_headers):
    _create(client, auth_headers, name="Lamp", sku="L-1", price="10")

    res = client.get("/api/products", params={"select": "name,sku,bogus"})
    assert res.status_code == 200
    assert res.json()["data"] == [{"name": "Lamp", "sku": "L-1"}]

    res = client.get("/api/products", params=[("select", "price"), ("select", "stock")])
    assert res.json()["data"] == [{"price": 10.0, "stock": None}]

    full = client.get("/api/products", params={"select": "bogus"}).json()["data"][0]
    assert full["name"] == "Lamp"
    assert "id" in full and "created_at" in full
