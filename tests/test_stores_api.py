from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

import api_tester.main as main_module
from api_tester.credentials import StoreCredentialsRepository, normalize_store_url
from api_tester.db import SessionLocal, init_db
from api_tester.models import StoreCredential
from api_tester.routers.stores import _violates_single_active


@pytest.fixture()
def db_session():
    init_db()
    session = SessionLocal()
    session.execute(delete(StoreCredential))
    session.commit()
    try:
        yield session
    finally:
        session.execute(delete(StoreCredential))
        session.commit()
        session.close()


@pytest.fixture()
def api_client():
    with TestClient(main_module.app) as client:
        yield client


def _create_store(api_client: TestClient, **overrides) -> dict:
    payload = {
        "name": "Dev Store",
        "storeUrl": "dev-store.myshopify.com",
        "adminApiToken": "shpat_dev",
        "scopes": "read_themes,write_themes",
    }
    payload.update(overrides)
    response = api_client.post("/api/stores", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_normalize_store_url_strips_scheme_and_trailing_slashes():
    assert normalize_store_url("https://example.myshopify.com/") == "example.myshopify.com"
    assert normalize_store_url("  HTTP://example.myshopify.com//  ") == "example.myshopify.com"
    assert normalize_store_url("example.myshopify.com") == "example.myshopify.com"


def test_create_store_normalizes_url_and_applies_default_api_version(api_client, db_session):
    created = _create_store(api_client, storeUrl="https://dev-store.myshopify.com/")

    assert created["storeUrl"] == "dev-store.myshopify.com"
    assert created["apiVersion"] == "2025-01"
    assert created["adminApiToken"] == "shpat_dev"
    assert created["isActive"] is False


def test_create_store_reports_missing_fields(api_client, db_session):
    response = api_client.post("/api/stores", json={"name": "Dev Store", "storeUrl": "dev-store.myshopify.com"})

    assert response.status_code == 400
    assert response.json() == {"detail": "Missing required fields: adminApiToken, scopes"}


def test_create_store_rejects_duplicate_name_and_url(api_client, db_session):
    _create_store(api_client)

    response = api_client.post(
        "/api/stores",
        json={
            "name": "Dev Store",
            "storeUrl": "https://dev-store.myshopify.com",
            "adminApiToken": "shpat_other",
            "scopes": "read_themes",
        },
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "A store with this name and URL already exists"


def test_list_stores_omits_tokens(api_client, db_session):
    _create_store(api_client)

    response = api_client.get("/api/stores")

    assert response.status_code == 200
    stores = response.json()
    assert len(stores) == 1
    assert stores[0]["name"] == "Dev Store"
    assert "adminApiToken" not in stores[0]
    assert "storefrontToken" not in stores[0]


def test_get_store_returns_tokens_and_404_for_unknown_id(api_client, db_session):
    created = _create_store(api_client, storefrontToken="sf_token")

    response = api_client.get(f"/api/stores/{created['id']}")
    assert response.status_code == 200
    assert response.json()["adminApiToken"] == "shpat_dev"
    assert response.json()["storefrontToken"] == "sf_token"

    missing = api_client.get("/api/stores/does-not-exist")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Store not found"


def test_update_store_changes_only_supplied_fields(api_client, db_session):
    created = _create_store(api_client, notes="first")

    response = api_client.put(
        f"/api/stores/{created['id']}",
        json={"adminApiToken": "shpat_rotated", "storeUrl": "https://renamed.myshopify.com/"},
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated["adminApiToken"] == "shpat_rotated"
    assert updated["storeUrl"] == "renamed.myshopify.com"
    assert updated["name"] == "Dev Store"
    assert updated["notes"] == "first"


def test_setting_active_store_deactivates_the_previous_one(api_client, db_session):
    first = _create_store(api_client, name="First")
    second = _create_store(api_client, name="Second")

    assert api_client.put(f"/api/stores/{first['id']}", json={"isActive": True}).status_code == 200
    response = api_client.put(f"/api/stores/{second['id']}", json={"isActive": True})
    assert response.status_code == 200
    assert response.json()["isActive"] is True

    stores = {store["name"]: store for store in api_client.get("/api/stores").json()}
    assert stores["First"]["isActive"] is False
    assert stores["Second"]["isActive"] is True

    db_session.expire_all()
    active_rows = db_session.scalars(select(StoreCredential).where(StoreCredential.is_active.is_(True))).all()
    assert [row.name for row in active_rows] == ["Second"]


def test_activating_store_with_colliding_name_and_url_reports_duplicate(api_client, db_session):
    _create_store(api_client, name="First", storeUrl="first.myshopify.com")
    second = _create_store(api_client, name="Second", storeUrl="second.myshopify.com")

    response = api_client.put(
        f"/api/stores/{second['id']}",
        json={"name": "First", "storeUrl": "first.myshopify.com", "isActive": True},
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "A store with this name and URL already exists"

    db_session.expire_all()
    row = db_session.get(StoreCredential, second["id"])
    assert row.name == "Second"
    assert row.is_active is False


def test_single_active_violation_is_told_apart_from_duplicates():
    sqlite_active = IntegrityError("UPDATE", {}, Exception("UNIQUE constraint failed: store_credentials.is_active"))
    postgres_active = IntegrityError(
        "UPDATE",
        {},
        Exception('duplicate key value violates unique constraint "uq_store_credentials_single_active"'),
    )
    duplicate = IntegrityError(
        "UPDATE",
        {},
        Exception("UNIQUE constraint failed: store_credentials.store_url, store_credentials.name"),
    )

    assert _violates_single_active(sqlite_active) is True
    assert _violates_single_active(postgres_active) is True
    assert _violates_single_active(duplicate) is False


def test_repository_activate_keeps_a_single_active_row(db_session):
    repository = StoreCredentialsRepository(db_session)
    rows = [
        repository.add(
            StoreCredential(
                name=f"Store {index}",
                store_url=f"store-{index}.myshopify.com",
                admin_api_token="shpat",
                scopes="read_themes",
                api_version="2025-01",
            )
        )
        for index in range(3)
    ]

    for row in rows:
        repository.activate(row)
        db_session.commit()

    active = repository.get_active()
    assert active is not None
    assert active.id == rows[-1].id
    assert sum(1 for row in repository.list_all() if row.is_active) == 1


def test_delete_store_removes_row(api_client, db_session):
    created = _create_store(api_client)

    response = api_client.delete(f"/api/stores/{created['id']}")
    assert response.status_code == 200
    assert response.json() == {"success": True}

    assert api_client.get(f"/api/stores/{created['id']}").status_code == 404
    assert api_client.delete(f"/api/stores/{created['id']}").status_code == 404


def test_register_store_upserts_by_app_name_and_url(api_client, db_session):
    payload = {
        "appName": "test-theme-modifier-app",
        "storeUrl": "https://dev-store.myshopify.com",
        "adminApiToken": "shpat_first",
        "scopes": "read_themes",
    }
    first = api_client.post("/api/stores/register", json=payload)
    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["message"] == "Credentials registered successfully"

    payload.update(adminApiToken="shpat_second", scopes="read_themes,write_themes", storeUrl="dev-store.myshopify.com")
    second = api_client.post("/api/stores/register", json=payload)
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]

    db_session.expire_all()
    rows = db_session.scalars(select(StoreCredential)).all()
    assert len(rows) == 1
    assert rows[0].store_url == "dev-store.myshopify.com"
    assert rows[0].admin_api_token == "shpat_second"
    assert rows[0].scopes == "read_themes,write_themes"


def test_register_store_requires_token_fields(api_client, db_session):
    response = api_client.post(
        "/api/stores/register",
        json={"appName": "app", "storeUrl": "dev-store.myshopify.com", "adminApiToken": ""},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields: adminApiToken, scopes"


def test_pages_render(api_client, db_session):
    _create_store(api_client)

    for path in ("/", "/stores", "/stores/new", "/themes"):
        response = api_client.get(path)
        assert response.status_code == 200, path
        assert "text/html" in response.headers["content-type"]


def test_health(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
