import pytest
from sqlalchemy import inspect

from app.modules.models.schemas import ModelDeclaration
from tests.conftest import auth


@pytest.fixture()
def published(client, invoice_declaration):
    """Save and publish the Invoice model through the admin API"""
    body = invoice_declaration.model_dump(mode="json")
    assert client.post("/api/models", json=body, headers=auth("admin-token")).status_code == 200
    response = client.post("/api/models/Invoice/publish", headers=auth("admin-token"))
    assert response.status_code == 200
    return response.json()


def _create(client, token="manager-token", **values):
    payload = {"title": "Consulting", **values}
    return client.post("/api/invoice", json=payload, headers=auth(token))


def test_publish_creates_table_and_routes(client, engine, published):
    assert published["route"] == "/api/invoice"
    assert "invoices" in inspect(engine).get_table_names()
    assert client.get("/api/invoice", headers=auth("viewer-token")).json() == []


def test_create_forces_owner_field(client, published):
    response = _create(client, createdBy="someone-else", amount=120.5, due="2024-05-01T00:00:00Z")

    assert response.status_code == 201
    record = response.json()
    assert record["createdBy"] == "u1"
    assert record["title"] == "Consulting"
    assert record["amount"] == 120.5
    assert record["paid"] is False
    assert record["id"]
    assert record["created_at"]


def test_create_ignores_client_identifier_and_timestamps(client, published):
    record = _create(client, id="chosen-id", created_at="2000-01-01T00:00:00").json()
    assert record["id"] != "chosen-id"
    assert not record["created_at"].startswith("2000")


def test_create_applies_defaults(client, published):
    record = _create(client).json()
    assert record["amount"] == 0
    assert record["paid"] is False


def test_create_denied_for_viewer(client, published):
    response = _create(client, token="viewer-token")
    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions"


def test_unknown_role_is_denied_everything(client, published):
    record_id = _create(client).json()["id"]
    assert client.get("/api/invoice", headers=auth("guest-token")).status_code == 403
    assert client.get(f"/api/invoice/{record_id}", headers=auth("guest-token")).status_code == 403


def test_invalid_credentials_rejected(client, published):
    assert client.get("/api/invoice", headers=auth("bogus")).status_code == 401


@pytest.mark.parametrize("payload", [
    {"title": "x", "unknown": 1},
    {"title": 42},
    {"title": "x", "amount": "lots"},
    {"title": "x", "paid": "yes"},
    {"title": "x", "due": "tomorrow"},
    {"amount": 10},
])
def test_create_rejects_invalid_payload(client, published, payload):
    response = client.post("/api/invoice", json=payload, headers=auth("manager-token"))
    assert response.status_code == 400


def test_list_newest_first(client, published):
    first = _create(client, title="first").json()
    second = _create(client, title="second").json()

    records = client.get("/api/invoice", headers=auth("viewer-token")).json()
    assert [r["id"] for r in records] == [second["id"], first["id"]]


def test_get_record(client, published):
    created = _create(client, meta={"lines": [1, 2]}).json()

    response = client.get(f"/api/invoice/{created['id']}", headers=auth("viewer-token"))
    assert response.status_code == 200
    assert response.json()["meta"] == {"lines": [1, 2]}


def test_get_missing_record(client, published):
    response = client.get("/api/invoice/does-not-exist", headers=auth("viewer-token"))
    assert response.status_code == 404
    assert response.json()["detail"] == "Record not found"


def test_owner_can_update(client, published):
    created = _create(client).json()

    response = client.put(
        f"/api/invoice/{created['id']}",
        json={"title": "Updated", "paid": True, "id": "hijack", "createdBy": "u2"},
        headers=auth("manager-token"),
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["id"] == created["id"]
    assert updated["title"] == "Updated"
    assert updated["paid"] is True
    assert updated["createdBy"] == "u1"
    assert updated["created_at"] == created["created_at"]
    assert updated["updated_at"] >= created["updated_at"]


def test_non_owner_cannot_update(client, published):
    created = _create(client, token="manager-token").json()

    response = client.put(f"/api/invoice/{created['id']}", json={"title": "Mine now"}, headers=auth("manager2-token"))
    assert response.status_code == 403

    unchanged = client.get(f"/api/invoice/{created['id']}", headers=auth("viewer-token")).json()
    assert unchanged["title"] == "Consulting"


def test_update_missing_record_is_not_found_before_permission(client, published):
    response = client.put("/api/invoice/missing", json={"title": "x"}, headers=auth("viewer-token"))
    assert response.status_code == 404


def test_admin_deletes_foreign_record(client, published):
    created = _create(client).json()

    response = client.delete(f"/api/invoice/{created['id']}", headers=auth("admin-token"))
    assert response.status_code == 200
    assert response.json() == {"message": "Record deleted successfully"}
    assert client.get(f"/api/invoice/{created['id']}", headers=auth("viewer-token")).status_code == 404


def test_manager_without_delete_grant(client, published):
    created = _create(client).json()
    assert client.delete(f"/api/invoice/{created['id']}", headers=auth("manager-token")).status_code == 403


def test_delete_missing_record(client, published):
    assert client.delete("/api/invoice/missing", headers=auth("admin-token")).status_code == 404


def test_declaration_edits_apply_without_republish(client, store, published, invoice_declaration):
    assert _create(client, token="viewer-token").status_code == 403

    data = invoice_declaration.model_dump(mode="json")
    data["policy"]["Viewer"] = ["read", "create"]
    store.save(ModelDeclaration.model_validate(data))

    assert _create(client, token="viewer-token").status_code == 201


def test_storage_failure_is_opaque(client, engine, published):
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE invoices")

    response = client.get("/api/invoice", headers=auth("viewer-token"))
    assert response.status_code == 500
    assert response.json()["detail"] == "Storage operation failed"


def test_models_without_owner_field_skip_ownership(client, engine):
    declaration = {
        "name": "Task",
        "fields": [{"name": "label", "type": "string"}],
        "policy": {"Manager": ["create", "read", "update", "delete"]},
    }
    client.post("/api/models", json=declaration, headers=auth("admin-token"))
    client.post("/api/models/Task/publish", headers=auth("admin-token"))

    created = client.post("/api/task", json={"label": "a"}, headers=auth("manager-token")).json()
    response = client.put(f"/api/task/{created['id']}", json={"label": "b"}, headers=auth("manager2-token"))
    assert response.status_code == 200
    assert client.delete(f"/api/task/{created['id']}", headers=auth("manager2-token")).status_code == 200
