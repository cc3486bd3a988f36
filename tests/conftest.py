from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException, Request
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.core.dependencies import get_auth_service, get_current_user
from app.modules.auth.service import AuthService
from app.main import create_app
from app.modules.models.schemas import ModelDeclaration
from app.modules.models.store import FileModelStore

# Bearer token -> identity the fake verifier hands out
USERS = {
    "admin-token": {"id": "admin-1", "email": "admin@example.com", "role": "Admin"},
    "manager-token": {"id": "u1", "email": "manager@example.com", "role": "Manager"},
    "manager2-token": {"id": "u2", "email": "manager2@example.com", "role": "Manager"},
    "viewer-token": {"id": "viewer-1", "email": "viewer@example.com", "role": "Viewer"},
    "guest-token": {"id": "guest-1", "email": "guest@example.com", "role": "Guest"},
}


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture()
def store(tmp_path):
    return FileModelStore(tmp_path / "models")


@pytest.fixture()
def invoice_declaration():
    return ModelDeclaration.model_validate({
        "name": "Invoice",
        "fields": [
            {"name": "title", "type": "string", "required": True},
            {"name": "amount", "type": "number", "default": 0},
            {"name": "paid", "type": "boolean", "default": False},
            {"name": "due", "type": "date"},
            {"name": "meta", "type": "json"},
        ],
        "owner_field": "createdBy",
        "policy": {
            "Admin": ["all"],
            "Manager": ["create", "read", "update"],
            "Viewer": ["read"],
        },
    })


@pytest.fixture()
def app(store, engine):
    application = create_app(model_store=store, engine=engine)

    def fake_current_user(request: Request):
        header = request.headers.get("Authorization", "")
        token = header.replace("Bearer ", "", 1)
        if token not in USERS:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        return USERS[token]

    application.dependency_overrides[get_current_user] = fake_current_user
    application.dependency_overrides[get_auth_service] = lambda: AuthService(MagicMock())
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c
