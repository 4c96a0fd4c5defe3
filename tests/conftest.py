"""Pytest configuration and fixtures."""

import uuid

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings, get_settings
from database import ensure_indexes, get_db
from main import app
from security import TokenService

TEST_SECRET = "test-signing-secret"


@pytest.fixture
def db():
    """Fresh in-memory Mongo database with the production indexes."""
    database = mongomock.MongoClient()[f"catalog_test_{uuid.uuid4().hex}"]
    ensure_indexes(database)
    return database


@pytest.fixture
def settings():
    return Settings(
        database_url="mongodb://localhost:27017",
        database_name="catalog_test",
        jwt_secret=TEST_SECRET,
    )


@pytest.fixture
def tokens():
    return TokenService(TEST_SECRET)


@pytest.fixture
def client(db, settings):
    """API client wired to the in-memory database."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


def signup_and_login(client, mobile="9000000001", password="password123", name="Asha"):
    """Create an account through the API and return auth headers for it."""
    response = client.post(
        "/api/users/signup",
        json={"name": name, "mobile": mobile, "password": password},
    )
    assert response.status_code == 201, response.text
    response = client.post("/api/users/login", json={"mobile": mobile, "password": password})
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    return {"token": data["token"], "userid": data["user"]["id"]}


@pytest.fixture
def auth_headers(client):
    return signup_and_login(client)


@pytest.fixture
def other_headers(client):
    return signup_and_login(client, mobile="9000000002", name="Ravi")


@pytest.fixture
def make_user(client):
    def _make(**kwargs):
        return signup_and_login(client, **kwargs)
    return _make


@pytest.fixture(autouse=True)
def _fast_password_hashing(monkeypatch):
    """Keep the hashing scheme but drop the work factor so tests stay quick."""
    monkeypatch.setattr("security.PASSWORD_ITERATIONS", 1000)
