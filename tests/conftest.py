import pytest
from fastapi.testclient import TestClient

from config import Settings, get_settings
from database import MemoryStore, get_store
from main import app

TEST_SECRET = "test-secret"

USER_A = {"name": "A", "email": "a@x.com", "password": "p1", "phone": "1", "age": 30, "address": "addr"}
USER_B = {"name": "B", "email": "b@x.com", "password": "p2", "phone": "2", "age": 40, "address": "elsewhere"}
TASK = {
    "title": "t",
    "content": "c",
    "category": "cat",
    "priority": "hi",
    "tags": "x",
    "status": "pending",
    "date": "2024-01-01",
}


@pytest.fixture
def settings():
    return Settings(secret_key=TEST_SECRET, debug_endpoints=False)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def client(settings, store):
    """Test client wired to an in-memory store."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def register(client, user):
    response = client.post("/register", json=user)
    assert response.status_code == 201, response.text
    return response.json()["token"]


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token_a(client):
    return register(client, USER_A)


@pytest.fixture
def token_b(client):
    return register(client, USER_B)
