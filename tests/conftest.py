import os

os.environ.setdefault("SESSION_SECRET_KEY", "test-session-key-0123456789abcdef0123456789")
os.environ.setdefault("GATE_TOKEN_KEY", "test-gate-token-key-0123456789abcdef01234567")

import pytest
from fastapi.testclient import TestClient

import GateAuth as gate
from main import app
from routers.ai import get_suggester
from routers.posts import get_forum_store
from tests.fakes import AUTH_PASSWORD, FakeSuggester, FakeVerifier, InMemoryForumStore


@pytest.fixture
def store():
    return InMemoryForumStore()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def suggester():
    return FakeSuggester()


@pytest.fixture
def client(store, verifier, suggester):
    app.dependency_overrides[get_forum_store] = lambda: store
    app.dependency_overrides[gate.get_password_verifier] = lambda: verifier
    app.dependency_overrides[get_suggester] = lambda: suggester
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def gate_headers(client):
    response = client.post("/gate/auth", json={"password": AUTH_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
