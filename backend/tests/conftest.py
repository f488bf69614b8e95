import mongomock
import pytest
from fastapi.testclient import TestClient

from ecopromise.main import app
from ecopromise.core.config import settings
from ecopromise.core.db import get_db
from ecopromise.core.security import create_bridge_token
from ecopromise.services import ai_service


@pytest.fixture
def db():
    return mongomock.MongoClient()["ecopromise_test"]


@pytest.fixture(autouse=True)
def offline_settings(monkeypatch):
    # Keyword heuristics instead of a live model, no Redis fan-out
    monkeypatch.setattr(settings, "AI_API_KEY", "")
    monkeypatch.setattr(settings, "REDIS_URL", None)
    monkeypatch.setattr(ai_service, "_ai_client", None)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(email, name=None, sub=None):
    token = create_bridge_token(sub=sub or f"google-{email}", email=email, name=name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice():
    return bearer("alice@example.com", "Alice Green")


@pytest.fixture
def bob():
    return bearer("bob@example.com", "Bob Eco")


@pytest.fixture
def carol():
    return bearer("carol@example.com", "Carol Leaf")


@pytest.fixture
def user_id(client):
    """Signs the caller in (creating the user on first sight) and returns their id."""
    def _user_id(headers):
        resp = client.get("/api/users/me", headers=headers)
        assert resp.status_code == 200
        return resp.json()["data"]["user"]["id"]
    return _user_id


@pytest.fixture
def make_commitment(client):
    def _make(headers, text="I will cycle to work every day instead of driving", **extra):
        resp = client.post("/api/commitments", json={"text": text, **extra}, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]
    return _make


@pytest.fixture
def make_org(client):
    def _make(headers, name="Green Corp", org_type="company"):
        resp = client.post("/api/organizations", json={"name": name, "type": org_type}, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["organization"]
    return _make


class _Completions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error

    def create(self, **kwargs):
        if self.error:
            raise self.error
        message = type("Message", (), {"content": self.content})
        choice = type("Choice", (), {"message": message})
        return type("Response", (), {"choices": [choice]})


class _FakeClient:
    def __init__(self, completions):
        self.chat = type("Chat", (), {"completions": completions})


@pytest.fixture
def model_answers(monkeypatch):
    """Installs a chat client that answers every prompt with the same content (or raises)."""
    def _install(content=None, error=None):
        monkeypatch.setattr(ai_service, "_ai_client", _FakeClient(_Completions(content, error)))
    return _install
