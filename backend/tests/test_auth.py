from datetime import timedelta

from jose import jwt

from ecopromise.core.config import settings
from ecopromise.core.security import create_bridge_token, decode_bridge_token
from conftest import bearer


def test_missing_token_is_rejected(client):
    resp = client.get("/api/users/me")
    assert resp.status_code == 401
    assert resp.json() == {"status": "fail", "message": "No token provided"}


def test_non_bearer_scheme_is_treated_as_missing(client):
    resp = client.get("/api/users/me", headers={"Authorization": "Basic abc"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "No token provided"


def test_bad_signature_and_expired_tokens(client):
    forged = jwt.encode({"sub": "x", "email": "x@example.com"}, "not-the-secret", algorithm="HS256")
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid or expired token"

    expired = create_bridge_token("x", "x@example.com", expires_delta=timedelta(seconds=-10))
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid or expired token"


def test_payload_without_email_is_rejected(client):
    token = jwt.encode({"sub": "only-sub"}, settings.NEXTAUTH_SECRET, algorithm=settings.ALGORITHM)
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token payload"


def test_first_sight_creates_user_once(client, db):
    headers = bearer("New.Person@Example.com", "New Person", sub="google-123")
    first = client.get("/api/users/me", headers=headers)
    second = client.get("/api/users/me", headers=headers)

    assert first.status_code == 200
    user = first.json()["data"]["user"]
    assert user["email"] == "new.person@example.com"
    assert user["name"] == "New Person"
    assert user["role"] == "user"
    assert user["level"] == 1
    assert second.json()["data"]["user"]["id"] == user["id"]
    assert db.users.count_documents({}) == 1
    assert db.users.find_one({})["google_id"] == "google-123"


def test_mixed_case_legacy_row_is_reused(client, db):
    legacy_id = db.users.insert_one({
        "email": "Dana@Example.com",
        "google_id": "google-dana",
        "name": "Dana",
    }).inserted_id

    resp = client.get("/api/users/me", headers=bearer("dana@example.com", "Dana"))
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["id"] == str(legacy_id)
    assert db.users.count_documents({}) == 1


def test_missing_name_defaults_to_user(client):
    resp = client.get("/api/users/me", headers=bearer("anon@example.com"))
    assert resp.json()["data"]["user"]["name"] == "User"


def test_optional_auth_does_not_create_users(client, db):
    resp = client.get("/api/commitments", headers=bearer("lurker@example.com", "Lurker"))
    assert resp.status_code == 200
    assert db.users.count_documents({}) == 0


def test_optional_auth_ignores_invalid_token(client):
    resp = client.get("/api/commitments", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 200


def test_bridge_token_round_trip_carries_profile_claims():
    token = create_bridge_token("sub-1", "a@example.com", name="A", picture="https://example.com/a.png")
    claims = decode_bridge_token(token)
    assert claims["sub"] == "sub-1"
    assert claims["picture"] == "https://example.com/a.png"
    assert claims["exp"] > claims["iat"]


def test_unknown_route_and_health(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json() == {"status": "fail", "message": "Route /api/nope not found"}

    health = client.get("/health")
    assert health.json() == {"status": "ok", "version": settings.VERSION}
