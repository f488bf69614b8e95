from datetime import datetime

from bson import ObjectId

from ecopromise.models.common import utcnow
from ecopromise.models.user import UserBase


def test_update_profile(client, alice):
    resp = client.patch(
        "/api/users/me",
        json={"username": "alice_g", "bio": "Cycling everywhere", "sustainability_focus_areas": ["transport"]},
        headers=alice,
    )
    assert resp.status_code == 200
    user = resp.json()["data"]["user"]
    assert user["username"] == "alice_g"
    assert user["bio"] == "Cycling everywhere"
    assert user["sustainability_focus_areas"] == ["transport"]


def test_duplicate_username_is_rejected(client, alice, bob):
    client.patch("/api/users/me", json={"username": "greenie"}, headers=alice)
    resp = client.patch("/api/users/me", json={"username": "greenie"}, headers=bob)
    assert resp.status_code == 400
    assert resp.json() == {"status": "fail", "message": "username already exists"}


def test_invalid_profile_payload_is_a_400(client, alice):
    resp = client.patch("/api/users/me", json={"username": "no spaces allowed"}, headers=alice)
    assert resp.status_code == 400
    assert resp.json()["status"] == "fail"
    assert "username" in resp.json()["message"]


def test_public_profile_hides_email_and_counts_public_commitments(client, alice, user_id, make_commitment):
    uid = user_id(alice)
    make_commitment(alice)
    make_commitment(alice, text="I will compost food waste weekly", visibility="private")

    resp = client.get(f"/api/users/{uid}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert "email" not in data["user"]
    assert data["user"]["total_commitments"] == 2
    assert data["public_commitments"] == 1


def test_public_profile_errors(client):
    assert client.get("/api/users/not-an-id").status_code == 400
    resp = client.get(f"/api/users/{ObjectId()}")
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


def test_leaderboard_orders_by_metric(client, db, alice, bob, user_id):
    alice_id, bob_id = user_id(alice), user_id(bob)
    db.users.update_one({"_id": ObjectId(alice_id)}, {"$set": {"total_carbon_saved": 12.0, "total_commitments": 1}})
    db.users.update_one({"_id": ObjectId(bob_id)}, {"$set": {"total_carbon_saved": 40.0, "total_commitments": 5}})

    by_carbon = client.get("/api/leaderboard").json()["data"]["leaders"]
    assert [u["id"] for u in by_carbon] == [bob_id, alice_id]
    assert "email" not in by_carbon[0]

    top_one = client.get("/api/leaderboard", params={"metric": "commitments", "limit": 1}).json()["data"]["leaders"]
    assert [u["id"] for u in top_one] == [bob_id]


def test_leaderboard_rejects_unknown_metric(client):
    assert client.get("/api/leaderboard", params={"metric": "karma"}).status_code == 400


def test_user_model_accepts_organization_ids():
    org_id = ObjectId()
    assert UserBase(email="dana@example.com", organization_id=str(org_id)).organization_id == org_id
    assert UserBase(email="dana@example.com").model_dump(mode="json")["organization_id"] is None


def test_profiles_describe_earned_badges(client, alice, user_id, make_commitment):
    uid = user_id(alice)
    make_commitment(alice)
    expected = [{
        "key": "first_commitment", "name": "First Promise", "tier": "bronze", "description": "Made your first commitment",
    }]

    assert client.get("/api/users/me", headers=alice).json()["data"]["user"]["badges"] == expected
    assert client.get(f"/api/users/{uid}").json()["data"]["user"]["badges"] == expected
    assert client.get("/api/leaderboard").json()["data"]["leaders"][0]["badges"] == expected


def test_leaderboard_period_only_counts_recently_active_users(client, db, alice, bob, user_id):
    alice_id, bob_id = user_id(alice), user_id(bob)
    db.users.update_one({"_id": ObjectId(alice_id)},
                        {"$set": {"total_carbon_saved": 90.0, "updated_at": datetime(2020, 1, 1)}})
    db.users.update_one({"_id": ObjectId(bob_id)}, {"$set": {"total_carbon_saved": 10.0, "updated_at": utcnow()}})

    monthly = client.get("/api/leaderboard", params={"period": "month"}).json()["data"]
    assert monthly["period"] == "month"
    assert [u["id"] for u in monthly["leaders"]] == [bob_id]

    all_time = client.get("/api/leaderboard", params={"period": "all"}).json()["data"]["leaders"]
    assert [u["id"] for u in all_time] == [alice_id, bob_id]
