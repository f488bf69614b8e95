import pytest
from bson import ObjectId


@pytest.fixture
def moderator(db, carol, user_id):
    db.users.update_one({"_id": ObjectId(user_id(carol))}, {"$set": {"role": "admin"}})
    return carol


def _flag(client, headers, content_type, content_id, reason="spam"):
    return client.post("/api/flags", json={"content_type": content_type, "content_id": content_id, "reason": reason},
                       headers=headers)


def test_flag_content_once(client, alice, bob, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]

    resp = _flag(client, bob, "commitment", cid)
    assert resp.status_code == 201
    flag = resp.json()["data"]["flag"]
    assert flag["status"] == "open"
    assert flag["reason"] == "spam"

    again = _flag(client, bob, "commitment", cid)
    assert again.status_code == 400
    assert again.json()["message"] == "You have already flagged this content"


def test_flag_missing_content(client, bob):
    resp = _flag(client, bob, "comment", str(ObjectId()))
    assert resp.status_code == 404
    assert resp.json()["message"] == "Comment not found"


def test_listing_flags_requires_system_admin(client, bob, moderator):
    resp = client.get("/api/flags", headers=bob)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Insufficient permissions"
    assert client.get("/api/flags", headers=moderator).json()["data"]["flags"] == []


def test_dismiss_flag_keeps_content(client, db, alice, bob, moderator, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]
    flag = _flag(client, bob, "commitment", cid).json()["data"]["flag"]

    resolved = client.patch(f"/api/flags/{flag['id']}/resolve", json={"action": "resolve"}, headers=moderator)
    assert resolved.json()["data"]["flag"]["resolution"] == "dismissed"
    assert db.commitments.count_documents({"_id": ObjectId(cid)}) == 1

    again = client.patch(f"/api/flags/{flag['id']}/resolve", json={}, headers=moderator)
    assert again.json()["message"] == "Flag has already been resolved"


def test_delete_action_removes_commitment_and_closes_other_flags(client, db, alice, bob, moderator, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]
    first = _flag(client, bob, "commitment", cid).json()["data"]["flag"]
    _flag(client, moderator, "commitment", cid, reason="misinformation")

    resp = client.patch(f"/api/flags/{first['id']}/resolve", json={"action": "delete"}, headers=moderator)
    assert resp.json()["data"]["flag"]["resolution"] == "content_removed"

    assert db.commitments.count_documents({}) == 0
    assert db.milestones.count_documents({}) == 0
    assert db.users.find_one({"email": "alice@example.com"})["total_commitments"] == 0
    assert db.flags.count_documents({"status": "open"}) == 0


def test_delete_action_removes_comment(client, db, alice, bob, moderator, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]
    comment = client.post(f"/api/commitments/{cid}/comments", json={"text": "Buy my stuff"}, headers=bob).json()["data"]["comment"]
    flag = _flag(client, alice, "comment", comment["id"]).json()["data"]["flag"]

    client.patch(f"/api/flags/{flag['id']}/resolve", json={"action": "delete"}, headers=moderator)
    assert db.comments.count_documents({}) == 0
    assert db.commitments.find_one({"_id": ObjectId(cid)})["comment_count"] == 0


def test_resolve_missing_flag(client, moderator):
    resp = client.patch(f"/api/flags/{ObjectId()}/resolve", json={}, headers=moderator)
    assert resp.status_code == 404
