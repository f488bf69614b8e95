from datetime import datetime

from bson import ObjectId

from ecopromise.services import ai_service


def test_create_commitment_interprets_and_plans_milestones(client, db, alice, make_commitment):
    data = make_commitment(alice)

    commitment = data["commitment"]
    assert commitment["category"] == "transport"
    assert commitment["frequency"] == "daily"
    assert commitment["status"] == "active"
    assert commitment["estimated_carbon_savings"] == {"per_period": 2.6, "total": 78.0, "unit": "kg CO2"}
    assert commitment["user"]["name"] == "Alice Green"
    assert data["interpretation"]["category"] == "transport"
    assert data["carbon_estimate"]["total"] == 78.0

    milestones = data["milestones"]
    assert [m["target_value"] for m in milestones] == [1, 8, 15, 30]
    assert milestones[-1]["title"] == "Commitment complete"
    assert all(m["status"] == "pending" for m in milestones)

    user = db.users.find_one({"email": "alice@example.com"})
    assert user["total_commitments"] == 1
    assert "first_commitment" in user["badges"]
    assert db.notifications.count_documents({"type": "badge"}) == 1


def test_create_commitment_validates_text(client, alice):
    resp = client.post("/api/commitments", json={"text": ""}, headers=alice)
    assert resp.status_code == 400


def test_ai_failure_surfaces_as_500(client, alice, monkeypatch, db):
    def boom(text):
        raise ai_service.AIServiceError("upstream timeout")

    monkeypatch.setattr(ai_service, "interpret_commitment", boom)
    resp = client.post("/api/commitments", json={"text": "Plant trees"}, headers=alice)
    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "message": "Failed to create commitment"}
    assert db.commitments.count_documents({}) == 0


def test_model_answer_without_an_object_fails_creation_cleanly(client, db, alice, model_answers):
    model_answers('["transport"]')
    resp = client.post("/api/commitments", json={"text": "Bike to work"}, headers=alice)
    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "message": "Failed to create commitment"}
    assert db.commitments.count_documents({}) == 0
    assert db.milestones.count_documents({}) == 0


def test_out_of_range_model_numbers_never_reach_storage(client, db, alice, model_answers):
    model_answers(
        '{"category": "transport", "frequency": "daily", "per_period_kg": "inf",'
        ' "milestones": [{"title": "Forever", "target_value": 1e400}]}'
    )
    resp = client.post("/api/commitments", json={"text": "Bike to work"}, headers=alice)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["commitment"]["estimated_carbon_savings"]["per_period"] == 2.6
    assert [m["target_value"] for m in data["milestones"]] == [1, 8, 15, 30]

    assert client.get("/api/commitments").status_code == 200
    assert client.get("/api/wall").status_code == 200


def test_private_commitment_visibility(client, alice, bob, make_commitment):
    private = make_commitment(alice, visibility="private")["commitment"]

    assert client.get(f"/api/commitments/{private['id']}", headers=alice).status_code == 200

    resp = client.get(f"/api/commitments/{private['id']}", headers=bob)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Not authorized to view this commitment"
    assert client.get(f"/api/commitments/{private['id']}").status_code == 403


def test_get_commitment_errors(client):
    assert client.get("/api/commitments/123").status_code == 400
    resp = client.get(f"/api/commitments/{ObjectId()}")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Commitment not found"


def test_feed_shows_public_commitments_newest_first(client, db, alice, bob, make_commitment):
    first = make_commitment(alice)["commitment"]
    make_commitment(alice, text="Secret plan to unplug chargers", visibility="private")
    second = make_commitment(bob, text="I will take shorter showers daily")["commitment"]
    db.commitments.update_one({"_id": ObjectId(first["id"])}, {"$set": {"created_at": datetime(2024, 5, 1)}})
    db.commitments.update_one({"_id": ObjectId(second["id"])}, {"$set": {"created_at": datetime(2024, 5, 2)}})

    resp = client.get("/api/commitments")
    data = resp.json()["data"]
    assert [c["id"] for c in data["commitments"]] == [second["id"], first["id"]]
    assert data["pagination"] == {"page": 1, "limit": 20, "total": 2, "pages": 1}

    water = client.get("/api/commitments", params={"category": "water"}).json()["data"]["commitments"]
    assert [c["id"] for c in water] == [second["id"]]


def test_user_commitments_resolution(client, alice, bob, user_id, make_commitment):
    alice_id = user_id(alice)
    make_commitment(alice)
    make_commitment(alice, text="Secret plan to unplug chargers", visibility="private")

    mine = client.get("/api/commitments/user/me", headers=alice).json()["data"]
    assert mine["count"] == 2

    by_email = client.get("/api/commitments/user/alice@example.com", headers=alice).json()["data"]
    assert by_email["count"] == 2

    as_bob = client.get(f"/api/commitments/user/{alice_id}", headers=bob).json()["data"]
    assert as_bob["count"] == 1

    anonymous_me = client.get("/api/commitments/user/me")
    assert anonymous_me.status_code == 401


def test_update_and_delete_are_owner_only(client, db, alice, bob, make_commitment):
    data = make_commitment(alice)
    cid = data["commitment"]["id"]

    resp = client.patch(f"/api/commitments/{cid}", json={"status": "completed"}, headers=bob)
    assert resp.status_code == 403

    resp = client.patch(f"/api/commitments/{cid}", json={"status": "completed", "visibility": "private"}, headers=alice)
    assert resp.status_code == 200
    assert resp.json()["data"]["commitment"]["status"] == "completed"
    assert resp.json()["data"]["commitment"]["visibility"] == "private"

    client.post(f"/api/commitments/{cid}/comments", json={"text": "Nice"}, headers=alice)
    assert client.delete(f"/api/commitments/{cid}", headers=bob).status_code == 403
    assert client.delete(f"/api/commitments/{cid}", headers=alice).status_code == 200

    oid = ObjectId(cid)
    assert db.commitments.count_documents({"_id": oid}) == 0
    assert db.milestones.count_documents({"commitment_id": oid}) == 0
    assert db.comments.count_documents({"commitment_id": oid}) == 0
    assert db.users.find_one({"email": "alice@example.com"})["total_commitments"] == 0


def test_like_is_a_toggle(client, db, alice, bob, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]

    liked = client.post(f"/api/commitments/{cid}/like", headers=bob).json()["data"]
    assert liked == {"liked": True, "like_count": 1}
    assert db.notifications.count_documents({"type": "like"}) == 1

    fetched = client.get(f"/api/commitments/{cid}", headers=bob).json()["data"]["commitment"]
    assert fetched["liked_by_me"] is True

    unliked = client.post(f"/api/commitments/{cid}/like", headers=bob).json()["data"]
    assert unliked == {"liked": False, "like_count": 0}
    assert db.commitments.find_one({"_id": ObjectId(cid)})["likes"] == []


def test_self_like_does_not_notify(client, db, alice, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]
    client.post(f"/api/commitments/{cid}/like", headers=alice)
    assert db.notifications.count_documents({"type": "like"}) == 0


def test_comments(client, db, alice, bob, carol, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]

    resp = client.post(f"/api/commitments/{cid}/comments", json={"text": "Great idea!"}, headers=bob)
    assert resp.status_code == 201
    comment = resp.json()["data"]["comment"]
    assert comment["user"]["name"] == "Bob Eco"
    assert db.notifications.count_documents({"type": "comment"}) == 1

    client.post(f"/api/commitments/{cid}/comments", json={"text": "Me too"}, headers=carol)
    listed = client.get(f"/api/commitments/{cid}/comments").json()["data"]["comments"]
    assert sorted(c["text"] for c in listed) == ["Great idea!", "Me too"]
    assert db.commitments.find_one({"_id": ObjectId(cid)})["comment_count"] == 2

    assert client.delete(f"/api/commitments/{cid}/comments/{comment['id']}", headers=carol).status_code == 403
    assert client.delete(f"/api/commitments/{cid}/comments/{comment['id']}", headers=alice).status_code == 200
    assert db.commitments.find_one({"_id": ObjectId(cid)})["comment_count"] == 1


def test_progress_advances_milestones_and_stats(client, db, alice, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]

    resp = client.post(f"/api/commitments/{cid}/progress", json={"count": 8, "note": "First week"}, headers=alice)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["progress"]["delta_carbon_saved"] == 20.8
    assert data["commitment"]["actual_carbon_saved"] == 20.8
    assert data["commitment"]["progress_count"] == 1
    assert [m["target_value"] for m in data["completed_milestones"]] == [1, 8]
    assert set(data["new_badges"]) == {"carbon_10kg", "first_milestone"}

    milestones = client.get(f"/api/commitments/{cid}/milestones").json()["data"]["milestones"]
    assert [m["status"] for m in milestones] == ["completed", "completed", "in_progress", "in_progress"]
    assert milestones[2]["current_value"] == 8

    user = db.users.find_one({"email": "alice@example.com"})
    assert user["total_carbon_saved"] == 20.8
    assert user["completed_milestones"] == 2
    assert db.notifications.count_documents({"type": "milestone"}) == 2

    history = client.get(f"/api/commitments/{cid}/progress").json()["data"]["progress"]
    assert len(history) == 1 and history[0]["note"] == "First week"


def test_progress_rules(client, alice, bob, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]

    assert client.post(f"/api/commitments/{cid}/progress", json={"count": 1}, headers=bob).status_code == 403
    assert client.post(f"/api/commitments/{cid}/progress", json={"count": 0}, headers=alice).status_code == 400

    client.patch(f"/api/commitments/{cid}", json={"status": "abandoned"}, headers=alice)
    resp = client.post(f"/api/commitments/{cid}/progress", json={"count": 1}, headers=alice)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Progress can only be logged on active commitments"


def test_member_progress_counts_towards_organization(client, db, alice, make_org, make_commitment):
    org = make_org(alice)
    cid = make_commitment(alice)["commitment"]["id"]

    client.post(f"/api/commitments/{cid}/progress", json={"count": 8}, headers=alice)
    assert db.organizations.find_one({"_id": ObjectId(org["id"])})["total_org_carbon_saved"] == 20.8
