from datetime import timedelta

from bson import ObjectId

from ecopromise.models.common import utcnow


def _window(start_days, end_days):
    now = utcnow()
    return {
        "start_date": (now + timedelta(days=start_days)).isoformat(),
        "end_date": (now + timedelta(days=end_days)).isoformat(),
    }


def _create(client, headers, title="Car-free week", start_days=-1, end_days=6, **extra):
    resp = client.post("/api/challenges", json={"title": title, **_window(start_days, end_days), **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["challenge"]


def test_create_challenge_auto_joins_creator(client, alice, user_id):
    challenge = _create(client, alice, target_carbon_savings=100)
    assert challenge["participant_ids"] == [user_id(alice)]
    assert challenge["participant_count"] == 1
    assert challenge["created_by"]["name"] == "Alice Green"


def test_end_date_must_follow_start_date(client, alice):
    resp = client.post("/api/challenges", json={"title": "Backwards", **_window(5, 1)}, headers=alice)
    assert resp.status_code == 400


def test_list_challenges_by_window(client, alice):
    active = _create(client, alice, title="Active one")
    upcoming = _create(client, alice, title="Upcoming one", start_days=3, end_days=10)
    finished = _create(client, alice, title="Finished one", start_days=-10, end_days=-3)
    _create(client, alice, title="Hidden one", visibility="private")

    def ids(status):
        resp = client.get("/api/challenges", params={"status": status})
        return [c["id"] for c in resp.json()["data"]["challenges"]]

    assert ids("active") == [active["id"]]
    assert ids("upcoming") == [upcoming["id"]]
    assert ids("completed") == [finished["id"]]
    assert len(ids("all")) == 3


def test_join_and_leave(client, db, alice, bob):
    challenge = _create(client, alice)

    joined = client.post(f"/api/challenges/{challenge['id']}/join", headers=bob)
    assert joined.status_code == 200
    assert joined.json()["data"]["challenge"]["participant_count"] == 2
    assert db.notifications.count_documents({"type": "challenge"}) == 1

    again = client.post(f"/api/challenges/{challenge['id']}/join", headers=bob)
    assert again.json() == {"status": "fail", "message": "Already joined this challenge"}

    detail = client.get(f"/api/challenges/{challenge['id']}").json()["data"]["challenge"]
    assert sorted(p["name"] for p in detail["participants"]) == ["Alice Green", "Bob Eco"]

    left = client.post(f"/api/challenges/{challenge['id']}/leave", headers=bob)
    assert left.json()["data"]["challenge"]["participant_count"] == 1

    not_in = client.post(f"/api/challenges/{challenge['id']}/leave", headers=bob)
    assert not_in.json()["message"] == "Not a participant of this challenge"


def test_cannot_join_finished_challenge(client, alice, bob):
    finished = _create(client, alice, start_days=-10, end_days=-3)
    resp = client.post(f"/api/challenges/{finished['id']}/join", headers=bob)
    assert resp.status_code == 400
    assert resp.json()["message"] == "This challenge has ended"


def test_missing_challenge(client):
    assert client.get(f"/api/challenges/{ObjectId()}").status_code == 404
    assert client.get("/api/challenges/xyz").status_code == 400


def test_organization_challenges(client, alice, bob, make_org):
    org = make_org(alice)

    resp = client.post(
        "/api/challenges", json={"title": "Office recycling", **_window(-1, 6), "organization_id": org["id"]}, headers=bob
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Not an admin of this organization"

    challenge = _create(client, alice, title="Office recycling", organization_id=org["id"])
    assert challenge["created_by_org_id"] == org["id"]

    listed = client.get(f"/api/organizations/{org['id']}/challenges", headers=alice).json()["data"]
    assert [c["id"] for c in listed["challenges"]] == [challenge["id"]]
    assert listed["pagination"]["total"] == 1

    dashboard = client.get(f"/api/organizations/{org['id']}/dashboard", headers=alice).json()["data"]
    assert dashboard["stats"]["active_challenges"] == 1
