import json

from bson import ObjectId

from ecopromise.services import notification_service


def test_inbox_lists_newest_first_with_unread_count(client, alice, bob, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]
    client.post(f"/api/commitments/{cid}/like", headers=bob)

    inbox = client.get("/api/notifications", headers=alice).json()["data"]
    assert inbox["unread_count"] == 2
    assert {n["type"] for n in inbox["notifications"]} == {"badge", "like"}

    like = next(n for n in inbox["notifications"] if n["type"] == "like")
    assert "Bob Eco" in like["message"]
    assert like["link"] == f"/commitments/{cid}"


def test_mark_one_and_all_read(client, alice, bob, make_commitment):
    cid = make_commitment(alice)["commitment"]["id"]
    client.post(f"/api/commitments/{cid}/like", headers=bob)
    client.post(f"/api/commitments/{cid}/comments", json={"text": "Nice one"}, headers=bob)

    notifications = client.get("/api/notifications", headers=alice).json()["data"]["notifications"]
    first = notifications[0]["id"]

    read = client.patch(f"/api/notifications/{first}/read", headers=alice).json()["data"]["notification"]
    assert read["read"] is True

    unread = client.get("/api/notifications", params={"unread_only": True}, headers=alice).json()["data"]
    assert len(unread["notifications"]) == 2
    assert unread["unread_count"] == 2

    assert client.patch("/api/notifications/read-all", headers=alice).json()["data"] == {"modified": 2}
    assert client.get("/api/notifications", headers=alice).json()["data"]["unread_count"] == 0


def test_cannot_read_someone_elses_notification(client, alice, bob, make_commitment):
    make_commitment(alice)
    notification = client.get("/api/notifications", headers=alice).json()["data"]["notifications"][0]

    resp = client.patch(f"/api/notifications/{notification['id']}/read", headers=bob)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Notification not found"
    assert client.patch(f"/api/notifications/{ObjectId()}/read", headers=alice).status_code == 404


class _RecordingRedis:
    def __init__(self):
        self.published = []

    def publish(self, channel, message):
        self.published.append((channel, json.loads(message)))


def test_new_notifications_are_published_to_the_user_channel(client, alice, bob, user_id, make_commitment, monkeypatch):
    recorder = _RecordingRedis()
    monkeypatch.setattr(notification_service, "get_redis", lambda: recorder)

    cid = make_commitment(alice)["commitment"]["id"]
    client.post(f"/api/commitments/{cid}/like", headers=bob)

    channels = {channel for channel, _ in recorder.published}
    assert channels == {f"notifications:{user_id(alice)}"}
    assert [payload["type"] for _, payload in recorder.published] == ["badge", "like"]
