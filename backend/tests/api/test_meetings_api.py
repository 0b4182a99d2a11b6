import pytest

from tests.helpers import auth_headers


@pytest.fixture
def pair(make_user, make_event, add_participant):
    event = make_event()
    alice = make_user("Alice")
    bob = make_user("Bob")
    add_participant(event, alice)
    add_participant(event, bob)
    return event, alice, bob


def _request_meeting(client, event, requester, receiver):
    response = client.post(
        f"/api/events/{event.id}/meetings",
        json={"receiver_id": str(receiver.id), "message": "Coffee?"},
        headers=auth_headers(requester),
    )
    assert response.status_code == 201
    return response.json()


def test_meeting_request_accept_and_chat(client, pair):
    event, alice, bob = pair
    meeting = _request_meeting(client, event, alice, bob)
    base = f"/api/events/{event.id}/meetings/{meeting['id']}"

    received = client.get(f"/api/events/{event.id}/meetings", headers=auth_headers(bob)).json()
    assert received[0]["is_received"] is True
    assert received[0]["other_profile"]["full_name"] == "Alice"
    assert received[0]["chat_available"] is False

    early = client.post(f"{base}/messages", json={"content": "hi"}, headers=auth_headers(alice))
    assert early.status_code == 409
    assert early.json()["reason"] == "chat_unavailable"

    not_yours = client.patch(base, json={"status": "accepted"}, headers=auth_headers(alice))
    assert not_yours.status_code == 403

    accepted = client.patch(base, json={"status": "accepted"}, headers=auth_headers(bob))
    assert accepted.json()["status"] == "accepted"

    sent = client.post(f"{base}/messages", json={"content": "  See you at 3  "}, headers=auth_headers(alice))
    assert sent.status_code == 201
    assert sent.json()["content"] == "See you at 3"

    page = client.get(f"{base}/messages", headers=auth_headers(bob)).json()
    assert [m["content"] for m in page["messages"]] == ["See you at 3"]
    assert page["has_more"] is False


def test_duplicate_request_is_rejected(client, pair):
    event, alice, bob = pair
    _request_meeting(client, event, alice, bob)

    response = client.post(
        f"/api/events/{event.id}/meetings",
        json={"receiver_id": str(alice.id)},
        headers=auth_headers(bob),
    )

    assert response.status_code == 409
    assert response.json()["reason"] == "duplicate_meeting"


def test_outsider_cannot_request(client, pair, make_user):
    event, alice, _ = pair
    outsider = make_user()

    response = client.post(
        f"/api/events/{event.id}/meetings",
        json={"receiver_id": str(alice.id)},
        headers=auth_headers(outsider),
    )

    assert response.status_code == 403


def test_read_receipts_and_notifications(client, pair):
    event, alice, bob = pair
    meeting = _request_meeting(client, event, alice, bob)
    client.patch(
        f"/api/events/{event.id}/meetings/{meeting['id']}",
        json={"status": "accepted"},
        headers=auth_headers(bob),
    )
    client.post(
        f"/api/events/{event.id}/meetings/{meeting['id']}/messages",
        json={"content": "hello"},
        headers=auth_headers(alice),
    )

    assert client.get("/api/notifications/unread-count", headers=auth_headers(bob)).json() == {"count": 2}
    unseen = client.get(f"/api/meetings/{meeting['id']}/read-receipt", headers=auth_headers(alice)).json()
    assert unseen["lastReadAt"] is None

    marked = client.post(f"/api/meetings/{meeting['id']}/read-receipt", headers=auth_headers(bob))
    assert marked.status_code == 200

    seen = client.get(f"/api/meetings/{meeting['id']}/read-receipt", headers=auth_headers(alice)).json()
    assert seen["lastReadAt"] == marked.json()["lastReadAt"]
    # reading the chat clears its message notifications but not the request
    assert client.get("/api/notifications/unread-count", headers=auth_headers(bob)).json() == {"count": 1}

    listing = client.get("/api/notifications", headers=auth_headers(bob)).json()
    types = {item["notification_type"]: item["is_read"] for item in listing["items"]}
    assert types == {"meeting_chat": True, "meeting_request": False}

    request_id = next(i["id"] for i in listing["items"] if i["notification_type"] == "meeting_request")
    read = client.patch(f"/api/notifications/{request_id}/read", headers=auth_headers(bob))
    assert read.json()["is_read"] is True
    assert client.patch(f"/api/notifications/{request_id}/read", headers=auth_headers(alice)).status_code == 404


def test_mark_all_read(client, pair):
    event, alice, bob = pair
    _request_meeting(client, event, alice, bob)

    response = client.patch("/api/notifications/mark-all-read", headers=auth_headers(bob))

    assert response.json() == {"marked": 1}
    assert client.get("/api/notifications/unread-count", headers=auth_headers(bob)).json() == {"count": 0}
    unread = client.get("/api/notifications", params={"unread_only": True}, headers=auth_headers(bob))
    assert unread.json()["items"] == []
