from datetime import timedelta

from sqlmodel import select

from ndrop.models import EventParticipant
from tests.helpers import auth_headers


def test_join_by_code_and_leave(client, session, make_user, make_event):
    event = make_event()
    user = make_user("Joiner")
    headers = auth_headers(user)

    response = client.post("/api/user/join-event", json={"eventCode": event.event_code.lower()}, headers=headers)
    assert response.status_code == 201
    assert response.json()["status"] == "confirmed"
    assert response.json()["profile"]["full_name"] == "Joiner"

    again = client.post("/api/user/join-event", json={"eventId": str(event.id)}, headers=headers)
    assert again.status_code == 409
    assert again.json()["reason"] == "already_joined"

    mine = client.get("/api/user/get-events", headers=headers).json()
    assert [item["id"] for item in mine] == [str(event.id)]
    assert mine[0]["current_participants"] == 1

    left = client.post("/api/user/leave-event", json={"eventId": str(event.id)}, headers=headers)
    assert left.status_code == 200
    assert left.json()["current_participants"] == 0


def test_invalid_code_changes_nothing(client, session, make_user, make_event):
    make_event()
    user = make_user()

    response = client.post("/api/user/join-event", json={"eventCode": "ZZZZZZ"}, headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json()["reason"] == "invalid_code"
    assert session.exec(select(EventParticipant)).all() == []


def test_join_requires_code_or_id(client, make_user):
    response = client.post("/api/user/join-event", json={}, headers=auth_headers(make_user()))
    assert response.status_code == 422


def test_removed_user_cannot_rejoin(client, make_user, make_event, add_participant):
    event = make_event()
    user = make_user()
    add_participant(event, user, status="removed")

    response = client.post("/api/user/join-event", json={"eventId": str(event.id)}, headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json()["reason"] == "removed"


def test_participant_list_is_for_members_only(client, make_user, make_event, add_participant):
    event = make_event()
    me = make_user("Me")
    alice = make_user("Alice", company="Acme")
    bob = make_user("Bob", company="Beta")
    outsider = make_user("Outsider")
    for user in (me, alice, bob):
        add_participant(event, user)

    denied = client.get(f"/api/events/{event.id}/participants", headers=auth_headers(outsider))
    assert denied.status_code == 403

    listed = client.get(f"/api/events/{event.id}/participants", headers=auth_headers(me)).json()
    assert {item["user_id"] for item in listed} == {str(alice.id), str(bob.id)}

    searched = client.get(
        f"/api/events/{event.id}/participants", params={"q": "acme"}, headers=auth_headers(me)
    ).json()
    assert [item["user_id"] for item in searched] == [str(alice.id)]


def test_event_lookup_and_status_filter(client, make_user, make_event):
    user = make_user()
    live = make_event("Live")
    later = make_event("Later", starts_in=timedelta(days=2))
    headers = auth_headers(user)

    by_code = client.get(f"/api/events/code/{later.event_code}", headers=headers)
    assert by_code.json()["status"] == "upcoming"
    assert client.get("/api/events/code/NOPE00", headers=headers).status_code == 404

    ongoing = client.get("/api/events", params={"status": "ongoing"}, headers=headers).json()
    assert [item["id"] for item in ongoing] == [str(live.id)]
