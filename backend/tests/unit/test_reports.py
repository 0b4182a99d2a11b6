from datetime import timedelta

import pytest

from ndrop.models import CollectedCard, EventMeetingMessage
from ndrop.services import feedback, meetings, profiles, reports
from ndrop.services.errors import ConflictError, ForbiddenError, ValidationError


@pytest.fixture
def busy_event(session, make_user, make_event, add_participant):
    event = make_event(max_participants=4)
    alice = make_user("Alice", job_title="CTO", interest_keywords=["ai", "fintech"])
    bob = make_user("Bob", affiliation_type="미소속", work_field="Design", interest_keywords=["ai"])
    carol = make_user("Carol")
    for user in (alice, bob, carol):
        add_participant(event, user)
    banned = make_user("Banned")
    add_participant(event, banned, status="removed")
    return event, alice, bob, carol


def test_percent_rounds_half_up():
    assert reports.percent(1, 8) == 13
    assert reports.percent(1, 3) == 33
    assert reports.percent(5, 0) == 0


def test_connections_count_only_participant_collections_inside_the_window(session, busy_event, make_user):
    event, alice, bob, carol = busy_event
    outsider = make_user("Outsider")
    alice_card = profiles.get_card_by_user(session, alice.id)

    profiles.collect_card(session, bob.id, alice_card.id)
    profiles.collect_card(session, outsider.id, alice_card.id)
    session.add(
        CollectedCard(
            collector_id=carol.id,
            card_id=alice_card.id,
            collected_at=event.start_date - timedelta(days=1),
        )
    )
    session.commit()

    assert reports.count_connections(session, event.id) == 1


def test_collection_timeline_fills_every_hour_of_the_event_days(session, busy_event):
    event, alice, bob, _ = busy_event
    assert reports.collection_timeline(session, event.id) == []

    profiles.collect_card(session, bob.id, profiles.get_card_by_user(session, alice.id).id)

    hourly = reports.collection_timeline(session, event.id)
    days = {point["date"][:10] for point in hourly}
    assert len(hourly) == 24 * len(days)
    assert sum(point["count"] for point in hourly) == 1

    daily = reports.collection_timeline(session, event.id, group_by="day")
    assert [point["date"] for point in daily] == sorted(days)

    with pytest.raises(ValidationError):
        reports.collection_timeline(session, event.id, group_by="week")


def test_event_report_kpis(session, busy_event):
    event, alice, bob, carol = busy_event
    meeting = meetings.create_meeting(session, event.id, alice.id, bob.id)
    meetings.respond(session, meeting.id, bob.id, "accepted")
    for sender in (alice, alice, bob):
        session.add(EventMeetingMessage(meeting_id=meeting.id, sender_id=sender.id, content="hi"))
    session.commit()
    profiles.collect_card(session, bob.id, profiles.get_card_by_user(session, alice.id).id)
    feedback.submit_feedback(session, event.id, alice.id, 5)
    feedback.submit_feedback(session, event.id, bob.id, 4, "  good  ")

    report = reports.event_report(session, event.id)
    kpi = report["kpi"]

    assert report["event_info"]["title"] == event.title
    assert kpi["total_participants"] == 4
    assert kpi["checked_in"] == 3
    assert kpi["attendance_rate"] == 75
    assert kpi["connections"] == 1
    assert kpi["avg_connections_per_person"] == 0.3
    assert kpi["messages"] == 3
    assert kpi["networking_participants"] == 2
    assert kpi["networking_participation_rate"] == 67
    assert kpi["satisfaction"] == 4.5
    assert sum(point["count"] for point in report["checkin_timeline"]) == 3
    assert report["analytics"]["interest_stats"][0] == {"label": "ai", "value": 2}
    assert {item["label"] for item in report["analytics"]["role_stats"]} == {"CTO", "Design"}


def test_report_without_activity(session, make_event):
    event = make_event()

    kpi = reports.event_report(session, event.id)["kpi"]

    assert kpi["attendance_rate"] == 0
    assert kpi["satisfaction"] is None
    assert kpi["avg_connections_per_person"] == 0


def test_feedback_is_for_participants_once(session, busy_event, make_user):
    event, alice, _, _ = busy_event

    with pytest.raises(ForbiddenError):
        feedback.submit_feedback(session, event.id, make_user().id, 3)
    with pytest.raises(ValidationError):
        feedback.submit_feedback(session, event.id, alice.id, 6)

    saved = feedback.submit_feedback(session, event.id, alice.id, 4, "   ")
    assert saved.feedback is None
    with pytest.raises(ConflictError):
        feedback.submit_feedback(session, event.id, alice.id, 2)

    [(row, user_name, title)] = feedback.list_feedback(session, event.id)
    assert (row.rating, user_name, title) == (4, "Alice", event.title)
