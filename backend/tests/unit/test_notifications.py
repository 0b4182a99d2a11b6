from datetime import timedelta
from uuid import uuid4

import pytest

from ndrop.core.timeutils import utcnow
from ndrop.services import notifications as notification_service
from ndrop.services.errors import NotFoundError, ValidationError


def _create(session, **kwargs):
    kwargs.setdefault("title", "Hello")
    kwargs.setdefault("message", "World")
    kwargs.setdefault("notification_type", "announcement")
    notification = notification_service.create_notification(session, **kwargs)
    session.commit()
    session.refresh(notification)
    return notification


def _visible_ids(session, user):
    return {n.id for n, _ in notification_service.list_for_user(session, user.id)}


def test_target_rules(session, make_user, make_event, add_participant):
    member, outsider, removed = make_user(), make_user(), make_user()
    event = make_event()
    add_participant(event, member)
    add_participant(event, removed, status="removed")

    broadcast = _create(session, target_type="all")
    direct = _create(session, target_type="specific", user_id=member.id)
    notice = _create(session, target_type="event_participants", target_event_id=event.id)

    assert _visible_ids(session, member) == {broadcast.id, direct.id, notice.id}
    assert _visible_ids(session, outsider) == {broadcast.id}
    assert _visible_ids(session, removed) == {broadcast.id}


def test_target_validation(session):
    with pytest.raises(ValidationError):
        notification_service.create_notification(
            session, title="t", message="m", notification_type="x", target_type="specific"
        )
    with pytest.raises(ValidationError):
        notification_service.create_notification(
            session, title="t", message="m", notification_type="x", target_type="event_participants"
        )
    with pytest.raises(ValidationError):
        notification_service.create_notification(
            session, title="t", message="m", notification_type="x", target_type="everyone"
        )


def test_reading_a_broadcast_is_per_user(session, make_user):
    first, second = make_user(), make_user()
    broadcast = _create(session, target_type="all")

    _, read_at = notification_service.mark_as_read(session, broadcast.id, first.id)

    assert read_at is not None
    assert notification_service.unread_count(session, first.id) == 0
    assert notification_service.unread_count(session, second.id) == 1


def test_mark_as_read_is_idempotent(session, make_user):
    user = make_user()
    note = _create(session, target_type="specific", user_id=user.id)

    _, first_read = notification_service.mark_as_read(session, note.id, user.id)
    _, second_read = notification_service.mark_as_read(session, note.id, user.id)

    assert first_read == second_read


def test_cannot_read_someone_elses_notification(session, make_user):
    owner, other = make_user(), make_user()
    note = _create(session, target_type="specific", user_id=owner.id)

    with pytest.raises(NotFoundError):
        notification_service.mark_as_read(session, note.id, other.id)
    with pytest.raises(NotFoundError):
        notification_service.mark_as_read(session, uuid4(), owner.id)


def test_mark_all_as_read_only_touches_visible_unread(session, make_user):
    user, other = make_user(), make_user()
    _create(session, target_type="all")
    _create(session, target_type="specific", user_id=user.id)
    _create(session, target_type="specific", user_id=other.id)

    assert notification_service.unread_count(session, user.id) == 2
    assert notification_service.mark_all_as_read(session, user.id) == 2
    assert notification_service.mark_all_as_read(session, user.id) == 0
    assert notification_service.unread_count(session, user.id) == 0
    assert notification_service.unread_count(session, other.id) == 2


def test_list_paginates_with_cursor(session, make_user):
    user = make_user()
    for i in range(3):
        _create(session, target_type="specific", user_id=user.id, title=f"n{i}")

    page = notification_service.list_for_user(session, user.id, limit=2)
    rest = notification_service.list_for_user(session, user.id, limit=2, before=page[-1][0].created_at)

    assert len(page) == 2
    assert len(rest) == 1
    assert {n.id for n, _ in page}.isdisjoint({n.id for n, _ in rest})


def test_recipients_for_event_notice(session, make_user, make_event, add_participant):
    member, removed = make_user(), make_user()
    event = make_event()
    add_participant(event, member)
    add_participant(event, removed, status="removed")
    notice = _create(session, target_type="event_participants", target_event_id=event.id)
    broadcast = _create(session, target_type="all")

    assert notification_service.recipients_for(session, notice) == [member.id]
    assert notification_service.recipients_for(session, broadcast) == "all"


def test_chat_preview():
    assert notification_service.chat_preview("short") == "short"
    assert notification_service.chat_preview("x" * 51) == "x" * 50 + "..."


def test_cursor_pages_through_notifications_sharing_a_timestamp(session, make_user):
    user = make_user()
    stamp = utcnow() - timedelta(minutes=1)
    for i in range(5):
        note = notification_service.create_notification(
            session, title=f"n{i}", message="m", notification_type="announcement", target_type="all"
        )
        note.created_at = stamp
    session.commit()

    first = notification_service.list_for_user(session, user.id, limit=2)
    last_note = first[-1][0]
    rest = notification_service.list_for_user(
        session, user.id, limit=10, before=last_note.created_at, before_id=last_note.id
    )

    ids = [n.id for n, _ in first + rest]
    assert len(ids) == len(set(ids)) == 5


def test_naive_before_cursor_is_read_as_utc(session, make_user):
    user = make_user()
    _create(session, target_type="all")

    naive_future = (utcnow() + timedelta(minutes=1)).replace(tzinfo=None)

    assert len(notification_service.list_for_user(session, user.id, before=naive_future)) == 1
