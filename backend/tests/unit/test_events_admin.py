import base64
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlmodel import select

from ndrop.core.config import settings
from ndrop.models import EventMeeting, EventParticipant, Notification
from ndrop.services import events, meetings, notifications, participation
from ndrop.services.accounts import create_admin_account
from ndrop.services.errors import ForbiddenError, ValidationError


def _payload(**overrides):
    data = {
        "title": "Startup Mixer",
        "start_date": datetime(2030, 5, 1, 18),
        "end_date": datetime(2030, 5, 1, 21),
        "location": "Seoul",
        "max_participants": 100,
    }
    data.update(overrides)
    return data


def test_generated_codes_are_six_uppercase_alphanumerics():
    for _ in range(50):
        code = events.generate_event_code()
        assert len(code) == 6
        assert all(ch in events.EVENT_CODE_ALPHABET for ch in code)


def test_create_event_assigns_code_and_owner(session, admin):
    event = events.create_event(session, admin.id, _payload())

    assert event.admin_created_by == admin.id
    assert len(event.event_code) == 6
    assert event.current_participants == 0


def test_create_event_rejects_inverted_dates(session, admin):
    with pytest.raises(ValidationError):
        events.create_event(session, admin.id, _payload(end_date=datetime(2030, 5, 1, 17)))


def test_only_creator_can_update_or_delete(session, admin):
    other = create_admin_account(session, "someone-else", "pw-12345")
    event = events.create_event(session, admin.id, _payload())

    with pytest.raises(ForbiddenError):
        events.update_event(session, event.id, other.id, {"title": "Hijacked"})
    with pytest.raises(ForbiddenError):
        events.delete_event(session, event.id, other.id)

    updated = events.update_event(session, event.id, admin.id, {"title": "Renamed"})
    assert updated.title == "Renamed"


def test_update_validates_dates_against_stored_values(session, admin):
    event = events.create_event(session, admin.id, _payload())

    with pytest.raises(ValidationError):
        events.update_event(session, event.id, admin.id, {"end_date": datetime(2030, 4, 30)})


def test_delete_event_removes_dependent_rows(session, admin, make_user):
    event = events.create_event(session, admin.id, _payload())
    alice, bob = make_user(), make_user()
    participation.join(session, event.id, alice.id)
    participation.join(session, event.id, bob.id)
    meetings.create_meeting(session, event.id, alice.id, bob.id)
    notifications.create_notification(
        session,
        title="Notice",
        message="Doors open",
        notification_type="event_notice",
        target_type="event_participants",
        target_event_id=event.id,
    )
    session.commit()

    events.delete_event(session, event.id, admin.id)

    assert session.exec(select(EventParticipant)).all() == []
    assert session.exec(select(EventMeeting)).all() == []
    assert session.exec(select(Notification).where(Notification.target_event_id == event.id)).all() == []


def test_join_url_and_qr(session, admin, monkeypatch):
    monkeypatch.setattr(settings, "NEXT_PUBLIC_BASE_URL", "https://ndrop.app/")
    event = events.create_event(session, admin.id, _payload())

    qr = events.generate_qr(event)

    assert qr["url"] == f"https://ndrop.app/client/events/join?code={event.event_code}"
    assert qr["eventCode"] == event.event_code
    assert qr["qrCode"].startswith("data:image/png;base64,")
    png = base64.b64decode(qr["qrCode"].split(",", 1)[1])
    assert png[:8] == b"\x89PNG\r\n\x1a\n"


def test_public_origin_fallbacks(monkeypatch):
    monkeypatch.setattr(settings, "NEXT_PUBLIC_BASE_URL", None)
    monkeypatch.setattr(settings, "VERCEL_URL", "ndrop-git-main.vercel.app")
    assert settings.public_origin == "https://ndrop-git-main.vercel.app"

    monkeypatch.setattr(settings, "VERCEL_URL", None)
    assert settings.public_origin == "http://localhost:3000"


def test_save_event_image(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))

    url = events.save_event_image("poster.PNG", b"\x89PNG fake")

    assert url.startswith("/uploads/event_images/") and url.endswith(".png")
    assert (tmp_path / "event_images" / Path(url).name).read_bytes() == b"\x89PNG fake"

    with pytest.raises(ValidationError):
        events.save_event_image("script.exe", b"MZ")
    with pytest.raises(ValidationError):
        events.save_event_image("empty.png", b"")
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 4)
    with pytest.raises(ValidationError):
        events.save_event_image("big.png", b"12345")


def test_list_events_filters_by_computed_status(session, make_event):
    live = make_event("Live")
    make_event("Later", starts_in=timedelta(days=3))

    assert [e.id for e in events.list_events(session, status="ongoing")] == [live.id]


def test_update_rejects_null_for_required_fields(session, admin):
    event = events.create_event(session, admin.id, _payload())

    with pytest.raises(ValidationError):
        events.update_event(session, event.id, admin.id, {"title": None})
    with pytest.raises(ValidationError):
        events.update_event(session, event.id, admin.id, {"start_date": None})

    assert events.get_event(session, event.id).title == _payload()["title"]


def test_update_accepts_offset_dates_against_stored_values(session, admin):
    event = events.create_event(session, admin.id, _payload())
    seoul = timezone(timedelta(hours=9))

    updated = events.update_event(
        session, event.id, admin.id, {"end_date": datetime(2030, 5, 2, 9, tzinfo=seoul)}
    )

    assert updated.end_date == datetime(2030, 5, 2, tzinfo=timezone.utc)
