"""Event administration, join codes and QR images."""

from __future__ import annotations

import base64
import io
import logging
import secrets
import string
from pathlib import Path
from typing import Any, Dict, List, Mapping
from uuid import UUID, uuid4

import qrcode
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, delete, select

from ndrop.core.config import settings
from ndrop.core.timeutils import as_utc
from ndrop.models import (
    Event,
    EventMatchingConfig,
    EventMatchRecommendation,
    EventMeeting,
    EventMeetingMessage,
    EventParticipant,
    EventTimeSlot,
    Feedback,
    MeetingReadState,
    Notification,
    NotificationReceipt,
)
from ndrop.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ndrop.services.event_status import filter_events_by_status

logger = logging.getLogger(__name__)

EVENT_CODE_ALPHABET = string.ascii_uppercase + string.digits
EVENT_CODE_LENGTH = 6
CODE_ATTEMPTS = 5

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
EVENT_IMAGE_SUBDIR = "event_images"

EDITABLE_FIELDS = (
    "title",
    "description",
    "start_date",
    "end_date",
    "location",
    "max_participants",
    "image_url",
    "organizer_name",
    "organizer_email",
    "organizer_phone",
    "organizer_kakao",
    "is_public",
)
REQUIRED_FIELDS = ("title", "start_date", "end_date", "is_public")


def generate_event_code() -> str:
    return "".join(secrets.choice(EVENT_CODE_ALPHABET) for _ in range(EVENT_CODE_LENGTH))


def _check_dates(start_date, end_date) -> None:
    if as_utc(end_date) <= as_utc(start_date):
        raise ValidationError("end_date must be after start_date")


def get_event(session: Session, event_id: UUID) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


def list_events(
    session: Session,
    status: str | None = None,
    public_only: bool = False,
    admin_id: UUID | None = None,
) -> List[Event]:
    statement = select(Event)
    if public_only:
        statement = statement.where(Event.is_public == True)  # noqa: E712
    if admin_id is not None:
        statement = statement.where(Event.admin_created_by == admin_id)
    events = session.exec(statement.order_by(Event.start_date.desc())).all()
    return filter_events_by_status(events, status)


def create_event(session: Session, admin_id: UUID, data: Mapping[str, Any]) -> Event:
    _check_dates(data["start_date"], data["end_date"])
    values = {field: data[field] for field in EDITABLE_FIELDS if field in data}
    values["start_date"] = as_utc(values["start_date"])
    values["end_date"] = as_utc(values["end_date"])

    for _ in range(CODE_ATTEMPTS):
        event = Event(**values, event_code=generate_event_code(), admin_created_by=admin_id)
        session.add(event)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.warning("Event code collision, retrying")
            continue
        session.refresh(event)
        logger.info("Event %s created by admin %s with code %s", event.id, admin_id, event.event_code)
        return event
    raise ConflictError("Could not allocate a unique event code")


def _owned_event(session: Session, event_id: UUID, admin_id: UUID) -> Event:
    event = get_event(session, event_id)
    if event.admin_created_by != admin_id:
        raise ForbiddenError("Only the admin who created this event can change it")
    return event


def update_event(session: Session, event_id: UUID, admin_id: UUID, changes: Mapping[str, Any]) -> Event:
    event = _owned_event(session, event_id, admin_id)
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")
    cleared = [field for field in REQUIRED_FIELDS if field in changes and changes[field] is None]
    if cleared:
        raise ValidationError(f"Event fields cannot be null: {', '.join(cleared)}")

    start = changes.get("start_date") or event.start_date
    end = changes.get("end_date") or event.end_date
    _check_dates(start, end)
    for field, value in changes.items():
        if field in ("start_date", "end_date") and value is not None:
            value = as_utc(value)
        setattr(event, field, value)
    event.touch()
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


def delete_event(session: Session, event_id: UUID, admin_id: UUID) -> None:
    event = _owned_event(session, event_id, admin_id)

    meeting_ids = select(EventMeeting.id).where(EventMeeting.event_id == event_id)
    notification_ids = select(Notification.id).where(Notification.target_event_id == event_id)
    session.exec(delete(EventMeetingMessage).where(EventMeetingMessage.meeting_id.in_(meeting_ids)))
    session.exec(delete(MeetingReadState).where(MeetingReadState.meeting_id.in_(meeting_ids)))
    session.exec(delete(EventMeeting).where(EventMeeting.event_id == event_id))
    session.exec(delete(EventTimeSlot).where(EventTimeSlot.event_id == event_id))
    session.exec(delete(EventParticipant).where(EventParticipant.event_id == event_id))
    session.exec(delete(EventMatchRecommendation).where(EventMatchRecommendation.event_id == event_id))
    session.exec(delete(EventMatchingConfig).where(EventMatchingConfig.event_id == event_id))
    session.exec(delete(Feedback).where(Feedback.event_id == event_id))
    session.exec(delete(NotificationReceipt).where(NotificationReceipt.notification_id.in_(notification_ids)))
    session.exec(delete(Notification).where(Notification.target_event_id == event_id))
    session.delete(event)
    session.commit()
    logger.info("Event %s deleted by admin %s", event_id, admin_id)


def build_join_url(code: str) -> str:
    return f"{settings.public_origin}/client/events/join?code={code}"


def qr_data_url(payload: str) -> str:
    img = qrcode.make(payload)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def generate_qr(event: Event) -> Dict[str, Any]:
    url = build_join_url(event.event_code)
    return {
        "qrCode": qr_data_url(url),
        "url": url,
        "eventCode": event.event_code,
        "eventTitle": event.title,
        "eventDate": event.start_date.isoformat(),
    }


def upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def save_event_image(filename: str | None, content: bytes) -> str:
    """Store an uploaded event image and return its public path."""
    if not content:
        raise ValidationError("File is empty")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationError(
            f"File size exceeds maximum allowed size of {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
        )
    extension = Path(filename or "").suffix.lower()
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            f"File type not allowed. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
        )

    target_dir = upload_root() / EVENT_IMAGE_SUBDIR
    target_dir.mkdir(parents=True, exist_ok=True)
    stored_name = f"{uuid4().hex}{extension}"
    (target_dir / stored_name).write_bytes(content)
    return f"/uploads/{EVENT_IMAGE_SUBDIR}/{stored_name}"
