"""Notification fan-out, visibility and per-recipient read state."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Sequence, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ndrop.core.timeutils import as_utc, utcnow
from ndrop.models import Event, EventMeeting, EventParticipant, Notification, NotificationReceipt
from ndrop.models.event_participant import PARTICIPANT_CONFIRMED
from ndrop.models.notification import (
    TARGET_ALL,
    TARGET_EVENT_PARTICIPANTS,
    TARGET_SPECIFIC,
    TARGET_TYPES,
)
from ndrop.services import realtime
from ndrop.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CHAT_PREVIEW_LENGTH = 50

NotificationRow = Tuple[Notification, datetime | None]


def create_notification(
    session: Session,
    *,
    title: str,
    message: str,
    notification_type: str,
    target_type: str = TARGET_SPECIFIC,
    user_id: UUID | None = None,
    target_event_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
    sent_by: UUID | None = None,
) -> Notification:
    """Add one notification row to the session; the caller commits."""
    if target_type not in TARGET_TYPES:
        raise ValidationError(f"Unknown target type: {target_type}")
    if target_type == TARGET_SPECIFIC and user_id is None:
        raise ValidationError("A specific notification needs a user_id")
    if target_type == TARGET_EVENT_PARTICIPANTS and target_event_id is None:
        raise ValidationError("An event notification needs a target_event_id")

    notification = Notification(
        title=title,
        message=message,
        notification_type=notification_type,
        target_type=target_type,
        user_id=user_id if target_type == TARGET_SPECIFIC else None,
        target_event_id=target_event_id,
        meta=metadata,
        sent_by=sent_by,
    )
    session.add(notification)
    return notification


def _visible_to(user_id: UUID):
    joined_events = select(EventParticipant.event_id).where(
        EventParticipant.user_id == user_id,
        EventParticipant.status == PARTICIPANT_CONFIRMED,
    )
    return or_(
        Notification.target_type == TARGET_ALL,
        and_(Notification.target_type == TARGET_SPECIFIC, Notification.user_id == user_id),
        and_(
            Notification.target_type == TARGET_EVENT_PARTICIPANTS,
            Notification.target_event_id.in_(joined_events),
        ),
    )


def _receipt_join(user_id: UUID):
    return and_(
        NotificationReceipt.notification_id == Notification.id,
        NotificationReceipt.user_id == user_id,
    )


def list_for_user(
    session: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 50,
    before: datetime | None = None,
    before_id: UUID | None = None,
) -> List[NotificationRow]:
    """Visible notifications, newest first, paired with the user's read_at.

    (before, before_id) is the last row of the previous page.
    """
    statement = (
        select(Notification, NotificationReceipt.read_at)
        .outerjoin(NotificationReceipt, _receipt_join(user_id))
        .where(_visible_to(user_id))
    )
    if unread_only:
        statement = statement.where(NotificationReceipt.id.is_(None))
    if before is not None:
        before = as_utc(before)
        older = Notification.created_at < before
        if before_id is not None:
            older = or_(older, and_(Notification.created_at == before, Notification.id < before_id))
        statement = statement.where(older)
    statement = statement.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    return [(notification, read_at) for notification, read_at in session.exec(statement).all()]


def unread_count(session: Session, user_id: UUID) -> int:
    statement = (
        select(func.count(Notification.id))
        .select_from(Notification)
        .outerjoin(NotificationReceipt, _receipt_join(user_id))
        .where(_visible_to(user_id), NotificationReceipt.id.is_(None))
    )
    return session.exec(statement).one()


def _get_receipt(session: Session, notification_id: UUID, user_id: UUID) -> NotificationReceipt | None:
    return session.exec(
        select(NotificationReceipt).where(
            NotificationReceipt.notification_id == notification_id,
            NotificationReceipt.user_id == user_id,
        )
    ).one_or_none()


def mark_as_read(session: Session, notification_id: UUID, user_id: UUID) -> NotificationRow:
    """Idempotently mark one visible notification read for this user only."""
    notification = session.exec(
        select(Notification).where(Notification.id == notification_id, _visible_to(user_id))
    ).one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found")

    receipt = _get_receipt(session, notification_id, user_id)
    if receipt is not None:
        return notification, receipt.read_at

    receipt = NotificationReceipt(notification_id=notification_id, user_id=user_id)
    session.add(receipt)
    try:
        session.commit()
    except IntegrityError:
        # A concurrent request wrote the receipt first
        session.rollback()
        receipt = _get_receipt(session, notification_id, user_id)
        notification = session.get(Notification, notification_id)
    return notification, receipt.read_at


def _mark_many(session: Session, notification_ids: Sequence[UUID], user_id: UUID) -> int:
    now = utcnow()
    for notification_id in notification_ids:
        session.add(NotificationReceipt(notification_id=notification_id, user_id=user_id, read_at=now))
    return len(notification_ids)


def _unread_ids(session: Session, user_id: UUID, *criteria) -> List[UUID]:
    statement = (
        select(Notification.id)
        .outerjoin(NotificationReceipt, _receipt_join(user_id))
        .where(_visible_to(user_id), NotificationReceipt.id.is_(None), *criteria)
    )
    return list(session.exec(statement).all())


def mark_all_as_read(session: Session, user_id: UUID) -> int:
    marked = _mark_many(session, _unread_ids(session, user_id), user_id)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        # Lost a race with another mark request; retry once with a fresh view
        marked = _mark_many(session, _unread_ids(session, user_id), user_id)
        session.commit()
    return marked


def mark_meeting_chat_read(session: Session, meeting_id: UUID, user_id: UUID) -> int:
    """Mark the user's chat notifications for one meeting; the caller commits."""
    candidates = session.exec(
        select(Notification)
        .outerjoin(NotificationReceipt, _receipt_join(user_id))
        .where(
            Notification.target_type == TARGET_SPECIFIC,
            Notification.user_id == user_id,
            Notification.notification_type == "meeting_chat",
            NotificationReceipt.id.is_(None),
        )
    ).all()
    ids = [n.id for n in candidates if (n.meta or {}).get("meeting_id") == str(meeting_id)]
    return _mark_many(session, ids, user_id)


def recipients_for(session: Session, notification: Notification) -> List[UUID] | str:
    if notification.target_type == TARGET_ALL:
        return realtime.AUDIENCE_ALL
    if notification.target_type == TARGET_SPECIFIC:
        return [notification.user_id]
    return list(
        session.exec(
            select(EventParticipant.user_id).where(
                EventParticipant.event_id == notification.target_event_id,
                EventParticipant.status == PARTICIPANT_CONFIRMED,
            )
        ).all()
    )


def notification_payload(notification: Notification, read_at: datetime | None = None) -> dict[str, Any]:
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "notification_type": notification.notification_type,
        "target_type": notification.target_type,
        "target_event_id": notification.target_event_id,
        "metadata": notification.meta,
        "created_at": notification.created_at,
        "read_at": read_at,
        "is_read": read_at is not None,
    }


def publish_notifications(session: Session, notifications: Sequence[Notification]) -> None:
    """Push committed notifications to their recipients."""
    for notification in notifications:
        realtime.publish(
            recipients_for(session, notification),
            "notification",
            notification_payload(notification),
        )


def notify_event_joined(session: Session, user_id: UUID, event: Event) -> Notification:
    return create_notification(
        session,
        user_id=user_id,
        notification_type="event_joined",
        title="Event joined",
        message=f"You joined \"{event.title}\".",
        target_event_id=event.id,
        metadata={"event_id": str(event.id)},
    )


def notify_meeting_requested(
    session: Session,
    meeting: EventMeeting,
    requester_name: str | None,
) -> Notification:
    return create_notification(
        session,
        user_id=meeting.receiver_id,
        notification_type="meeting_request",
        title="New meeting request",
        message=f"{requester_name or 'Someone'} sent you a meeting request.",
        target_event_id=meeting.event_id,
        metadata={"meeting_id": str(meeting.id), "event_id": str(meeting.event_id)},
    )


MEETING_STATUS_MESSAGES = {
    "accepted": "accepted your meeting request.",
    "declined": "declined your meeting request.",
    "canceled": "canceled the meeting request.",
    "confirmed": "confirmed the meeting time.",
}


def notify_meeting_status(
    session: Session,
    meeting: EventMeeting,
    recipient_id: UUID,
    actor_name: str | None,
) -> Notification:
    action = MEETING_STATUS_MESSAGES.get(meeting.status, f"changed the meeting to {meeting.status}.")
    return create_notification(
        session,
        user_id=recipient_id,
        notification_type="meeting_status",
        title="Meeting updated",
        message=f"{actor_name or 'Your contact'} {action}",
        target_event_id=meeting.event_id,
        metadata={"meeting_id": str(meeting.id), "status": meeting.status},
    )


def chat_preview(content: str) -> str:
    if len(content) > CHAT_PREVIEW_LENGTH:
        return content[:CHAT_PREVIEW_LENGTH] + "..."
    return content


def notify_meeting_message(
    session: Session,
    meeting: EventMeeting,
    recipient_id: UUID,
    sender_name: str | None,
    content: str,
) -> Notification:
    return create_notification(
        session,
        user_id=recipient_id,
        notification_type="meeting_chat",
        title=f"Message from {sender_name or 'your contact'}",
        message=chat_preview(content),
        target_event_id=meeting.event_id,
        metadata={"meeting_id": str(meeting.id)},
    )


def notify_card_collected(session: Session, collector_id: UUID, owner_name: str | None) -> Notification:
    return create_notification(
        session,
        user_id=collector_id,
        notification_type="business_card_collected",
        title="Card saved",
        message=f"{owner_name}'s business card was added to your wallet."
        if owner_name
        else "A business card was added to your wallet.",
    )
