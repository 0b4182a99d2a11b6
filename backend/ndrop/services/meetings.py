"""Meeting request state machine and bookable time slots.

Transitions::

    pending --receiver--> accepted | declined
    pending --requester--> canceled
    accepted --either party, with a free slot--> confirmed

Every transition is a conditional update guarded on the expected current
status, so two racing requests cannot both win.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ndrop.core.timeutils import as_utc, utcnow
from ndrop.models import Event, EventMeeting, EventTimeSlot, UserProfile
from ndrop.models.meeting import (
    ACTIVE_MEETING_STATUSES,
    CHAT_STATUSES,
    MEETING_ACCEPTED,
    MEETING_CANCELED,
    MEETING_CONFIRMED,
    MEETING_DECLINED,
    MEETING_PENDING,
)
from ndrop.services import realtime
from ndrop.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ndrop.services.notifications import (
    notify_meeting_requested,
    notify_meeting_status,
    publish_notifications,
)
from ndrop.services.participation import is_confirmed_participant
from ndrop.services.profiles import display_name

logger = logging.getLogger(__name__)

MeetingRow = Tuple[EventMeeting, Optional[UserProfile], Optional[UserProfile]]


def chat_available(meeting: EventMeeting) -> bool:
    return meeting.status in CHAT_STATUSES


def get_meeting(session: Session, meeting_id: UUID, event_id: UUID | None = None) -> EventMeeting:
    meeting = session.get(EventMeeting, meeting_id)
    if meeting is None or (event_id is not None and meeting.event_id != event_id):
        raise NotFoundError("Meeting not found")
    return meeting


def _pair_clause(user_a: UUID, user_b: UUID):
    return or_(
        and_(EventMeeting.requester_id == user_a, EventMeeting.receiver_id == user_b),
        and_(EventMeeting.requester_id == user_b, EventMeeting.receiver_id == user_a),
    )


def create_meeting(
    session: Session,
    event_id: UUID,
    requester_id: UUID,
    receiver_id: UUID,
    message: str | None = None,
) -> EventMeeting:
    if requester_id == receiver_id:
        raise ValidationError("You cannot request a meeting with yourself", reason="self_request")
    if session.get(Event, event_id) is None:
        raise NotFoundError("Event not found")
    for user_id in (requester_id, receiver_id):
        if not is_confirmed_participant(session, event_id, user_id):
            raise ForbiddenError("Both users must be participants of the event", reason="not_participant")

    active = session.exec(
        select(EventMeeting).where(
            EventMeeting.event_id == event_id,
            _pair_clause(requester_id, receiver_id),
            EventMeeting.status.in_(ACTIVE_MEETING_STATUSES),
        )
    ).first()
    if active is not None:
        raise ConflictError("A meeting with this user is already in progress", reason="duplicate_meeting")

    meeting = EventMeeting(
        event_id=event_id,
        requester_id=requester_id,
        receiver_id=receiver_id,
        message=(message or "").strip() or None,
    )
    session.add(meeting)
    notification = notify_meeting_requested(session, meeting, display_name(session, requester_id))
    session.commit()
    session.refresh(meeting)
    logger.info("Meeting %s requested by %s to %s", meeting.id, requester_id, receiver_id)

    publish_notifications(session, [notification])
    return meeting


def _transition(
    session: Session,
    meeting: EventMeeting,
    actor_id: UUID,
    expected: Iterable[str],
    new_status: str,
    slot_id: UUID | None = None,
) -> EventMeeting:
    values: Dict[str, object] = {"status": new_status, "updated_at": utcnow()}
    if slot_id is not None:
        values["slot_id"] = slot_id
    statement = (
        update(EventMeeting)
        .where(EventMeeting.id == meeting.id, EventMeeting.status.in_(tuple(expected)))
        .values(**values)
    )
    try:
        result = session.exec(statement)
    except IntegrityError:
        session.rollback()
        raise ConflictError("Time slot is already booked", reason="slot_taken") from None
    if result.rowcount == 0:
        session.rollback()
        raise ConflictError(
            f"Meeting can no longer be moved to {new_status}",
            reason="stale_transition",
        )

    session.refresh(meeting)
    recipient_id = meeting.other_party(actor_id)
    notification = notify_meeting_status(session, meeting, recipient_id, display_name(session, actor_id))
    session.commit()
    session.refresh(meeting)
    logger.info("Meeting %s moved to %s by %s", meeting.id, new_status, actor_id)

    publish_notifications(session, [notification])
    realtime.publish(
        [meeting.requester_id, meeting.receiver_id],
        "meeting_status",
        {"meeting_id": str(meeting.id), "event_id": str(meeting.event_id), "status": meeting.status},
    )
    return meeting


def respond(session: Session, meeting_id: UUID, actor_id: UUID, status: str) -> EventMeeting:
    """Receiver accepts or declines a pending request."""
    if status not in (MEETING_ACCEPTED, MEETING_DECLINED):
        raise ValidationError(f"Invalid response: {status}")
    meeting = get_meeting(session, meeting_id)
    if actor_id != meeting.receiver_id:
        raise ForbiddenError("Only the receiver can respond to this request")
    return _transition(session, meeting, actor_id, (MEETING_PENDING,), status)


def cancel(session: Session, meeting_id: UUID, actor_id: UUID) -> EventMeeting:
    """Requester withdraws a request that is still pending."""
    meeting = get_meeting(session, meeting_id)
    if actor_id != meeting.requester_id:
        raise ForbiddenError("Only the requester can cancel this request")
    return _transition(session, meeting, actor_id, (MEETING_PENDING,), MEETING_CANCELED)


def confirm(session: Session, meeting_id: UUID, actor_id: UUID, slot_id: UUID | None) -> EventMeeting:
    """Either party books a free time slot for an accepted meeting."""
    meeting = get_meeting(session, meeting_id)
    if not meeting.has_party(actor_id):
        raise ForbiddenError("Only meeting participants can confirm")
    if slot_id is None:
        raise ValidationError("A time slot is required to confirm", reason="slot_required")

    slot = session.get(EventTimeSlot, slot_id)
    if slot is None or slot.event_id != meeting.event_id:
        raise NotFoundError("Time slot not found")
    if slot.is_blocked:
        raise ConflictError("Time slot is not available", reason="slot_blocked")
    taken = session.exec(
        select(EventMeeting).where(
            EventMeeting.slot_id == slot_id,
            EventMeeting.status == MEETING_CONFIRMED,
            EventMeeting.id != meeting.id,
        )
    ).first()
    if taken is not None:
        raise ConflictError("Time slot is already booked", reason="slot_taken")

    return _transition(session, meeting, actor_id, (MEETING_ACCEPTED,), MEETING_CONFIRMED, slot_id)


def update_status(
    session: Session,
    event_id: UUID,
    meeting_id: UUID,
    actor_id: UUID,
    status: str,
    slot_id: UUID | None = None,
) -> EventMeeting:
    get_meeting(session, meeting_id, event_id)
    if status in (MEETING_ACCEPTED, MEETING_DECLINED):
        return respond(session, meeting_id, actor_id, status)
    if status == MEETING_CANCELED:
        return cancel(session, meeting_id, actor_id)
    if status == MEETING_CONFIRMED:
        return confirm(session, meeting_id, actor_id, slot_id)
    raise ValidationError(f"Invalid status: {status}")


def list_meetings(session: Session, event_id: UUID, user_id: UUID) -> List[MeetingRow]:
    meetings = session.exec(
        select(EventMeeting)
        .where(
            EventMeeting.event_id == event_id,
            or_(EventMeeting.requester_id == user_id, EventMeeting.receiver_id == user_id),
        )
        .order_by(EventMeeting.created_at.desc())
    ).all()
    return [
        (meeting, session.get(UserProfile, meeting.requester_id), session.get(UserProfile, meeting.receiver_id))
        for meeting in meetings
    ]


def list_time_slots(session: Session, event_id: UUID) -> List[Tuple[EventTimeSlot, bool]]:
    """Unblocked slots in start order, flagged when a confirmed meeting holds them."""
    slots = session.exec(
        select(EventTimeSlot)
        .where(EventTimeSlot.event_id == event_id, EventTimeSlot.is_blocked == False)  # noqa: E712
        .order_by(EventTimeSlot.start_time)
    ).all()
    booked = set(
        session.exec(
            select(EventMeeting.slot_id).where(
                EventMeeting.event_id == event_id,
                EventMeeting.status == MEETING_CONFIRMED,
                EventMeeting.slot_id.is_not(None),
            )
        ).all()
    )
    return [(slot, slot.id in booked) for slot in slots]


def create_time_slot(
    session: Session,
    event_id: UUID,
    start_time: datetime,
    end_time: datetime,
    is_blocked: bool = False,
) -> EventTimeSlot:
    if session.get(Event, event_id) is None:
        raise NotFoundError("Event not found")
    start_time, end_time = as_utc(start_time), as_utc(end_time)
    if end_time <= start_time:
        raise ValidationError("end_time must be after start_time")
    slot = EventTimeSlot(event_id=event_id, start_time=start_time, end_time=end_time, is_blocked=is_blocked)
    session.add(slot)
    session.commit()
    session.refresh(slot)
    return slot
