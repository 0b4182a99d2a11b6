"""Meeting chat and last-read receipts."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ndrop.core.timeutils import as_utc, utcnow
from ndrop.models import EventMeeting, EventMeetingMessage, MeetingReadState
from ndrop.services import realtime
from ndrop.services.errors import ChatUnavailableError, ForbiddenError, ValidationError
from ndrop.services.meetings import chat_available, get_meeting
from ndrop.services.notifications import (
    mark_meeting_chat_read,
    notify_meeting_message,
    publish_notifications,
)
from ndrop.services.profiles import display_name

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def _authorize(session: Session, meeting_id: UUID, user_id: UUID, event_id: UUID | None = None) -> EventMeeting:
    meeting = get_meeting(session, meeting_id, event_id)
    if not meeting.has_party(user_id):
        raise ForbiddenError("Only meeting participants can use this chat")
    return meeting


def _require_chat(meeting: EventMeeting) -> None:
    if not chat_available(meeting):
        raise ChatUnavailableError()


def send_message(
    session: Session,
    meeting_id: UUID,
    sender_id: UUID,
    content: str,
    event_id: UUID | None = None,
) -> EventMeetingMessage:
    meeting = _authorize(session, meeting_id, sender_id, event_id)
    _require_chat(meeting)

    content = (content or "").strip()
    if not content:
        raise ValidationError("Message cannot be empty")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")

    message = EventMeetingMessage(meeting_id=meeting.id, sender_id=sender_id, content=content)
    session.add(message)
    recipient_id = meeting.other_party(sender_id)
    notification = notify_meeting_message(
        session, meeting, recipient_id, display_name(session, sender_id), content
    )
    session.commit()
    session.refresh(message)

    publish_notifications(session, [notification])
    realtime.publish(
        [meeting.requester_id, meeting.receiver_id],
        "meeting_message",
        {
            "meeting_id": str(meeting.id),
            "message_id": str(message.id),
            "sender_id": str(sender_id),
            "content": message.content,
            "created_at": message.created_at.isoformat(),
        },
    )
    return message


def list_messages(
    session: Session,
    meeting_id: UUID,
    user_id: UUID,
    before: datetime | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    event_id: UUID | None = None,
    before_id: UUID | None = None,
) -> Dict[str, Any]:
    """Newest-first page of messages, paged backwards with a (created_at, id) cursor.

    Without before_id the cursor is exclusive on created_at alone.
    """
    meeting = _authorize(session, meeting_id, user_id, event_id)
    _require_chat(meeting)

    limit = max(1, min(limit, MAX_PAGE_SIZE))
    statement = select(EventMeetingMessage).where(EventMeetingMessage.meeting_id == meeting.id)
    if before is not None:
        before = as_utc(before)
        older = EventMeetingMessage.created_at < before
        if before_id is not None:
            older = or_(
                older,
                and_(EventMeetingMessage.created_at == before, EventMeetingMessage.id < before_id),
            )
        statement = statement.where(older)
    statement = statement.order_by(
        EventMeetingMessage.created_at.desc(), EventMeetingMessage.id.desc()
    ).limit(limit + 1)
    rows: List[EventMeetingMessage] = list(session.exec(statement).all())

    has_more = len(rows) > limit
    messages = rows[:limit]
    return {
        "messages": messages,
        "has_more": has_more,
        "next_before": messages[-1].created_at if has_more else None,
        "next_before_id": messages[-1].id if has_more else None,
    }


def _read_state(session: Session, meeting_id: UUID, user_id: UUID) -> MeetingReadState | None:
    return session.exec(
        select(MeetingReadState).where(
            MeetingReadState.meeting_id == meeting_id,
            MeetingReadState.user_id == user_id,
        )
    ).one_or_none()


def _stage_read(session: Session, meeting_id: UUID, user_id: UUID, now: datetime) -> MeetingReadState:
    state = _read_state(session, meeting_id, user_id)
    if state is None:
        state = MeetingReadState(meeting_id=meeting_id, user_id=user_id, last_read_at=now)
    else:
        state.last_read_at = max(state.last_read_at, now)
    session.add(state)
    mark_meeting_chat_read(session, meeting_id, user_id)
    return state


def mark_read(session: Session, meeting_id: UUID, user_id: UUID) -> datetime:
    """Advance the caller's last-read timestamp and clear their chat notifications."""
    meeting_id = _authorize(session, meeting_id, user_id).id
    now = utcnow()
    try:
        state = _stage_read(session, meeting_id, user_id, now)
        session.commit()
    except IntegrityError:
        # Another request created the read state first; redo both writes against it
        session.rollback()
        state = _stage_read(session, meeting_id, user_id, now)
        session.commit()
    return state.last_read_at


def get_read_receipt(session: Session, meeting_id: UUID, user_id: UUID) -> datetime | None:
    """When the other party last read this chat, or None."""
    meeting = _authorize(session, meeting_id, user_id)
    state = _read_state(session, meeting.id, meeting.other_party(user_id))
    return state.last_read_at if state else None
