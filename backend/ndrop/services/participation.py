"""Joining, leaving and removal of event participants."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ndrop.models import Event, EventParticipant, UserProfile
from ndrop.models.event_participant import PARTICIPANT_CONFIRMED, PARTICIPANT_REMOVED
from ndrop.services.errors import ConflictError, ForbiddenError, NotFoundError
from ndrop.services.notifications import notify_event_joined, publish_notifications

logger = logging.getLogger(__name__)

ParticipantRow = Tuple[EventParticipant, Optional[UserProfile]]


def normalize_event_code(code: str) -> str:
    return code.strip().upper()


def find_event_by_code(session: Session, code: str) -> Event | None:
    """Case-insensitive lookup of an event by its join code."""
    normalized = normalize_event_code(code)
    if not normalized:
        return None
    return session.exec(select(Event).where(Event.event_code == normalized)).one_or_none()


def _lock_event(session: Session, event_id: UUID) -> Event:
    # Row lock serializes joins per event where the backend supports it
    event = session.exec(
        select(Event).where(Event.id == event_id).with_for_update()
    ).one_or_none()
    if event is None:
        raise NotFoundError("Event not found")
    return event


def get_participant(session: Session, event_id: UUID, user_id: UUID) -> EventParticipant | None:
    return session.exec(
        select(EventParticipant).where(
            EventParticipant.event_id == event_id,
            EventParticipant.user_id == user_id,
        )
    ).one_or_none()


def is_confirmed_participant(session: Session, event_id: UUID, user_id: UUID) -> bool:
    participant = get_participant(session, event_id, user_id)
    return participant is not None and participant.status == PARTICIPANT_CONFIRMED


def count_confirmed(session: Session, event_id: UUID) -> int:
    return session.exec(
        select(func.count(EventParticipant.id)).where(
            EventParticipant.event_id == event_id,
            EventParticipant.status == PARTICIPANT_CONFIRMED,
        )
    ).one()


def recount_participants(session: Session, event: Event) -> int:
    """Set current_participants from the confirmed rows in this transaction."""
    session.flush()
    event.current_participants = count_confirmed(session, event.id)
    event.touch()
    session.add(event)
    return event.current_participants


def join(session: Session, event_id: UUID, user_id: UUID) -> EventParticipant:
    event = _lock_event(session, event_id)

    existing = get_participant(session, event_id, user_id)
    if existing is not None:
        if existing.status == PARTICIPANT_REMOVED:
            raise ForbiddenError("You were removed from this event and cannot rejoin", reason="removed")
        raise ConflictError("Already joined this event", reason="already_joined")

    if event.max_participants is not None and count_confirmed(session, event_id) >= event.max_participants:
        raise ConflictError("Event is full", reason="event_full")

    participant = EventParticipant(event_id=event_id, user_id=user_id, status=PARTICIPANT_CONFIRMED)
    session.add(participant)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Already joined this event", reason="already_joined") from None

    recount_participants(session, event)
    notification = notify_event_joined(session, user_id, event)
    session.commit()
    session.refresh(participant)
    logger.info("User %s joined event %s (%d participants)", user_id, event_id, event.current_participants)

    publish_notifications(session, [notification])
    return participant


def leave(session: Session, event_id: UUID, user_id: UUID) -> Event:
    event = _lock_event(session, event_id)
    participant = get_participant(session, event_id, user_id)
    if participant is None:
        raise NotFoundError("Not a participant of this event")
    if participant.status == PARTICIPANT_REMOVED:
        raise ForbiddenError("Removed participants cannot leave the event", reason="removed")

    session.delete(participant)
    recount_participants(session, event)
    session.commit()
    session.refresh(event)
    logger.info("User %s left event %s", user_id, event_id)
    return event


def _remove(session: Session, event: Event, participant: EventParticipant) -> EventParticipant:
    if participant.status != PARTICIPANT_REMOVED:
        participant.status = PARTICIPANT_REMOVED
        session.add(participant)
        recount_participants(session, event)
        session.commit()
        session.refresh(participant)
        logger.info("Participant %s removed from event %s", participant.user_id, event.id)
    return participant


def remove(session: Session, event_id: UUID, user_id: UUID) -> EventParticipant:
    """Ban a user from an event; permanent, joining is refused afterwards."""
    event = _lock_event(session, event_id)
    participant = get_participant(session, event_id, user_id)
    if participant is None:
        raise NotFoundError("Participant not found")
    return _remove(session, event, participant)


def remove_by_id(session: Session, participant_id: UUID) -> EventParticipant:
    participant = session.get(EventParticipant, participant_id)
    if participant is None:
        raise NotFoundError("Participant not found")
    event = _lock_event(session, participant.event_id)
    return _remove(session, event, participant)


def get_participants(
    session: Session,
    event_id: UUID,
    include_removed: bool = False,
    status: str | None = None,
    search: str | None = None,
    exclude_user_id: UUID | None = None,
) -> List[ParticipantRow]:
    statement = (
        select(EventParticipant, UserProfile)
        .outerjoin(UserProfile, UserProfile.id == EventParticipant.user_id)
        .where(EventParticipant.event_id == event_id)
    )
    if status:
        statement = statement.where(EventParticipant.status == status)
    elif not include_removed:
        statement = statement.where(EventParticipant.status == PARTICIPANT_CONFIRMED)
    if exclude_user_id is not None:
        statement = statement.where(EventParticipant.user_id != exclude_user_id)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(
                UserProfile.full_name.ilike(pattern),
                UserProfile.nickname.ilike(pattern),
                UserProfile.company.ilike(pattern),
                UserProfile.job_title.ilike(pattern),
            )
        )
    statement = statement.order_by(EventParticipant.joined_at)
    return list(session.exec(statement).all())


def list_user_events(session: Session, user_id: UUID) -> List[Event]:
    return list(
        session.exec(
            select(Event)
            .join(EventParticipant, EventParticipant.event_id == Event.id)
            .where(
                EventParticipant.user_id == user_id,
                EventParticipant.status == PARTICIPANT_CONFIRMED,
            )
            .order_by(Event.start_date)
        ).all()
    )


def reconcile_participant_counts(session: Session) -> Dict[UUID, Tuple[int, int]]:
    """Recompute every event's counter; returns {event_id: (stored, actual)} for drifted rows."""
    drift: Dict[UUID, Tuple[int, int]] = {}
    for event in session.exec(select(Event)).all():
        actual = count_confirmed(session, event.id)
        if actual != event.current_participants:
            drift[event.id] = (event.current_participants, actual)
            logger.warning(
                "Participant count drift on event %s: stored=%d actual=%d",
                event.id,
                event.current_participants,
                actual,
            )
            event.current_participants = actual
            session.add(event)
    session.commit()
    return drift
