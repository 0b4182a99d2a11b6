"""Participant ratings of events."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ndrop.models import Event, Feedback, UserProfile
from ndrop.models.feedback import MAX_RATING, MIN_RATING
from ndrop.services.errors import ConflictError, ForbiddenError, ValidationError
from ndrop.services.events import get_event
from ndrop.services.participation import is_confirmed_participant

logger = logging.getLogger(__name__)

FeedbackRow = Tuple[Feedback, Optional[str], Optional[str]]


def submit_feedback(
    session: Session,
    event_id: UUID,
    user_id: UUID,
    rating: int,
    comment: str | None = None,
) -> Feedback:
    event = get_event(session, event_id)
    if not is_confirmed_participant(session, event.id, user_id):
        raise ForbiddenError("Only participants can rate this event")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    feedback = Feedback(
        event_id=event.id,
        user_id=user_id,
        rating=rating,
        feedback=(comment or "").strip() or None,
    )
    session.add(feedback)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Feedback already submitted", reason="already_submitted") from None
    session.refresh(feedback)
    logger.info("Feedback %s rated event %s with %d", feedback.id, event.id, rating)
    return feedback


def list_feedback(session: Session, event_id: UUID | None = None) -> List[FeedbackRow]:
    """Newest first, with the author's display name and the event title."""
    statement = (
        select(Feedback, UserProfile, Event.title)
        .join(Event, Event.id == Feedback.event_id)
        .outerjoin(UserProfile, UserProfile.id == Feedback.user_id)
    )
    if event_id is not None:
        statement = statement.where(Feedback.event_id == event_id)
    statement = statement.order_by(Feedback.created_at.desc())
    return [
        (feedback, profile.display_name if profile else None, title)
        for feedback, profile, title in session.exec(statement).all()
    ]
