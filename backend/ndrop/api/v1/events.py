from __future__ import annotations

from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from ndrop.api.deps import CurrentUser
from ndrop.db import SessionDep
from ndrop.models import Feedback
from ndrop.schemas import EventRead, FeedbackCreate, FeedbackRead, ParticipantRead, TimeSlotRead
from ndrop.services import events as event_service
from ndrop.services import feedback as feedback_service
from ndrop.services import meetings as meeting_service
from ndrop.services import participation
from ndrop.services.errors import ForbiddenError

router = APIRouter()


@router.get("", response_model=List[EventRead], summary="List public events")
def list_events(
    session: SessionDep,
    current_user: CurrentUser,
    status_filter: Optional[Literal["upcoming", "ongoing", "completed"]] = Query(default=None, alias="status"),
) -> List[EventRead]:
    events = event_service.list_events(session, status=status_filter, public_only=True)
    return [EventRead.from_event(event) for event in events]


@router.get("/code/{code}", response_model=EventRead, summary="Find event by join code")
def get_event_by_code(code: str, session: SessionDep, current_user: CurrentUser) -> EventRead:
    event = participation.find_event_by_code(session, code)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid event code")
    return EventRead.from_event(event)


@router.get("/{event_id}", response_model=EventRead, summary="Get event")
def get_event(event_id: UUID, session: SessionDep, current_user: CurrentUser) -> EventRead:
    return EventRead.from_event(event_service.get_event(session, event_id))


@router.get(
    "/{event_id}/participants",
    response_model=List[ParticipantRead],
    summary="List confirmed participants",
)
def list_participants(
    event_id: UUID,
    session: SessionDep,
    current_user: CurrentUser,
    q: Optional[str] = Query(default=None, max_length=100, description="Search by name or company"),
) -> List[ParticipantRead]:
    event_service.get_event(session, event_id)
    if not participation.is_confirmed_participant(session, event_id, current_user.id):
        raise ForbiddenError("Join the event to see its participants")
    rows = participation.get_participants(
        session, event_id, search=q, exclude_user_id=current_user.id
    )
    return [ParticipantRead.from_row(participant, profile) for participant, profile in rows]


@router.get("/{event_id}/time-slots", response_model=List[TimeSlotRead], summary="List time slots")
def list_time_slots(event_id: UUID, session: SessionDep, current_user: CurrentUser) -> List[TimeSlotRead]:
    event_service.get_event(session, event_id)
    return [
        TimeSlotRead(**slot.model_dump(), is_booked=booked)
        for slot, booked in meeting_service.list_time_slots(session, event_id)
    ]


@router.post(
    "/{event_id}/feedback",
    response_model=FeedbackRead,
    status_code=status.HTTP_201_CREATED,
    summary="Rate an event",
)
def submit_feedback(
    event_id: UUID,
    payload: FeedbackCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> Feedback:
    return feedback_service.submit_feedback(session, event_id, current_user.id, payload.rating, payload.feedback)
