from typing import List
from uuid import UUID

from fastapi import APIRouter, Query, Request, Response, status

from ndrop.api.deps import CurrentUser
from ndrop.core.config import settings
from ndrop.core.limiter import limiter
from ndrop.db import SessionDep
from ndrop.schemas import (
    BusinessCardRead,
    CardVisibilityUpdate,
    CollectCardRequest,
    CollectedCardRead,
    CollectedCardUpdate,
    EventRead,
    JoinEventRequest,
    LeaveEventRequest,
    NotificationRead,
    ParticipantRead,
    ProfileRead,
    ProfileUpdate,
    UserNotificationCreate,
)
from ndrop.services import notifications as notification_service
from ndrop.services import participation, profiles
from ndrop.services.errors import NotFoundError

router = APIRouter()


@router.post(
    "/join-event",
    response_model=ParticipantRead,
    status_code=status.HTTP_201_CREATED,
    summary="Join an event by code or id",
)
@limiter.limit(settings.JOIN_RATE_LIMIT)
def join_event(
    request: Request,
    payload: JoinEventRequest,
    session: SessionDep,
    current_user: CurrentUser,
) -> ParticipantRead:
    if payload.eventCode:
        event = participation.find_event_by_code(session, payload.eventCode)
        if event is None:
            raise NotFoundError("Invalid event code", reason="invalid_code")
        event_id = event.id
    else:
        event_id = payload.eventId

    participant = participation.join(session, event_id, current_user.id)
    return ParticipantRead.from_row(participant, profiles.get_profile(session, current_user.id))


@router.post("/leave-event", response_model=EventRead, summary="Leave an event")
def leave_event(payload: LeaveEventRequest, session: SessionDep, current_user: CurrentUser) -> EventRead:
    event = participation.leave(session, payload.eventId, current_user.id)
    return EventRead.from_event(event)


@router.get("/get-events", response_model=List[EventRead], summary="Events the user has joined")
def get_my_events(session: SessionDep, current_user: CurrentUser) -> List[EventRead]:
    return [EventRead.from_event(event) for event in participation.list_user_events(session, current_user.id)]


@router.get("/profile", response_model=ProfileRead, summary="Get own profile")
def get_profile(session: SessionDep, current_user: CurrentUser) -> ProfileRead:
    return profiles.get_or_create_profile(session, current_user.id)


@router.put("/profile", response_model=ProfileRead, summary="Update own profile")
def put_profile(payload: ProfileUpdate, session: SessionDep, current_user: CurrentUser) -> ProfileRead:
    return profiles.update_profile(session, current_user.id, payload.model_dump(exclude_unset=True))


@router.get("/business-card", response_model=BusinessCardRead, summary="Get own business card")
def get_business_card(session: SessionDep, current_user: CurrentUser) -> BusinessCardRead:
    profiles.get_or_create_profile(session, current_user.id)
    return profiles.get_card_by_user(session, current_user.id)


@router.patch("/business-card", response_model=BusinessCardRead, summary="Change card visibility")
def patch_business_card(
    payload: CardVisibilityUpdate,
    session: SessionDep,
    current_user: CurrentUser,
) -> BusinessCardRead:
    return profiles.set_card_visibility(session, current_user.id, payload.is_public)


@router.get("/saved-cards", response_model=List[CollectedCardRead], summary="List saved cards")
def list_saved_cards(
    session: SessionDep,
    current_user: CurrentUser,
    favorites_only: bool = Query(default=False),
) -> List[CollectedCardRead]:
    return [
        CollectedCardRead(
            **collected.model_dump(),
            card=BusinessCardRead.model_validate(card),
        )
        for collected, card in profiles.list_collected_cards(session, current_user.id, favorites_only)
    ]


@router.post(
    "/saved-cards",
    response_model=CollectedCardRead,
    status_code=status.HTTP_201_CREATED,
    summary="Save a business card",
)
def save_card(payload: CollectCardRequest, session: SessionDep, current_user: CurrentUser) -> CollectedCardRead:
    collected = profiles.collect_card(session, current_user.id, payload.card_id, payload.memo)
    return CollectedCardRead.model_validate(collected)


@router.patch("/saved-cards/{collected_id}", response_model=CollectedCardRead, summary="Update a saved card")
def update_saved_card(
    collected_id: UUID,
    payload: CollectedCardUpdate,
    session: SessionDep,
    current_user: CurrentUser,
) -> CollectedCardRead:
    collected = profiles.update_collected_card(
        session, collected_id, current_user.id, payload.model_dump(exclude_unset=True)
    )
    return CollectedCardRead.model_validate(collected)


@router.delete(
    "/saved-cards/{collected_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a saved card",
)
def delete_saved_card(collected_id: UUID, session: SessionDep, current_user: CurrentUser) -> Response:
    profiles.remove_collected_card(session, collected_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/create-notification",
    response_model=NotificationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a notification for a user",
)
def create_user_notification(
    payload: UserNotificationCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> NotificationRead:
    notification = notification_service.create_notification(
        session,
        title=payload.title,
        message=payload.message,
        notification_type=payload.notification_type,
        user_id=payload.user_id or current_user.id,
        metadata=payload.metadata,
        sent_by=current_user.id,
    )
    session.commit()
    session.refresh(notification)
    notification_service.publish_notifications(session, [notification])
    return NotificationRead(**notification_service.notification_payload(notification))
