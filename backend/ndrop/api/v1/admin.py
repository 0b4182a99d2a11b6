from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from pydantic import BaseModel

from ndrop.api.deps import CurrentAdmin
from ndrop.core.security import create_admin_token
from ndrop.db import SessionDep
from ndrop.models.notification import TARGET_EVENT_PARTICIPANTS, TARGET_SPECIFIC
from ndrop.schemas import (
    AdminLogin,
    AdminNotificationCreate,
    AdminParticipantsRequest,
    AdminToken,
    CollectionTimeline,
    CollectionTimelineRequest,
    ConnectionCount,
    EventCreate,
    EventRead,
    EventReport,
    EventReportRequest,
    EventUpdate,
    FeedbackRead,
    MatchingConfigRead,
    MatchingConfigUpdate,
    MatchingRunResult,
    NoticeCreate,
    NotificationRead,
    ParticipantRead,
    RemoveParticipantRequest,
    TimeSlotCreate,
    TimeSlotRead,
)
from ndrop.services import accounts, participation, recommendations, reports
from ndrop.services import events as event_service
from ndrop.services import feedback as feedback_service
from ndrop.services import meetings as meeting_service
from ndrop.services import notifications as notification_service

logger = logging.getLogger(__name__)

router = APIRouter()


class EventIdRequest(BaseModel):
    eventId: UUID


@router.post("/login", response_model=AdminToken, summary="Admin login")
def admin_login(payload: AdminLogin, session: SessionDep) -> AdminToken:
    admin = accounts.authenticate_admin(session, payload.username, payload.password)
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )
    return AdminToken(
        token=create_admin_token(admin.id, admin.username, admin.role_id),
        admin_id=admin.id,
        username=admin.username,
        role_id=admin.role_id,
    )


@router.get("/get-events", response_model=List[EventRead], summary="List all events")
def get_events(
    session: SessionDep,
    admin: CurrentAdmin,
    status_filter: Optional[str] = Query(default=None, alias="status"),
) -> List[EventRead]:
    events = sorted(
        event_service.list_events(session, status=status_filter),
        key=lambda event: event.created_at,
        reverse=True,
    )
    return [EventRead.from_event(event) for event in events]


@router.post(
    "/create-event",
    response_model=EventRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
)
def create_event(payload: EventCreate, session: SessionDep, admin: CurrentAdmin) -> EventRead:
    event = event_service.create_event(session, admin.admin_id, payload.model_dump())
    return EventRead.from_event(event)


@router.put("/update-event/{event_id}", response_model=EventRead, summary="Update an event")
def update_event(
    event_id: UUID,
    payload: EventUpdate,
    session: SessionDep,
    admin: CurrentAdmin,
) -> EventRead:
    event = event_service.update_event(
        session, event_id, admin.admin_id, payload.model_dump(exclude_unset=True)
    )
    return EventRead.from_event(event)


@router.delete("/delete-event/{event_id}", summary="Delete an event")
def delete_event(event_id: UUID, session: SessionDep, admin: CurrentAdmin) -> dict:
    event_service.delete_event(session, event_id, admin.admin_id)
    return {"success": True}


@router.post("/get-participants", response_model=List[ParticipantRead], summary="List all participants")
def get_participants(
    payload: AdminParticipantsRequest,
    session: SessionDep,
    admin: CurrentAdmin,
) -> List[ParticipantRead]:
    event_service.get_event(session, payload.eventId)
    rows = participation.get_participants(
        session, payload.eventId, include_removed=True, status=payload.status
    )
    return [ParticipantRead.from_row(participant, profile) for participant, profile in rows]


@router.post("/remove-participant", response_model=ParticipantRead, summary="Remove a participant")
def remove_participant(
    payload: RemoveParticipantRequest,
    session: SessionDep,
    admin: CurrentAdmin,
) -> ParticipantRead:
    if payload.participantId:
        participant = participation.remove_by_id(session, payload.participantId)
    else:
        participant = participation.remove(session, payload.eventId, payload.userId)
    logger.info("Admin %s removed participant %s", admin.admin_id, participant.id)
    return ParticipantRead.from_row(participant, None)


@router.post("/send-notice", summary="Send a notice to event participants")
def send_notice(payload: NoticeCreate, session: SessionDep, admin: CurrentAdmin) -> dict:
    event_service.get_event(session, payload.eventId)
    notification = notification_service.create_notification(
        session,
        title=payload.title,
        message=payload.message,
        notification_type="event_notice",
        target_type=TARGET_EVENT_PARTICIPANTS,
        target_event_id=payload.eventId,
        sent_by=admin.admin_id,
    )
    session.commit()
    session.refresh(notification)
    notification_service.publish_notifications(session, [notification])
    return {
        "success": True,
        "notification": NotificationRead(**notification_service.notification_payload(notification)),
        "targetCount": participation.count_confirmed(session, payload.eventId),
    }


@router.post("/send-notification", summary="Send a notification")
def send_notification(
    payload: AdminNotificationCreate,
    session: SessionDep,
    admin: CurrentAdmin,
) -> dict:
    if payload.target_type == TARGET_SPECIFIC:
        targets = [{"user_id": user_id} for user_id in dict.fromkeys(payload.target_ids)]
    else:
        targets = [{}]
    created = [
        notification_service.create_notification(
            session,
            title=payload.title,
            message=payload.message,
            notification_type=payload.notification_type,
            target_type=payload.target_type,
            target_event_id=payload.target_event_id,
            sent_by=admin.admin_id,
            **target,
        )
        for target in targets
    ]
    session.commit()
    for notification in created:
        session.refresh(notification)
    notification_service.publish_notifications(session, created)
    return {
        "success": True,
        "notifications": [
            NotificationRead(**notification_service.notification_payload(n)) for n in created
        ],
    }


@router.post("/generate-qr", summary="Generate the join QR code for an event")
def generate_qr(payload: EventIdRequest, session: SessionDep, admin: CurrentAdmin) -> dict:
    event = event_service.get_event(session, payload.eventId)
    return {"success": True, **event_service.generate_qr(event)}


@router.post("/event-report", response_model=EventReport, summary="Event analytics report")
def event_report(payload: EventReportRequest, session: SessionDep, admin: CurrentAdmin) -> EventReport:
    return EventReport(**reports.event_report(session, payload.eventId))


@router.post("/event-connections", response_model=ConnectionCount, summary="Cards exchanged during an event")
def event_connections(payload: EventReportRequest, session: SessionDep, admin: CurrentAdmin) -> ConnectionCount:
    return ConnectionCount(total_connections=reports.count_connections(session, payload.eventId))


@router.post(
    "/event-collection-timeline",
    response_model=CollectionTimeline,
    summary="Card collections over the event's days",
)
def event_collection_timeline(
    payload: CollectionTimelineRequest,
    session: SessionDep,
    admin: CurrentAdmin,
) -> CollectionTimeline:
    return CollectionTimeline(timeline=reports.collection_timeline(session, payload.eventId, payload.groupBy))


@router.get("/feedback", response_model=List[FeedbackRead], summary="List event feedback")
def list_feedback(
    session: SessionDep,
    admin: CurrentAdmin,
    event_id: Optional[UUID] = Query(default=None, description="Only feedback for this event"),
) -> List[FeedbackRead]:
    return [
        FeedbackRead(**feedback.model_dump(), user_name=user_name, event_title=event_title)
        for feedback, user_name, event_title in feedback_service.list_feedback(session, event_id)
    ]


@router.post("/upload-image", summary="Upload an event image")
async def upload_image(admin: CurrentAdmin, file: UploadFile = File(...)) -> dict:
    content = await file.read()
    url = event_service.save_event_image(file.filename, content)
    return {"success": True, "url": url}


@router.post(
    "/events/{event_id}/time-slots",
    response_model=TimeSlotRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a meeting time slot",
)
def create_time_slot(
    event_id: UUID,
    payload: TimeSlotCreate,
    session: SessionDep,
    admin: CurrentAdmin,
) -> TimeSlotRead:
    slot = meeting_service.create_time_slot(
        session, event_id, payload.start_time, payload.end_time, payload.is_blocked
    )
    return TimeSlotRead(**slot.model_dump())


@router.get("/events/{event_id}/matching/config", response_model=MatchingConfigRead, summary="Matching config")
def get_matching_config(event_id: UUID, session: SessionDep, admin: CurrentAdmin) -> MatchingConfigRead:
    event_service.get_event(session, event_id)
    return MatchingConfigRead.model_validate(recommendations.get_config(session, event_id))


@router.post("/events/{event_id}/matching/config", response_model=MatchingConfigRead, summary="Save matching config")
def save_matching_config(
    event_id: UUID,
    payload: MatchingConfigUpdate,
    session: SessionDep,
    admin: CurrentAdmin,
) -> MatchingConfigRead:
    config = recommendations.upsert_config(
        session, event_id, payload.max_requests_per_user, payload.scoring_weights
    )
    return MatchingConfigRead.model_validate(config)


@router.post("/events/{event_id}/matching/run", response_model=MatchingRunResult, summary="Run matching")
def run_matching(event_id: UUID, session: SessionDep, admin: CurrentAdmin) -> MatchingRunResult:
    return MatchingRunResult(**recommendations.run_matching(session, event_id))
