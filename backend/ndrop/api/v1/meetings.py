from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from ndrop.api.deps import CurrentUser
from ndrop.db import SessionDep
from ndrop.schemas import (
    MeetingCreate,
    MeetingListItem,
    MeetingRead,
    MeetingStatusUpdate,
    MessageCreate,
    MessagePage,
    MessageRead,
    ProfileSummary,
)
from ndrop.services import chat
from ndrop.services import meetings as meeting_service

router = APIRouter()


def _summary(profile) -> Optional[ProfileSummary]:
    return ProfileSummary.model_validate(profile) if profile else None


@router.get("/{event_id}/meetings", response_model=List[MeetingListItem], summary="List my meetings")
def list_meetings(event_id: UUID, session: SessionDep, current_user: CurrentUser) -> List[MeetingListItem]:
    items = []
    for meeting, requester, receiver in meeting_service.list_meetings(session, event_id, current_user.id):
        is_received = meeting.receiver_id == current_user.id
        items.append(
            MeetingListItem(
                **meeting.model_dump(),
                requester=_summary(requester),
                receiver=_summary(receiver),
                other_profile=_summary(requester if is_received else receiver),
                is_received=is_received,
                chat_available=meeting_service.chat_available(meeting),
            )
        )
    return items


@router.post(
    "/{event_id}/meetings",
    response_model=MeetingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request a meeting",
)
def create_meeting(
    event_id: UUID,
    payload: MeetingCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> MeetingRead:
    return meeting_service.create_meeting(
        session, event_id, current_user.id, payload.receiver_id, payload.message
    )


@router.patch("/{event_id}/meetings/{meeting_id}", response_model=MeetingRead, summary="Change meeting status")
def update_meeting(
    event_id: UUID,
    meeting_id: UUID,
    payload: MeetingStatusUpdate,
    session: SessionDep,
    current_user: CurrentUser,
) -> MeetingRead:
    return meeting_service.update_status(
        session, event_id, meeting_id, current_user.id, payload.status, payload.slot_id
    )


@router.get(
    "/{event_id}/meetings/{meeting_id}/messages",
    response_model=MessagePage,
    summary="List chat messages",
)
def list_messages(
    event_id: UUID,
    meeting_id: UUID,
    session: SessionDep,
    current_user: CurrentUser,
    before: Optional[datetime] = Query(default=None, description="Return messages older than this"),
    before_id: Optional[UUID] = Query(default=None, description="Id of the last message already seen"),
    limit: int = Query(default=chat.DEFAULT_PAGE_SIZE, ge=1, le=chat.MAX_PAGE_SIZE),
) -> MessagePage:
    page = chat.list_messages(
        session, meeting_id, current_user.id, before, limit, event_id=event_id, before_id=before_id
    )
    return MessagePage(
        messages=[MessageRead.model_validate(message) for message in page["messages"]],
        has_more=page["has_more"],
        next_before=page["next_before"],
        next_before_id=page["next_before_id"],
    )


@router.post(
    "/{event_id}/meetings/{meeting_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Send a chat message",
)
def send_message(
    event_id: UUID,
    meeting_id: UUID,
    payload: MessageCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> MessageRead:
    return chat.send_message(session, meeting_id, current_user.id, payload.content, event_id=event_id)
