from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from ndrop.api.deps import CurrentUser
from ndrop.db import SessionDep
from ndrop.schemas import ReadReceipt
from ndrop.services import chat

router = APIRouter()


@router.get("/{meeting_id}/read-receipt", response_model=ReadReceipt, summary="When the other party last read")
def get_read_receipt(meeting_id: UUID, session: SessionDep, current_user: CurrentUser) -> ReadReceipt:
    return ReadReceipt(
        meeting_id=meeting_id,
        lastReadAt=chat.get_read_receipt(session, meeting_id, current_user.id),
    )


@router.post("/{meeting_id}/read-receipt", response_model=ReadReceipt, summary="Mark the chat as read")
def mark_read(meeting_id: UUID, session: SessionDep, current_user: CurrentUser) -> ReadReceipt:
    return ReadReceipt(meeting_id=meeting_id, lastReadAt=chat.mark_read(session, meeting_id, current_user.id))
