from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ndrop.schemas.participant import ProfileSummary


class MeetingCreate(BaseModel):
    receiver_id: UUID
    message: Optional[str] = Field(default=None, max_length=1000)


class MeetingStatusUpdate(BaseModel):
    status: Literal["accepted", "declined", "canceled", "confirmed"]
    slot_id: Optional[UUID] = None


class MeetingRead(BaseModel):
    id: UUID
    event_id: UUID
    requester_id: UUID
    receiver_id: UUID
    status: str
    message: Optional[str] = None
    slot_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MeetingListItem(MeetingRead):
    requester: Optional[ProfileSummary] = None
    receiver: Optional[ProfileSummary] = None
    other_profile: Optional[ProfileSummary] = None
    is_received: bool
    chat_available: bool


class MessageCreate(BaseModel):
    content: str = Field(max_length=2000)


class MessageRead(BaseModel):
    id: UUID
    meeting_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessagePage(BaseModel):
    messages: List[MessageRead]
    has_more: bool
    next_before: Optional[datetime] = None
    next_before_id: Optional[UUID] = None


class ReadReceipt(BaseModel):
    meeting_id: UUID
    lastReadAt: Optional[datetime] = None
