from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from ndrop.models import EventParticipant, UserProfile


class ProfileSummary(BaseModel):
    id: UUID
    nickname: Optional[str] = None
    full_name: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    work_field: Optional[str] = None
    role: Optional[str] = None
    interest_keywords: List[str] = []
    profile_image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ParticipantRead(BaseModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    status: str
    joined_at: datetime
    profile: Optional[ProfileSummary] = None

    @classmethod
    def from_row(cls, participant: EventParticipant, profile: UserProfile | None) -> "ParticipantRead":
        return cls(
            **participant.model_dump(),
            profile=ProfileSummary.model_validate(profile) if profile else None,
        )


class JoinEventRequest(BaseModel):
    eventCode: Optional[str] = None
    eventId: Optional[UUID] = None

    @model_validator(mode="after")
    def require_code_or_id(self) -> "JoinEventRequest":
        if not self.eventCode and not self.eventId:
            raise ValueError("eventCode or eventId is required")
        return self


class LeaveEventRequest(BaseModel):
    eventId: UUID


class AdminParticipantsRequest(BaseModel):
    eventId: UUID
    status: Optional[str] = None


class RemoveParticipantRequest(BaseModel):
    participantId: Optional[UUID] = None
    eventId: Optional[UUID] = None
    userId: Optional[UUID] = None

    @model_validator(mode="after")
    def require_target(self) -> "RemoveParticipantRequest":
        if not self.participantId and not (self.eventId and self.userId):
            raise ValueError("participantId or eventId and userId are required")
        return self
