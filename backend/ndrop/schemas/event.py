from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ndrop.core.timeutils import as_utc
from ndrop.models import Event
from ndrop.services.event_status import calculate_event_status


class EventBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    image_url: Optional[str] = None
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    organizer_phone: Optional[str] = None
    organizer_kakao: Optional[str] = None
    is_public: bool = True


class EventCreate(EventBase):
    @field_validator("end_date")
    @classmethod
    def check_end_after_start(cls, end_date: datetime, info: ValidationInfo) -> datetime:
        start_date: datetime | None = info.data.get("start_date")
        if start_date and as_utc(end_date) <= as_utc(start_date):
            raise ValueError("end_date must be after start_date")
        return end_date


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    image_url: Optional[str] = None
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    organizer_phone: Optional[str] = None
    organizer_kakao: Optional[str] = None
    is_public: Optional[bool] = None

    @field_validator("title", "start_date", "end_date", "is_public")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class EventRead(EventBase):
    id: UUID
    event_code: str
    current_participants: int
    status: Literal["upcoming", "ongoing", "completed"]
    admin_created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_event(cls, event: Event) -> "EventRead":
        return cls.model_validate(
            {**event.model_dump(), "status": calculate_event_status(event.start_date, event.end_date)}
        )


class TimeSlotCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    is_blocked: bool = False


class TimeSlotRead(BaseModel):
    id: UUID
    event_id: UUID
    start_time: datetime
    end_time: datetime
    is_blocked: bool
    is_booked: bool = False

    model_config = ConfigDict(from_attributes=True)
