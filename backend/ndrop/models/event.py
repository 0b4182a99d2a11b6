from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from ndrop.core.timeutils import utcnow


class Event(SQLModel, table=True):
    """Networking event. Status is derived from the dates on read."""

    __tablename__ = "events"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    title: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    start_date: datetime = Field(nullable=False, index=True)
    end_date: datetime = Field(nullable=False, index=True)
    location: Optional[str] = Field(default=None, max_length=255)
    max_participants: Optional[int] = Field(default=None)
    current_participants: int = Field(default=0, nullable=False)
    event_code: str = Field(max_length=6, unique=True, index=True)
    image_url: Optional[str] = Field(default=None, max_length=500)
    organizer_name: Optional[str] = Field(default=None, max_length=255)
    organizer_email: Optional[str] = Field(default=None, max_length=255)
    organizer_phone: Optional[str] = Field(default=None, max_length=50)
    organizer_kakao: Optional[str] = Field(default=None, max_length=255)
    is_public: bool = Field(default=True)
    admin_created_by: Optional[UUID] = Field(
        default=None, foreign_key="admin_accounts.id", nullable=True, index=True
    )
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    def touch(self) -> None:
        self.updated_at = utcnow()


class EventTimeSlot(SQLModel, table=True):
    """Bookable meeting slot within an event."""

    __tablename__ = "event_time_slots"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    event_id: UUID = Field(foreign_key="events.id", nullable=False, index=True)
    start_time: datetime = Field(nullable=False)
    end_time: datetime = Field(nullable=False)
    is_blocked: bool = Field(default=False)
