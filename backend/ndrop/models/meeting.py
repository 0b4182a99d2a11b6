from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel

from ndrop.core.timeutils import utcnow

MEETING_PENDING = "pending"
MEETING_ACCEPTED = "accepted"
MEETING_DECLINED = "declined"
MEETING_CANCELED = "canceled"
MEETING_CONFIRMED = "confirmed"

ACTIVE_MEETING_STATUSES = (MEETING_PENDING, MEETING_ACCEPTED, MEETING_CONFIRMED)
CHAT_STATUSES = (MEETING_ACCEPTED, MEETING_CONFIRMED)


class EventMeeting(SQLModel, table=True):
    """One-to-one meeting request between two participants of an event."""

    __tablename__ = "event_meetings"
    __table_args__ = (
        # A slot can back at most one confirmed meeting
        Index(
            "uq_event_meetings_confirmed_slot",
            "slot_id",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    event_id: UUID = Field(foreign_key="events.id", nullable=False, index=True)
    requester_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    receiver_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    status: str = Field(default=MEETING_PENDING, max_length=20, index=True)
    message: Optional[str] = Field(default=None, max_length=1000)
    slot_id: Optional[UUID] = Field(
        default=None, foreign_key="event_time_slots.id", nullable=True
    )
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    def other_party(self, user_id: UUID) -> UUID:
        return self.receiver_id if user_id == self.requester_id else self.requester_id

    def has_party(self, user_id: UUID) -> bool:
        return user_id in (self.requester_id, self.receiver_id)


class EventMeetingMessage(SQLModel, table=True):
    """Chat message inside a meeting."""

    __tablename__ = "event_meeting_messages"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    meeting_id: UUID = Field(foreign_key="event_meetings.id", nullable=False, index=True)
    sender_id: UUID = Field(foreign_key="users.id", nullable=False)
    content: str = Field(max_length=2000)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)


class MeetingReadState(SQLModel, table=True):
    """Last time a participant read a meeting's chat."""

    __tablename__ = "meeting_read_states"
    __table_args__ = (UniqueConstraint("meeting_id", "user_id", name="uq_meeting_read_state"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    meeting_id: UUID = Field(foreign_key="event_meetings.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False)
    last_read_at: datetime = Field(default_factory=utcnow, nullable=False)
