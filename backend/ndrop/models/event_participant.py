from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ndrop.core.timeutils import utcnow

PARTICIPANT_CONFIRMED = "confirmed"
PARTICIPANT_REMOVED = "removed"


class EventParticipant(SQLModel, table=True):
    """Membership of a user in an event. A removed row is a permanent ban."""

    __tablename__ = "event_participants"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_event_participant"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    event_id: UUID = Field(foreign_key="events.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    status: str = Field(default=PARTICIPANT_CONFIRMED, max_length=20, index=True)
    joined_at: datetime = Field(default_factory=utcnow, nullable=False)
