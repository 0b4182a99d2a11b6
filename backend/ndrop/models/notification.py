from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import Field, SQLModel

from ndrop.core.timeutils import utcnow

TARGET_ALL = "all"
TARGET_SPECIFIC = "specific"
TARGET_EVENT_PARTICIPANTS = "event_participants"
TARGET_TYPES = (TARGET_ALL, TARGET_SPECIFIC, TARGET_EVENT_PARTICIPANTS)


class Notification(SQLModel, table=True):
    """One logical notification; audience is resolved when it is read."""

    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    title: str = Field(max_length=255)
    message: str = Field(max_length=2000)
    notification_type: str = Field(max_length=50, index=True)
    target_type: str = Field(default=TARGET_SPECIFIC, max_length=30, index=True)
    user_id: Optional[UUID] = Field(default=None, foreign_key="users.id", nullable=True, index=True)
    target_event_id: Optional[UUID] = Field(
        default=None, foreign_key="events.id", nullable=True, index=True
    )
    # "metadata" is reserved on SQLModel classes
    meta: Optional[dict] = Field(default=None, sa_column=Column("metadata", JSON, nullable=True))
    sent_by: Optional[UUID] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)


class NotificationReceipt(SQLModel, table=True):
    """Per-recipient read state, shared broadcast rows included."""

    __tablename__ = "notification_receipts"
    __table_args__ = (
        UniqueConstraint("notification_id", "user_id", name="uq_notification_receipt"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    notification_id: UUID = Field(foreign_key="notifications.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    read_at: datetime = Field(default_factory=utcnow, nullable=False)
