from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class NotificationRead(BaseModel):
    id: UUID
    title: str
    message: str
    notification_type: str
    target_type: str
    target_event_id: Optional[UUID] = None
    metadata: Optional[dict] = None
    created_at: datetime
    read_at: Optional[datetime] = None
    is_read: bool = False


class NotificationPage(BaseModel):
    items: List[NotificationRead]
    next_before: Optional[datetime] = None
    next_before_id: Optional[UUID] = None


class UnreadCount(BaseModel):
    count: int


class UserNotificationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=2000)
    notification_type: str = "general"
    user_id: Optional[UUID] = None
    metadata: Optional[dict] = None


class NoticeCreate(BaseModel):
    eventId: UUID
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=2000)


class AdminNotificationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=2000)
    notification_type: str = "announcement"
    target_type: Literal["all", "specific", "event_participants"]
    target_event_id: Optional[UUID] = None
    target_ids: List[UUID] = []

    @model_validator(mode="after")
    def check_target(self) -> "AdminNotificationCreate":
        if self.target_type == "specific" and not self.target_ids:
            raise ValueError("target_ids is required for specific notifications")
        if self.target_type == "event_participants" and not self.target_event_id:
            raise ValueError("target_event_id is required for event notifications")
        return self
