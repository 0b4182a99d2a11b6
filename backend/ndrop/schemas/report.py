from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ndrop.models.feedback import MAX_RATING, MIN_RATING


class FeedbackCreate(BaseModel):
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    feedback: Optional[str] = Field(default=None, max_length=2000)


class FeedbackRead(BaseModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    rating: int
    feedback: Optional[str] = None
    created_at: datetime
    user_name: Optional[str] = None
    event_title: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class EventReportRequest(BaseModel):
    eventId: UUID


class CollectionTimelineRequest(BaseModel):
    eventId: UUID
    groupBy: Literal["hour", "day"] = "hour"


class TimelinePoint(BaseModel):
    date: str
    count: int


class StatItem(BaseModel):
    label: str
    value: int


class EventInfo(BaseModel):
    title: str
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None


class EventKpi(BaseModel):
    attendance_rate: int
    total_participants: int
    checked_in: int
    connections: int
    avg_connections_per_person: float
    messages: int
    satisfaction: Optional[float] = None
    networking_participation_rate: int
    networking_participants: int


class EventAnalytics(BaseModel):
    interest_stats: List[StatItem] = []
    role_stats: List[StatItem] = []


class EventReport(BaseModel):
    event_info: EventInfo
    kpi: EventKpi
    checkin_timeline: List[TimelinePoint] = []
    analytics: EventAnalytics


class ConnectionCount(BaseModel):
    success: bool = True
    total_connections: int


class CollectionTimeline(BaseModel):
    success: bool = True
    timeline: List[TimelinePoint] = []
