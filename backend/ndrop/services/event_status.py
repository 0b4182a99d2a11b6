"""Lifecycle status derived from an event's dates."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Literal, TypeVar

from ndrop.core.timeutils import as_utc, utcnow

EventStatus = Literal["upcoming", "ongoing", "completed"]
EVENT_STATUSES: tuple[str, ...] = ("upcoming", "ongoing", "completed")

T = TypeVar("T")


def calculate_event_status(
    start_date: datetime | str,
    end_date: datetime | str,
    now: datetime | str | None = None,
) -> EventStatus:
    """Return upcoming before start, ongoing within [start, end), completed after."""
    start = as_utc(start_date)
    end = as_utc(end_date)
    current = as_utc(now) if now is not None else utcnow()
    if current < start:
        return "upcoming"
    if current < end:
        return "ongoing"
    return "completed"


def filter_events_by_status(
    events: Iterable[T],
    status: str | None,
    now: datetime | None = None,
) -> List[T]:
    """Keep events whose computed status matches; no filter when status is empty."""
    events = list(events)
    if not status:
        return events
    current = now or utcnow()
    return [
        event
        for event in events
        if calculate_event_status(event.start_date, event.end_date, current) == status
    ]
