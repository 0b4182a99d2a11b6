"""Organizer analytics for a single event."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List
from uuid import UUID

from sqlalchemy import func
from sqlmodel import Session, select

from ndrop.core.timeutils import as_utc
from ndrop.models import (
    CollectedCard,
    Event,
    EventMeeting,
    EventMeetingMessage,
    EventParticipant,
    Feedback,
    UserProfile,
)
from ndrop.models.event_participant import PARTICIPANT_CONFIRMED
from ndrop.services.errors import ValidationError
from ndrop.services.events import get_event

logger = logging.getLogger(__name__)

GROUP_BY_HOUR = "hour"
GROUP_BY_DAY = "day"

TOP_INTERESTS = 6
TOP_ROLES = 5

# Profiles written by the web client carry either form
AFFILIATED = {"affiliated", "소속"}
UNAFFILIATED = {"unaffiliated", "미소속"}


def percent(part: int, whole: int) -> int:
    """Whole percentage rounded half up; 0 when there is nothing to divide by."""
    if whole <= 0:
        return 0
    return int(part * 100 / whole + 0.5)


def hour_label(moment: datetime) -> str:
    return as_utc(moment).strftime("%Y-%m-%d %H:00")


def day_label(moment: datetime) -> str:
    return as_utc(moment).strftime("%Y-%m-%d")


def _confirmed_ids(event_id: UUID):
    return select(EventParticipant.user_id).where(
        EventParticipant.event_id == event_id,
        EventParticipant.status == PARTICIPANT_CONFIRMED,
    )


def _collections_during(event: Event):
    """Cards saved by confirmed participants while the event ran."""
    return (
        select(CollectedCard.collected_at)
        .where(CollectedCard.collector_id.in_(_confirmed_ids(event.id)))
        .where(CollectedCard.collected_at >= event.start_date)
        .where(CollectedCard.collected_at <= event.end_date)
    )


def count_connections(session: Session, event_id: UUID) -> int:
    event = get_event(session, event_id)
    statement = select(func.count()).select_from(_collections_during(event).subquery())
    return session.exec(statement).one()


def _empty_buckets(start: datetime, end: datetime, group_by: str) -> Dict[str, int]:
    buckets: Dict[str, int] = {}
    day = as_utc(start).date()
    last_day = as_utc(end).date()
    while day <= last_day:
        if group_by == GROUP_BY_HOUR:
            for hour in range(24):
                buckets[f"{day.isoformat()} {hour:02d}:00"] = 0
        else:
            buckets[day.isoformat()] = 0
        day += timedelta(days=1)
    return buckets


def collection_timeline(session: Session, event_id: UUID, group_by: str = GROUP_BY_HOUR) -> List[Dict[str, Any]]:
    """Card collections per hour or day, with every slot of the event's days present.

    Returns an empty list when nothing was collected.
    """
    if group_by not in (GROUP_BY_HOUR, GROUP_BY_DAY):
        raise ValidationError(f"Unknown grouping: {group_by}")
    event = get_event(session, event_id)
    collected = session.exec(_collections_during(event)).all()
    if not collected:
        return []

    label = hour_label if group_by == GROUP_BY_HOUR else day_label
    buckets = _empty_buckets(event.start_date, event.end_date, group_by)
    for moment in collected:
        key = label(moment)
        if key in buckets:
            buckets[key] += 1
    return [{"date": key, "count": count} for key, count in sorted(buckets.items())]


def _work_label(profile: UserProfile) -> str | None:
    job_title = (profile.job_title or "").strip()
    work_field = (profile.work_field or "").strip()
    if profile.affiliation_type in AFFILIATED:
        return job_title or None
    if profile.affiliation_type in UNAFFILIATED:
        return work_field or None
    return job_title or work_field or None


def _top(counter: Counter, limit: int) -> List[Dict[str, Any]]:
    return [{"label": label, "value": value} for label, value in counter.most_common(limit)]


def profile_analytics(profiles: Iterable[UserProfile]) -> Dict[str, List[Dict[str, Any]]]:
    interests: Counter = Counter()
    roles: Counter = Counter()
    for profile in profiles:
        interests.update(keyword for keyword in profile.interest_keywords or [] if keyword)
        work = _work_label(profile)
        if work:
            roles[work] += 1
    return {"interest_stats": _top(interests, TOP_INTERESTS), "role_stats": _top(roles, TOP_ROLES)}


def event_report(session: Session, event_id: UUID) -> Dict[str, Any]:
    event = get_event(session, event_id)
    participants = session.exec(select(EventParticipant).where(EventParticipant.event_id == event.id)).all()
    confirmed = [p for p in participants if p.status == PARTICIPANT_CONFIRMED]
    registered, checked_in = len(participants), len(confirmed)

    capacity = event.max_participants or 0
    connections = count_connections(session, event.id)

    message_rows = session.exec(
        select(func.count(EventMeetingMessage.id), func.count(func.distinct(EventMeetingMessage.sender_id)))
        .join(EventMeeting, EventMeeting.id == EventMeetingMessage.meeting_id)
        .where(EventMeeting.event_id == event.id)
    ).one()
    total_messages, senders = message_rows

    average = session.exec(select(func.avg(Feedback.rating)).where(Feedback.event_id == event.id)).one()

    checkins = Counter(hour_label(p.joined_at) for p in confirmed)
    profiles = session.exec(
        select(UserProfile).where(UserProfile.id.in_([p.user_id for p in participants]))
    ).all()

    logger.info("Built report for event %s (%d participants)", event.id, registered)
    return {
        "event_info": {
            "title": event.title,
            "start_date": event.start_date,
            "end_date": event.end_date,
            "location": event.location,
        },
        "kpi": {
            "attendance_rate": percent(checked_in, capacity if capacity > 0 else registered),
            "total_participants": registered,
            "checked_in": checked_in,
            "connections": connections,
            "avg_connections_per_person": round(connections / checked_in, 1) if checked_in else 0,
            "messages": total_messages,
            "satisfaction": float(average) if average is not None else None,
            "networking_participation_rate": percent(senders, checked_in),
            "networking_participants": senders,
        },
        "checkin_timeline": [{"date": key, "count": count} for key, count in sorted(checkins.items())],
        "analytics": profile_analytics(profiles),
    }
