"""Participant matching: a fast local baseline, optionally re-ranked by AI.

Phase 1 (baseline) never waits on the network. Phase 2 asks the external
model to re-rank the phase 1 candidates and only replaces the list when it
gets a usable, non-empty answer.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple
from uuid import UUID, uuid4

from sqlmodel import Session, delete, select

from ndrop.core.timeutils import utcnow
from ndrop.models import (
    Event,
    EventMatchingConfig,
    EventMatchRecommendation,
    EventMeeting,
    EventParticipant,
    UserProfile,
)
from ndrop.models.event_participant import PARTICIPANT_CONFIRMED
from ndrop.models.matching import DEFAULT_SCORING_WEIGHTS
from ndrop.models.meeting import ACTIVE_MEETING_STATUSES, MEETING_CANCELED, MEETING_DECLINED
from ndrop.services.ai_client import RecommendationRanker
from ndrop.services.errors import ForbiddenError, NotFoundError, UpstreamError, ValidationError
from ndrop.services.event_status import calculate_event_status
from ndrop.services.participation import is_confirmed_participant

logger = logging.getLogger(__name__)

SOURCE_AI = "ai"
SOURCE_BASELINE = "baseline"


def get_config(session: Session, event_id: UUID) -> EventMatchingConfig:
    """Stored config for the event, or an unsaved default."""
    config = session.get(EventMatchingConfig, event_id)
    if config is None:
        config = EventMatchingConfig(event_id=event_id, scoring_weights=dict(DEFAULT_SCORING_WEIGHTS))
    return config


def upsert_config(
    session: Session,
    event_id: UUID,
    max_requests_per_user: int | None = None,
    scoring_weights: Mapping[str, Any] | None = None,
) -> EventMatchingConfig:
    if session.get(Event, event_id) is None:
        raise NotFoundError("Event not found")
    if max_requests_per_user is not None and max_requests_per_user < 1:
        raise ValidationError("max_requests_per_user must be at least 1")

    config = get_config(session, event_id)
    if max_requests_per_user is not None:
        config.max_requests_per_user = max_requests_per_user
    if scoring_weights is not None:
        merged = dict(config.scoring_weights or {})
        merged.update(scoring_weights)
        config.scoring_weights = merged
    config.updated_at = utcnow()
    session.add(config)
    session.commit()
    session.refresh(config)
    return config


def _weights(config: EventMatchingConfig) -> Dict[str, Any]:
    weights = dict(DEFAULT_SCORING_WEIGHTS)
    weights.update(config.scoring_weights or {})
    return weights


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def score_pair(
    user: UserProfile,
    candidate: UserProfile,
    weights: Mapping[str, Any],
) -> Tuple[float, List[str]]:
    """Score a candidate for a user; returns (score, human-readable reasons)."""
    score = 0.0
    reasons: List[str] = []
    if _norm(user.work_field) and _norm(user.work_field) == _norm(candidate.work_field):
        score += weights.get("same_work_field", 30)
        reasons.append(f"Same field: {candidate.work_field}")
    if _norm(user.role) and _norm(user.role) == _norm(candidate.role):
        score += weights.get("same_role", 20)
        reasons.append(f"Same role: {candidate.role}")

    mine = {_norm(k) for k in user.interest_keywords or [] if _norm(k)}
    common = [k for k in candidate.interest_keywords or [] if _norm(k) in mine]
    if common:
        score += len(common) * weights.get("interest_match", 5)
        reasons.append("Shared interests: " + ", ".join(common))
    return score, reasons


def is_complete_profile(profile: UserProfile | None) -> bool:
    """A recommendable profile has a name and at least one professional detail."""
    if profile is None or not (profile.display_name or "").strip():
        return False
    return any((getattr(profile, field) or "").strip() for field in ("job_title", "company", "work_field"))


def _excluded_statuses(weights: Mapping[str, Any]) -> Tuple[str, ...]:
    rules = weights.get("rules") or {}
    statuses = list(ACTIVE_MEETING_STATUSES)
    if rules.get("exclude_declined", True):
        statuses.append(MEETING_DECLINED)
    if rules.get("exclude_canceled", False):
        statuses.append(MEETING_CANCELED)
    return tuple(statuses)


def _excluded_pairs(session: Session, event_id: UUID, statuses: Tuple[str, ...]) -> Set[frozenset]:
    rows = session.exec(
        select(EventMeeting.requester_id, EventMeeting.receiver_id).where(
            EventMeeting.event_id == event_id,
            EventMeeting.status.in_(statuses),
        )
    ).all()
    return {frozenset((requester, receiver)) for requester, receiver in rows}


def _participant_profiles(session: Session, event_id: UUID) -> Dict[UUID, Optional[UserProfile]]:
    rows = session.exec(
        select(EventParticipant.user_id, UserProfile)
        .outerjoin(UserProfile, UserProfile.id == EventParticipant.user_id)
        .where(
            EventParticipant.event_id == event_id,
            EventParticipant.status == PARTICIPANT_CONFIRMED,
        )
    ).all()
    return {user_id: profile for user_id, profile in rows}


def candidate_payload(
    profile: UserProfile,
    score: float,
    reasons: List[str],
) -> Dict[str, Any]:
    return {
        "user_id": str(profile.id),
        "full_name": profile.display_name,
        "nickname": profile.nickname,
        "company": profile.company,
        "job_title": profile.job_title,
        "work_field": profile.work_field,
        "role": profile.role,
        "interest_keywords": list(profile.interest_keywords or []),
        "networking_goal": profile.networking_goal,
        "profile_image_url": profile.profile_image_url,
        "score": score,
        "match_reasons": reasons,
        "summary": " / ".join(reasons) if reasons else None,
        "type": None,
    }


def _rank_for_user(
    user_id: UUID,
    profiles: Mapping[UUID, Optional[UserProfile]],
    excluded: Set[frozenset],
    weights: Mapping[str, Any],
) -> List[Tuple[float, List[str], UserProfile]]:
    user_profile = profiles.get(user_id) or UserProfile(id=user_id)
    ranked = []
    for other_id, profile in profiles.items():
        if other_id == user_id or frozenset((user_id, other_id)) in excluded:
            continue
        if not is_complete_profile(profile):
            continue
        score, reasons = score_pair(user_profile, profile, weights)
        ranked.append((score, reasons, profile))
    ranked.sort(key=lambda item: (-item[0], str(item[2].id)))
    return ranked


def run_matching(session: Session, event_id: UUID) -> Dict[str, Any]:
    """Score every participant, store the top picks as a new batch, drop older batches."""
    if session.get(Event, event_id) is None:
        raise NotFoundError("Event not found")
    config = get_config(session, event_id)
    weights = _weights(config)
    profiles = _participant_profiles(session, event_id)
    excluded = _excluded_pairs(session, event_id, _excluded_statuses(weights))

    batch_id = uuid4()
    count = 0
    for user_id in profiles:
        for score, reasons, profile in _rank_for_user(user_id, profiles, excluded, weights)[
            : config.max_requests_per_user
        ]:
            session.add(
                EventMatchRecommendation(
                    event_id=event_id,
                    user_id=user_id,
                    recommended_user_id=profile.id,
                    batch_id=batch_id,
                    score=score,
                    match_reasons=reasons,
                )
            )
            count += 1

    session.exec(
        delete(EventMatchRecommendation).where(
            EventMatchRecommendation.event_id == event_id,
            EventMatchRecommendation.batch_id != batch_id,
        )
    )
    session.commit()
    logger.info("Matching run for event %s stored %d recommendations (batch %s)", event_id, count, batch_id)
    return {"batch_id": batch_id, "count": count}


def _require_participant(session: Session, event_id: UUID, user_id: UUID) -> None:
    if session.get(Event, event_id) is None:
        raise NotFoundError("Event not found")
    if not is_confirmed_participant(session, event_id, user_id):
        raise ForbiddenError("Join the event to see recommendations", reason="not_participant")


def baseline_recommendations(session: Session, event_id: UUID, user_id: UUID) -> List[Dict[str, Any]]:
    """Phase 1: stored batch rows for the user, or a live baseline when none exist."""
    _require_participant(session, event_id, user_id)
    config = get_config(session, event_id)
    weights = _weights(config)
    excluded = _excluded_pairs(session, event_id, _excluded_statuses(weights))

    stored = session.exec(
        select(EventMatchRecommendation, UserProfile)
        .join(UserProfile, UserProfile.id == EventMatchRecommendation.recommended_user_id)
        .where(
            EventMatchRecommendation.event_id == event_id,
            EventMatchRecommendation.user_id == user_id,
        )
        .order_by(EventMatchRecommendation.score.desc())
    ).all()
    if stored:
        return [
            candidate_payload(profile, row.score, list(row.match_reasons or []))
            for row, profile in stored
            if is_complete_profile(profile)
            and frozenset((user_id, profile.id)) not in excluded
            and is_confirmed_participant(session, event_id, profile.id)
        ]

    profiles = _participant_profiles(session, event_id)
    return [
        candidate_payload(profile, score, reasons)
        for score, reasons, profile in _rank_for_user(user_id, profiles, excluded, weights)[
            : config.max_requests_per_user
        ]
    ]


def merge_ai_ranking(candidates: List[Dict[str, Any]], ranking) -> List[Dict[str, Any]]:
    """Keep AI order, attach its reasons; ids the baseline does not know are dropped."""
    by_id = {candidate["user_id"]: candidate for candidate in candidates}
    merged: List[Dict[str, Any]] = []
    seen: Set[str] = set()
    for item in ranking:
        candidate = by_id.get(item.id)
        if candidate is None or item.id in seen:
            continue
        seen.add(item.id)
        merged.append({**candidate, "summary": item.reason or candidate["summary"], "type": item.type})
    return merged


def _profile_context(session: Session, user_id: UUID) -> Dict[str, Any]:
    profile = session.get(UserProfile, user_id) or UserProfile(id=user_id)
    return candidate_payload(profile, 0, [])


def _event_context(event: Event) -> Dict[str, Any]:
    return {
        "id": str(event.id),
        "title": event.title,
        "description": event.description,
        "location": event.location,
        "status": calculate_event_status(event.start_date, event.end_date),
    }


def get_recommendations(
    session: Session,
    event_id: UUID,
    user_id: UUID,
    ranker: RecommendationRanker,
) -> Dict[str, Any]:
    """Phase 2: AI re-ranking with the baseline as the authoritative fallback."""
    baseline = baseline_recommendations(session, event_id, user_id)
    if not baseline:
        return {"recommendations": [], "source": SOURCE_BASELINE}

    event = session.get(Event, event_id)
    try:
        ranking = ranker.rank(_profile_context(session, user_id), baseline, _event_context(event))
    except UpstreamError as exc:
        logger.warning("AI recommendation failed for user %s in event %s: %s", user_id, event_id, exc)
        return {"recommendations": baseline, "source": SOURCE_BASELINE}

    merged = merge_ai_ranking(baseline, ranking)
    if not merged:
        logger.info("AI returned no usable recommendations for user %s; keeping baseline", user_id)
        return {"recommendations": baseline, "source": SOURCE_BASELINE}
    return {"recommendations": merged, "source": SOURCE_AI}
