"""Profiles are canonical; business cards are regenerated from them."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ndrop.core.timeutils import utcnow
from ndrop.models import BusinessCard, CollectedCard, User, UserProfile
from ndrop.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ndrop.services.notifications import notify_card_collected, publish_notifications

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "nickname",
    "full_name",
    "email",
    "company",
    "job_title",
    "work_field",
    "role",
    "affiliation_type",
    "contact",
    "introduction",
    "interest_keywords",
    "networking_goal",
    "profile_image_url",
)
CARD_FIELDS = (
    "company",
    "job_title",
    "contact",
    "email",
    "introduction",
    "profile_image_url",
)


def get_profile(session: Session, user_id: UUID) -> UserProfile | None:
    return session.get(UserProfile, user_id)


def get_or_create_profile(session: Session, user_id: UUID, commit: bool = True) -> UserProfile:
    profile = session.get(UserProfile, user_id)
    if profile is None:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        profile = UserProfile(id=user_id, email=user.email)
        session.add(profile)
        sync_business_card(session, profile)
        if commit:
            session.commit()
            session.refresh(profile)
    return profile


def display_name(session: Session, user_id: UUID) -> str | None:
    profile = session.get(UserProfile, user_id)
    return profile.display_name if profile else None


def get_card_by_user(session: Session, user_id: UUID) -> BusinessCard | None:
    return session.exec(select(BusinessCard).where(BusinessCard.user_id == user_id)).one_or_none()


def sync_business_card(session: Session, profile: UserProfile) -> BusinessCard:
    """Regenerate the card view from the profile; visibility is preserved."""
    card = get_card_by_user(session, profile.id)
    if card is None:
        card = BusinessCard(user_id=profile.id)
    card.full_name = profile.display_name
    for field in CARD_FIELDS:
        setattr(card, field, getattr(profile, field))
    card.updated_at = utcnow()
    session.add(card)
    return card


def apply_profile_changes(session: Session, user_id: UUID, changes: Mapping[str, Any]) -> UserProfile:
    """Stage profile and card changes in the session without committing."""
    profile = get_or_create_profile(session, user_id, commit=False)
    for field, value in changes.items():
        if field not in PROFILE_FIELDS:
            raise ValidationError(f"Unknown profile field: {field}")
        if field == "interest_keywords":
            value = [keyword.strip() for keyword in (value or []) if keyword and keyword.strip()]
        setattr(profile, field, value)
    profile.updated_at = utcnow()
    session.add(profile)
    sync_business_card(session, profile)
    return profile


def update_profile(session: Session, user_id: UUID, changes: Mapping[str, Any]) -> UserProfile:
    profile = apply_profile_changes(session, user_id, changes)
    session.commit()
    session.refresh(profile)
    return profile


def set_card_visibility(session: Session, user_id: UUID, is_public: bool) -> BusinessCard:
    get_or_create_profile(session, user_id)
    card = get_card_by_user(session, user_id)
    card.is_public = is_public
    card.updated_at = utcnow()
    session.add(card)
    session.commit()
    session.refresh(card)
    return card


def get_card_for_viewer(session: Session, card_id: UUID, viewer_id: UUID) -> BusinessCard:
    card = session.get(BusinessCard, card_id)
    # Private cards look the same as missing ones to everybody but the owner
    if card is None or (card.user_id != viewer_id and not card.is_public):
        raise NotFoundError("Business card not found")
    return card


def collect_card(
    session: Session,
    collector_id: UUID,
    card_id: UUID,
    memo: str | None = None,
) -> CollectedCard:
    card = get_card_for_viewer(session, card_id, collector_id)
    if card.user_id == collector_id:
        raise ValidationError("You cannot save your own card", reason="own_card")

    collected = CollectedCard(collector_id=collector_id, card_id=card_id, memo=memo)
    session.add(collected)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Card already saved", reason="already_saved") from None

    notification = notify_card_collected(session, collector_id, card.full_name)
    session.commit()
    session.refresh(collected)
    publish_notifications(session, [notification])
    return collected


def list_collected_cards(
    session: Session,
    collector_id: UUID,
    favorites_only: bool = False,
) -> List[Tuple[CollectedCard, BusinessCard]]:
    statement = (
        select(CollectedCard, BusinessCard)
        .join(BusinessCard, BusinessCard.id == CollectedCard.card_id)
        .where(CollectedCard.collector_id == collector_id)
    )
    if favorites_only:
        statement = statement.where(CollectedCard.is_favorite == True)  # noqa: E712
    statement = statement.order_by(CollectedCard.collected_at.desc())
    return list(session.exec(statement).all())


def _owned_collected_card(session: Session, collected_id: UUID, collector_id: UUID) -> CollectedCard:
    collected = session.get(CollectedCard, collected_id)
    if collected is None:
        raise NotFoundError("Saved card not found")
    if collected.collector_id != collector_id:
        raise ForbiddenError("Not your saved card")
    return collected


def update_collected_card(
    session: Session,
    collected_id: UUID,
    collector_id: UUID,
    changes: Mapping[str, Any],
) -> CollectedCard:
    collected = _owned_collected_card(session, collected_id, collector_id)
    if "memo" in changes:
        collected.memo = changes["memo"]
    if changes.get("is_favorite") is not None:
        collected.is_favorite = changes["is_favorite"]
    session.add(collected)
    session.commit()
    session.refresh(collected)
    return collected


def remove_collected_card(session: Session, collected_id: UUID, collector_id: UUID) -> None:
    collected = _owned_collected_card(session, collected_id, collector_id)
    session.delete(collected)
    session.commit()
