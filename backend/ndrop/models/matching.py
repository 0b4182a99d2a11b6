from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID, uuid4

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel

from ndrop.core.timeutils import utcnow

DEFAULT_SCORING_WEIGHTS = {
    "same_work_field": 30,
    "same_role": 20,
    "interest_match": 5,
    "rules": {"exclude_declined": True, "exclude_canceled": False},
}


class EventMatchingConfig(SQLModel, table=True):
    """Per-event matching settings."""

    __tablename__ = "event_matching_configs"

    event_id: UUID = Field(foreign_key="events.id", primary_key=True)
    max_requests_per_user: int = Field(default=3)
    scoring_weights: dict = Field(
        default_factory=lambda: dict(DEFAULT_SCORING_WEIGHTS),
        sa_column=Column(JSON, nullable=False),
    )
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


class EventMatchRecommendation(SQLModel, table=True):
    """Precomputed recommendation row; one batch per matching run."""

    __tablename__ = "event_match_recommendations"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    event_id: UUID = Field(foreign_key="events.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    recommended_user_id: UUID = Field(foreign_key="users.id", nullable=False)
    batch_id: UUID = Field(nullable=False, index=True)
    score: float = Field(default=0)
    match_reasons: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False, default=list)
    )
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
