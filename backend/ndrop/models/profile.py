from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import Field, SQLModel

from ndrop.core.timeutils import utcnow


class UserProfile(SQLModel, table=True):
    """Canonical identity record; the business card is derived from it."""

    __tablename__ = "user_profiles"

    id: UUID = Field(foreign_key="users.id", primary_key=True)
    nickname: Optional[str] = Field(default=None, max_length=100)
    full_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    company: Optional[str] = Field(default=None, max_length=255)
    job_title: Optional[str] = Field(default=None, max_length=255)
    work_field: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = Field(default=None, max_length=100)
    affiliation_type: Optional[str] = Field(default=None, max_length=50)
    contact: Optional[str] = Field(default=None, max_length=255)
    introduction: Optional[str] = Field(default=None, max_length=2000)
    interest_keywords: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False, default=list)
    )
    networking_goal: Optional[str] = Field(default=None, max_length=1000)
    profile_image_url: Optional[str] = Field(default=None, max_length=500)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    @property
    def display_name(self) -> str | None:
        return self.full_name or self.nickname


class BusinessCard(SQLModel, table=True):
    """Read view of a profile; only is_public is written directly."""

    __tablename__ = "business_cards"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: UUID = Field(foreign_key="users.id", unique=True, index=True)
    is_public: bool = Field(default=True)
    full_name: Optional[str] = Field(default=None, max_length=255)
    company: Optional[str] = Field(default=None, max_length=255)
    job_title: Optional[str] = Field(default=None, max_length=255)
    contact: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    introduction: Optional[str] = Field(default=None, max_length=2000)
    profile_image_url: Optional[str] = Field(default=None, max_length=500)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


class CollectedCard(SQLModel, table=True):
    """A card saved into another user's wallet."""

    __tablename__ = "collected_cards"
    __table_args__ = (UniqueConstraint("collector_id", "card_id", name="uq_collected_card"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    collector_id: UUID = Field(foreign_key="users.id", index=True)
    card_id: UUID = Field(foreign_key="business_cards.id", index=True)
    memo: Optional[str] = Field(default=None, max_length=1000)
    is_favorite: bool = Field(default=False)
    collected_at: datetime = Field(default_factory=utcnow, nullable=False)
