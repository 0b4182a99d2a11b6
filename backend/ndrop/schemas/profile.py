from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProfileUpdate(BaseModel):
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
    interest_keywords: Optional[List[str]] = None
    networking_goal: Optional[str] = Field(default=None, max_length=1000)
    profile_image_url: Optional[str] = Field(default=None, max_length=500)


class ProfileRead(ProfileUpdate):
    id: UUID
    interest_keywords: List[str] = []
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CardVisibilityUpdate(BaseModel):
    is_public: bool


class BusinessCardRead(BaseModel):
    id: UUID
    user_id: UUID
    is_public: bool
    full_name: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    introduction: Optional[str] = None
    profile_image_url: Optional[str] = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CollectCardRequest(BaseModel):
    card_id: UUID
    memo: Optional[str] = Field(default=None, max_length=1000)


class CollectedCardUpdate(BaseModel):
    memo: Optional[str] = Field(default=None, max_length=1000)
    is_favorite: Optional[bool] = None


class CollectedCardRead(BaseModel):
    id: UUID
    card_id: UUID
    memo: Optional[str] = None
    is_favorite: bool
    collected_at: datetime
    card: Optional[BusinessCardRead] = None

    model_config = ConfigDict(from_attributes=True)
