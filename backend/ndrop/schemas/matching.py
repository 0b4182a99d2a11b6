from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RecommendationItem(BaseModel):
    user_id: UUID
    full_name: Optional[str] = None
    nickname: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    work_field: Optional[str] = None
    role: Optional[str] = None
    interest_keywords: List[str] = []
    networking_goal: Optional[str] = None
    profile_image_url: Optional[str] = None
    score: float = 0
    match_reasons: List[str] = []
    summary: Optional[str] = None
    type: Optional[Literal["strategic", "community"]] = None


class RecommendationList(BaseModel):
    recommendations: List[RecommendationItem]
    source: Literal["ai", "baseline"]


class AIRecommendationRequest(BaseModel):
    userProfile: Dict[str, Any] = {}
    candidates: List[Dict[str, Any]] = []
    eventContext: Dict[str, Any] = {}


class AIRecommendationEntry(BaseModel):
    id: str
    type: Literal["strategic", "community"]
    reason: str


class AIRecommendationResponse(BaseModel):
    recommendations: List[AIRecommendationEntry]


class MatchingConfigUpdate(BaseModel):
    max_requests_per_user: Optional[int] = Field(default=None, ge=1, le=50)
    scoring_weights: Optional[Dict[str, Any]] = None


class MatchingConfigRead(BaseModel):
    event_id: UUID
    max_requests_per_user: int
    scoring_weights: Dict[str, Any]
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MatchingRunResult(BaseModel):
    batch_id: UUID
    count: int
