import logging
from uuid import UUID

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ndrop.api.deps import AIClientDep, CurrentUser
from ndrop.core.config import settings
from ndrop.core.limiter import limiter
from ndrop.db import SessionDep
from ndrop.schemas import AIRecommendationRequest, AIRecommendationResponse, RecommendationList
from ndrop.services import recommendations
from ndrop.services.errors import UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/events/{event_id}/matching/recommendations",
    response_model=RecommendationList,
    summary="Baseline recommendations (fast)",
)
def get_baseline_recommendations(
    event_id: UUID,
    session: SessionDep,
    current_user: CurrentUser,
) -> RecommendationList:
    items = recommendations.baseline_recommendations(session, event_id, current_user.id)
    return RecommendationList(recommendations=items, source=recommendations.SOURCE_BASELINE)


@router.post(
    "/events/{event_id}/matching/recommendations",
    response_model=RecommendationList,
    summary="AI-ranked recommendations with baseline fallback",
)
@limiter.limit(settings.AI_RATE_LIMIT)
def get_ai_recommendations(
    request: Request,
    event_id: UUID,
    session: SessionDep,
    current_user: CurrentUser,
    ranker: AIClientDep,
) -> RecommendationList:
    return RecommendationList(
        **recommendations.get_recommendations(session, event_id, current_user.id, ranker)
    )


@router.post("/ai/recommendation", response_model=AIRecommendationResponse, summary="Rank candidates with AI")
@limiter.limit(settings.AI_RATE_LIMIT)
def ai_recommendation(
    request: Request,
    payload: AIRecommendationRequest,
    current_user: CurrentUser,
    ranker: AIClientDep,
):
    if not payload.candidates:
        return AIRecommendationResponse(recommendations=[])
    try:
        ranking = ranker.rank(payload.userProfile, payload.candidates, payload.eventContext)
    except UpstreamError as exc:
        logger.warning("AI recommendation request failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": exc.detail, "recommendations": []},
        )
    return AIRecommendationResponse(
        recommendations=[{"id": item.id, "type": item.type, "reason": item.reason} for item in ranking]
    )
