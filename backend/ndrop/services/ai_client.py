"""HTTP client for the external recommendation model."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Protocol, Sequence

import httpx

from ndrop.core.config import settings
from ndrop.services.errors import UpstreamError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
RECOMMENDATION_TYPES = ("strategic", "community")


@dataclass(frozen=True)
class AIRecommendation:
    id: str
    type: str
    reason: str


class RecommendationRanker(Protocol):
    """Anything that can rank candidates for a user."""

    def rank(
        self,
        user_profile: Mapping[str, Any],
        candidates: Sequence[Mapping[str, Any]],
        event_context: Mapping[str, Any] | None = None,
    ) -> List[AIRecommendation]:
        ...


def build_prompt(
    user_profile: Mapping[str, Any],
    candidates: Sequence[Mapping[str, Any]],
    event_context: Mapping[str, Any] | None,
    limit: int,
) -> str:
    return (
        "You are a networking assistant at a professional event.\n"
        f"Event: {json.dumps(event_context or {}, ensure_ascii=False, default=str)}\n"
        f"Current user: {json.dumps(dict(user_profile), ensure_ascii=False, default=str)}\n"
        f"Candidates: {json.dumps(list(candidates), ensure_ascii=False, default=str)}\n"
        f"Pick the {limit} best people for the current user to meet. Answer with JSON only: "
        '{"recommendations": [{"id": "<candidate id>", "type": "strategic" | "community", '
        '"reason": "<one sentence>"}]}'
    )


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_recommendations(payload: Any) -> List[AIRecommendation]:
    """Accept {"recommendations": [...]}, a bare list, or text wrapping either."""
    if isinstance(payload, str):
        try:
            payload = json.loads(strip_code_fences(payload))
        except ValueError as exc:
            raise UpstreamError("AI response was not valid JSON") from exc
    if isinstance(payload, dict):
        if "recommendations" in payload:
            payload = payload["recommendations"]
        elif isinstance(payload.get("text"), str):
            return parse_recommendations(payload["text"])
    if not isinstance(payload, list):
        raise UpstreamError("AI response had an unexpected shape")

    items: List[AIRecommendation] = []
    for entry in payload:
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        kind = entry.get("type") if entry.get("type") in RECOMMENDATION_TYPES else "strategic"
        items.append(AIRecommendation(id=str(entry["id"]), type=kind, reason=str(entry.get("reason") or "")))
    return items


class AIRecommendationClient:
    """Posts profile and candidates to AI_RECOMMENDATION_URL and parses the ranking."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        limit: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url if url is not None else settings.AI_RECOMMENDATION_URL
        self.api_key = api_key if api_key is not None else settings.AI_API_KEY
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS
        self.limit = limit or settings.AI_MAX_RECOMMENDATIONS
        self._transport = transport

    def rank(
        self,
        user_profile: Mapping[str, Any],
        candidates: Sequence[Mapping[str, Any]],
        event_context: Mapping[str, Any] | None = None,
    ) -> List[AIRecommendation]:
        if not self.url:
            raise UpstreamError("AI recommendation service is not configured")

        body = {
            "userProfile": dict(user_profile),
            "candidates": list(candidates),
            "eventContext": dict(event_context or {}),
            "maxRecommendations": self.limit,
            "prompt": build_prompt(user_profile, candidates, event_context, self.limit),
        }
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    self.url,
                    content=json.dumps(body, default=str),
                    headers={"Content-Type": "application/json", **headers},
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamError(f"AI request failed: {exc}") from exc

        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text
        return parse_recommendations(payload)[: self.limit]


def get_ai_client() -> RecommendationRanker:
    return AIRecommendationClient()
