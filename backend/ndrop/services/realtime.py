"""Post-commit publishing of realtime envelopes to Redis."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional
from uuid import UUID

import redis
from redis.exceptions import RedisError

from ndrop.core.config import settings

logger = logging.getLogger(__name__)

AUDIENCE_ALL = "all"

_redis_client: Optional[redis.Redis] = None


def _get_redis_client() -> redis.Redis:
    """Get or create the publishing Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def set_redis_client(client: redis.Redis | None) -> None:
    global _redis_client
    _redis_client = client


def build_envelope(
    audience: Iterable[UUID] | str,
    message_type: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    if audience == AUDIENCE_ALL:
        target: Any = AUDIENCE_ALL
    else:
        target = {"user_ids": sorted({str(user_id) for user_id in audience})}
    return {"audience": target, "type": message_type, "data": data}


def publish(
    audience: Iterable[UUID] | str,
    message_type: str,
    data: dict[str, Any],
) -> bool:
    """Publish an envelope after the database write committed.

    Delivery is best effort: failures are logged and clients fall back to
    polling, so the caller never sees them.
    """
    if not settings.REALTIME_ENABLED:
        return False
    envelope = build_envelope(audience, message_type, data)
    if envelope["audience"] != AUDIENCE_ALL and not envelope["audience"]["user_ids"]:
        return False
    try:
        _get_redis_client().publish(
            settings.REALTIME_CHANNEL, json.dumps(envelope, default=str)
        )
    except RedisError as exc:
        logger.warning("Realtime publish of %s failed: %s", message_type, exc)
        return False
    logger.debug("Published %s to %s", message_type, envelope["audience"])
    return True
