"""
Redis Pub/Sub listener.
Relays realtime envelopes published by any API worker to the WebSocket
clients connected to this process.
"""

import asyncio
import json
import logging
from typing import Optional
from uuid import UUID

import redis.asyncio as aioredis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from ndrop.core.config import settings
from ndrop.services.realtime import AUDIENCE_ALL
from ndrop.services.websocket_manager import ConnectionManager, manager

logger = logging.getLogger(__name__)


async def dispatch_envelope(envelope: dict, connections: ConnectionManager = manager) -> int:
    """Deliver one envelope to local sockets; returns the number of users targeted."""
    message = {"type": envelope.get("type"), "data": envelope.get("data", {})}
    audience = envelope.get("audience")
    if audience == AUDIENCE_ALL:
        await connections.broadcast(message)
        return len(connections.get_active_users())

    user_ids = (audience or {}).get("user_ids", [])
    for user_id in user_ids:
        await connections.send_personal_message(message, UUID(user_id))
    return len(user_ids)


class RedisPubSubService:
    """Subscribes to the realtime channel and forwards to WebSockets."""

    def __init__(self, connections: ConnectionManager = manager):
        self.connections = connections
        self.redis: Optional[aioredis.Redis] = None
        self.pubsub: Optional[PubSub] = None
        self._listener_task: Optional[asyncio.Task] = None

    async def connect(self):
        self.redis = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        self.pubsub = self.redis.pubsub()
        await self.pubsub.subscribe(settings.REALTIME_CHANNEL)
        logger.info("Redis Pub/Sub subscribed to %s", settings.REALTIME_CHANNEL)
        self._listener_task = asyncio.create_task(self._listen())

    async def disconnect(self):
        if self._listener_task:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass

        if self.pubsub:
            await self.pubsub.unsubscribe(settings.REALTIME_CHANNEL)
            await self.pubsub.aclose()

        if self.redis:
            await self.redis.aclose()

        logger.info("Redis Pub/Sub disconnected")

    async def _listen(self):
        logger.info("Starting Redis Pub/Sub listener")
        try:
            async for message in self.pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    envelope = json.loads(message["data"])
                    await dispatch_envelope(envelope, self.connections)
                except (ValueError, KeyError, TypeError) as exc:
                    logger.error("Dropping malformed realtime message: %s", exc)
                except Exception:
                    # One bad delivery must not stop the listener for everyone else
                    logger.exception("Failed to dispatch realtime message")
        except asyncio.CancelledError:
            logger.info("Redis Pub/Sub listener cancelled")
        except RedisError as exc:
            logger.error("Redis Pub/Sub listener error: %s", exc, exc_info=True)


# Global instance
redis_pubsub = RedisPubSubService()
