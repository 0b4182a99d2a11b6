"""
WebSocket connection manager for realtime delivery.
Keeps the open sockets of each user and fans messages out to them.
"""

import asyncio
import logging
from typing import Dict, Set
from uuid import UUID

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections per user."""

    def __init__(self):
        # {user_id: {websocket1, websocket2, ...}}
        self.active_connections: Dict[UUID, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: UUID):
        await websocket.accept()
        async with self._lock:
            self.active_connections.setdefault(user_id, set()).add(websocket)
        logger.info(
            "WebSocket connected: user_id=%s, connections=%d",
            user_id,
            len(self.active_connections[user_id]),
        )

    async def disconnect(self, websocket: WebSocket, user_id: UUID):
        async with self._lock:
            sockets = self.active_connections.get(user_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self.active_connections[user_id]
        logger.info("WebSocket disconnected: user_id=%s", user_id)

    async def send_personal_message(self, message: dict, user_id: UUID):
        """Send message to every open socket of one user."""
        connections = list(self.active_connections.get(user_id, ()))
        if not connections:
            return

        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.warning("Error sending %s to user %s: %s", message.get("type"), user_id, exc)
                disconnected.append(websocket)

        if disconnected:
            async with self._lock:
                sockets = self.active_connections.get(user_id, set())
                for ws in disconnected:
                    sockets.discard(ws)
                if not sockets:
                    self.active_connections.pop(user_id, None)

    async def broadcast(self, message: dict):
        async with self._lock:
            user_ids = list(self.active_connections.keys())
        for user_id in user_ids:
            await self.send_personal_message(message, user_id)

    def get_active_users(self) -> Set[UUID]:
        return set(self.active_connections.keys())


# Global instance
manager = ConnectionManager()
