"""WebSocket endpoint for realtime notifications and chat pushes."""

import logging
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from ndrop.core.security import verify_token
from ndrop.services.websocket_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()


def user_id_from_token(token: str) -> UUID | None:
    try:
        payload = verify_token(token, token_type="access")
        return UUID(payload.get("sub") or "")
    except ValueError as exc:
        logger.warning("WebSocket auth error: %s", exc)
        return None


@router.websocket("/notifications")
async def websocket_notifications(websocket: WebSocket, token: str = Query(...)):
    """
    Realtime channel for one user.

    Client connects with: /api/ws/notifications?token=ACCESS_TOKEN

    Messages format:
    {
        "type": "notification" | "meeting_message" | "meeting_status",
        "data": {...}
    }
    Sending "ping" returns {"type": "pong"}.
    """
    user_id = user_id_from_token(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(websocket, user_id)
    try:
        await websocket.send_json({"type": "connected", "user_id": str(user_id)})
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected gracefully for user %s", user_id)
    finally:
        await manager.disconnect(websocket, user_id)
