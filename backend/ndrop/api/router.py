from fastapi import APIRouter

from ndrop.api.v1 import (
    admin,
    auth,
    cards,
    events,
    health,
    matching,
    meetings,
    notifications,
    read_receipts,
    user,
    websocket,
)

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(meetings.router, prefix="/events", tags=["meetings"])
api_router.include_router(read_receipts.router, prefix="/meetings", tags=["meetings"])
api_router.include_router(matching.router, prefix="", tags=["matching"])
api_router.include_router(user.router, prefix="/user", tags=["user"])
api_router.include_router(cards.router, prefix="/business-cards", tags=["business-cards"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(websocket.router, prefix="/ws", tags=["websocket"])
