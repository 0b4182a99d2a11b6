from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from ndrop.api.deps import CurrentUser
from ndrop.db import SessionDep
from ndrop.schemas import NotificationPage, NotificationRead, UnreadCount
from ndrop.services import notifications as notification_service

router = APIRouter()


@router.get("", response_model=NotificationPage, summary="List notifications")
def list_notifications(
    session: SessionDep,
    current_user: CurrentUser,
    unread_only: bool = Query(default=False, description="Show only unread notifications"),
    limit: int = Query(default=50, ge=1, le=100, description="Maximum number of notifications"),
    before: Optional[datetime] = Query(default=None, description="Return notifications older than this"),
    before_id: Optional[UUID] = Query(default=None, description="Id of the last notification already seen"),
) -> NotificationPage:
    rows = notification_service.list_for_user(
        session, current_user.id, unread_only, limit, before, before_id
    )
    items = [NotificationRead(**notification_service.notification_payload(n, read_at)) for n, read_at in rows]
    full_page = len(items) == limit
    return NotificationPage(
        items=items,
        next_before=items[-1].created_at if full_page else None,
        next_before_id=items[-1].id if full_page else None,
    )


@router.get("/unread-count", response_model=UnreadCount, summary="Get unread notifications count")
def get_unread_count(session: SessionDep, current_user: CurrentUser) -> UnreadCount:
    return UnreadCount(count=notification_service.unread_count(session, current_user.id))


@router.patch("/mark-all-read", summary="Mark all notifications as read")
def mark_all_read(session: SessionDep, current_user: CurrentUser) -> dict:
    return {"marked": notification_service.mark_all_as_read(session, current_user.id)}


@router.patch("/{notification_id}/read", response_model=NotificationRead, summary="Mark one notification as read")
def mark_read(notification_id: UUID, session: SessionDep, current_user: CurrentUser) -> NotificationRead:
    notification, read_at = notification_service.mark_as_read(session, notification_id, current_user.id)
    return NotificationRead(**notification_service.notification_payload(notification, read_at))
