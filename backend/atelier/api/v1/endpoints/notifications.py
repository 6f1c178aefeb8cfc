"""
Notification Inbox Endpoints

Any signed-in user reads and acknowledges their own notifications.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from atelier.api.deps import get_current_actor
from atelier.core.permissions import Actor
from atelier.db.session import get_db
from atelier.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from atelier.services import notifications

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/", response_model=NotificationListResponse)
async def list_my_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(notifications.DEFAULT_PAGE_SIZE, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Current user's notifications, newest first"""
    items, total = notifications.list_notifications(db, actor, page=page, page_size=page_size)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=notifications.total_pages(total, page_size),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return UnreadCountResponse(count=notifications.unread_count(db, actor))


@router.patch("/", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return MarkAllReadResponse(updated=notifications.mark_all_read(db, actor))


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return notifications.mark_read(db, actor, notification_id)
