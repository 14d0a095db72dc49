"""
Notification inbox API endpoints.

Every route works on the current user's own inbox; the sweep trigger is admin only.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from app.core.database import get_db
from app.core.security import get_current_user, get_current_admin
from app.models.user import User
from app.models.notification import NotificationType
from app.services.notification_service import NotificationService
from app.services.notification_builder import NotificationBuilder
from app.schemas.notification import (
    NotificationResponse, NotificationListResponse, UnreadCountResponse,
    MarkAllReadResponse, DeadlineSweepResponse
)

router = APIRouter(prefix="/notifications")


def get_inbox(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    notification_type: Optional[NotificationType] = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    inbox: NotificationService = Depends(get_inbox)
):
    page = await inbox.get_user_notifications(
        current_user.id,
        unread_only=unread_only,
        notification_type=notification_type,
        limit=limit,
        offset=offset
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in page.notifications],
        total=page.total,
        unread_count=page.unread_count
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: User = Depends(get_current_user),
    inbox: NotificationService = Depends(get_inbox)
):
    return UnreadCountResponse(unread_count=await inbox.get_unread_count(current_user.id))


@router.put("/read-all", response_model=MarkAllReadResponse)
async def read_all(
    notification_type: Optional[NotificationType] = Query(None, alias="type"),
    current_user: User = Depends(get_current_user),
    inbox: NotificationService = Depends(get_inbox)
):
    """Mark every unread notification (optionally of one type) as read."""
    return MarkAllReadResponse(updated=await inbox.mark_all_as_read(current_user.id, notification_type))


@router.post("/sweep", response_model=DeadlineSweepResponse)
async def trigger_deadline_sweep(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Run the daily deadline and event reminder sweep on demand."""
    counts = await NotificationBuilder(db).notify_upcoming_deadlines()
    return DeadlineSweepResponse(**counts)


@router.put("/{notification_id}/read")
async def read_one(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    inbox: NotificationService = Depends(get_inbox)
):
    if not await inbox.mark_as_read(notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True}


@router.delete("/{notification_id}")
async def remove(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    inbox: NotificationService = Depends(get_inbox)
):
    if not await inbox.delete_notification(notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True}
