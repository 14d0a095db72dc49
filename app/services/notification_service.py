"""
Inbox storage for in-app notifications.

Rows are only ever created here (through the notification builder) and
afterwards only their read state changes, besides deletion by the owner.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func

from app.models.notification import Notification, NotificationType


class InboxPage(NamedTuple):
    notifications: List[Notification]
    total: int
    unread_count: int


def _scope(user_id: UUID, unread_only: bool = False, notification_type: Optional[NotificationType] = None):
    conditions = [Notification.user_id == user_id]
    if unread_only:
        conditions.append(Notification.is_read == False)
    if notification_type:
        conditions.append(Notification.type == notification_type)
    return conditions


class NotificationService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_notification(
        self,
        user_id: UUID,
        type: NotificationType,
        title: str,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """Persist one notification; each row is committed on its own."""
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=None if data is None else json.dumps(data)
        )
        self.db.add(notification)
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def _count(self, conditions) -> int:
        result = await self.db.execute(select(func.count(Notification.id)).where(*conditions))
        return result.scalar() or 0

    async def get_user_notifications(
        self,
        user_id: UUID,
        unread_only: bool = False,
        notification_type: Optional[NotificationType] = None,
        limit: int = 50,
        offset: int = 0
    ) -> InboxPage:
        """Newest first. total counts the filtered set, unread_count the whole inbox."""
        conditions = _scope(user_id, unread_only, notification_type)
        result = await self.db.execute(
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc(), Notification.id)
            .offset(offset)
            .limit(limit)
        )
        return InboxPage(
            notifications=list(result.scalars().all()),
            total=await self._count(conditions),
            unread_count=await self.get_unread_count(user_id)
        )

    async def get_unread_count(self, user_id: UUID) -> int:
        return await self._count(_scope(user_id, unread_only=True))

    async def _set_read(self, conditions) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(*conditions)
            .values(is_read=True, read_at=datetime.now())
        )
        await self.db.commit()
        return result.rowcount

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> bool:
        """False when the notification does not exist or belongs to someone else."""
        updated = await self._set_read([Notification.id == notification_id, Notification.user_id == user_id])
        return updated > 0

    async def mark_all_as_read(self, user_id: UUID, notification_type: Optional[NotificationType] = None) -> int:
        return await self._set_read(_scope(user_id, True, notification_type))

    async def delete_notification(self, notification_id: UUID, user_id: UUID) -> bool:
        result = await self.db.execute(
            delete(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id
            )
        )
        await self.db.commit()
        return result.rowcount > 0
