import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.user import User
from app.models.checklist import (
    Checklist, ChecklistGroup, ChecklistItem,
    ChecklistItemProgress, ChecklistProgress, ChecklistItemStatus
)
from app.services.notification_builder import NotificationBuilder


logger = logging.getLogger(__name__)

DONE_STATUSES = (ChecklistItemStatus.COMPLETED, ChecklistItemStatus.NOT_NEEDED)


def compute_progress(statuses: List[Optional[ChecklistItemStatus]], total: int) -> int:
    """Percentage of items that are completed or not needed."""
    if total == 0:
        return 0
    done = sum(1 for status in statuses if status in DONE_STATUSES)
    return round(100 * done / total)


class ChecklistService:
    """Per-student checklist progress."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_checklist(self, checklist_id: UUID) -> Optional[Checklist]:
        result = await self.db.execute(
            select(Checklist).where(Checklist.id == checklist_id)
        )
        return result.scalar_one_or_none()

    async def _item_ids(self, checklist_id: UUID) -> List[UUID]:
        result = await self.db.execute(
            select(ChecklistItem.id)
            .join(ChecklistGroup, ChecklistGroup.id == ChecklistItem.group_id)
            .where(ChecklistGroup.checklist_id == checklist_id)
            .order_by(ChecklistGroup.order, ChecklistItem.order)
        )
        return [row[0] for row in result.all()]

    async def _item_progress(self, user_id: UUID, item_ids: List[UUID]) -> List[ChecklistItemProgress]:
        if not item_ids:
            return []
        result = await self.db.execute(
            select(ChecklistItemProgress).where(
                ChecklistItemProgress.user_id == user_id,
                ChecklistItemProgress.item_id.in_(item_ids)
            )
        )
        return list(result.scalars().all())

    async def _get_progress_row(self, checklist_id: UUID, user_id: UUID) -> Optional[ChecklistProgress]:
        result = await self.db.execute(
            select(ChecklistProgress).where(
                ChecklistProgress.checklist_id == checklist_id,
                ChecklistProgress.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def get_progress(self, checklist_id: UUID, user_id: UUID) -> Optional[Dict[str, Any]]:
        checklist = await self.get_checklist(checklist_id)
        if not checklist:
            return None

        item_ids = await self._item_ids(checklist_id)
        items = await self._item_progress(user_id, item_ids)
        row = await self._get_progress_row(checklist_id, user_id)

        return {
            "checklist_id": checklist_id,
            "progress": row.progress if row else compute_progress([i.status for i in items], len(item_ids)),
            "completed_at": row.completed_at if row else None,
            "items": items
        }

    async def update_item_progress(
        self,
        checklist_id: UUID,
        item_id: UUID,
        student: User,
        status: ChecklistItemStatus,
        comment: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Record the student's status for one item and recompute the checklist progress.

        Reaching 100% for the first time stamps completed_at and notifies the
        checklist's author.

        Raises:
            LookupError: checklist or item does not exist
        """
        checklist = await self.get_checklist(checklist_id)
        if not checklist or not checklist.is_active:
            raise LookupError("Checklist not found")

        item_ids = await self._item_ids(checklist_id)
        if item_id not in item_ids:
            raise LookupError("Checklist item not found")

        result = await self.db.execute(
            select(ChecklistItemProgress).where(
                ChecklistItemProgress.user_id == student.id,
                ChecklistItemProgress.item_id == item_id
            )
        )
        item_progress = result.scalar_one_or_none()
        if item_progress:
            item_progress.status = status
            item_progress.comment = comment
        else:
            item_progress = ChecklistItemProgress(
                item_id=item_id,
                user_id=student.id,
                status=status,
                comment=comment
            )
            self.db.add(item_progress)
        await self.db.flush()

        items = await self._item_progress(student.id, item_ids)
        progress = compute_progress([i.status for i in items], len(item_ids))

        row = await self._get_progress_row(checklist_id, student.id)
        if not row:
            row = ChecklistProgress(checklist_id=checklist_id, user_id=student.id)
            self.db.add(row)

        just_completed = progress == 100 and row.completed_at is None
        row.progress = progress
        if progress == 100:
            row.completed_at = row.completed_at or datetime.now()
        else:
            row.completed_at = None

        await self.db.commit()
        completed_at = row.completed_at
        title, owner_id = checklist.title, checklist.created_by

        if just_completed:
            logger.info(f"Checklist {checklist_id} completed by {student.id}")
            builder = NotificationBuilder(self.db)
            await builder.dispatch(
                "checklist completed",
                builder.notify_checklist_completed(
                    owner_id, student.id, student.name, checklist_id, title
                ),
                *items
            )

        return {
            "checklist_id": checklist_id,
            "progress": progress,
            "completed_at": completed_at,
            "items": items
        }
