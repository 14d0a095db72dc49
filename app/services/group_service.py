import logging
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.models.user import User, UserRole
from app.models.group import (
    Group, GroupStudent, GroupTeacher, GroupMessage,
    GroupStudentStatus, MessageType
)


logger = logging.getLogger(__name__)


class GroupService:
    """Roster lookups and group chat messages."""

    @staticmethod
    async def get_group(db: AsyncSession, group_id: UUID) -> Optional[Group]:
        result = await db.execute(select(Group).where(Group.id == group_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active_student_ids(db: AsyncSession, group_id: UUID) -> List[UUID]:
        result = await db.execute(
            select(GroupStudent.user_id)
            .where(
                GroupStudent.group_id == group_id,
                GroupStudent.status == GroupStudentStatus.ACTIVE
            )
            .order_by(GroupStudent.joined_at, GroupStudent.id)
        )
        return [row[0] for row in result.all()]

    @staticmethod
    async def get_active_students(db: AsyncSession, group_id: UUID) -> List[User]:
        """Active roster ordered by name."""
        result = await db.execute(
            select(User)
            .join(GroupStudent, GroupStudent.user_id == User.id)
            .where(
                GroupStudent.group_id == group_id,
                GroupStudent.status == GroupStudentStatus.ACTIVE
            )
            .order_by(User.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_teacher_ids(db: AsyncSession, group_id: UUID) -> List[UUID]:
        result = await db.execute(
            select(GroupTeacher.user_id)
            .where(GroupTeacher.group_id == group_id)
            .order_by(GroupTeacher.created_at, GroupTeacher.id)
        )
        return [row[0] for row in result.all()]

    @staticmethod
    async def get_student_membership(
        db: AsyncSession,
        group_id: UUID,
        user_id: UUID
    ) -> Optional[GroupStudent]:
        result = await db.execute(
            select(GroupStudent).where(
                GroupStudent.group_id == group_id,
                GroupStudent.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def is_active_student(db: AsyncSession, group_id: UUID, user_id: UUID) -> bool:
        membership = await GroupService.get_student_membership(db, group_id, user_id)
        return membership is not None and membership.status == GroupStudentStatus.ACTIVE

    @staticmethod
    async def is_teacher(db: AsyncSession, group_id: UUID, user_id: UUID) -> bool:
        result = await db.execute(
            select(GroupTeacher.id).where(
                GroupTeacher.group_id == group_id,
                GroupTeacher.user_id == user_id
            )
        )
        return result.first() is not None

    @staticmethod
    async def can_manage_group(db: AsyncSession, group_id: UUID, user: User) -> bool:
        """Admins manage every group, teachers only the groups they teach."""
        if user.role == UserRole.ADMIN:
            return True
        if user.role == UserRole.TEACHER:
            return await GroupService.is_teacher(db, group_id, user.id)
        return False

    @staticmethod
    async def is_member(db: AsyncSession, group_id: UUID, user_id: UUID) -> bool:
        if await GroupService.is_active_student(db, group_id, user_id):
            return True
        return await GroupService.is_teacher(db, group_id, user_id)

    # ==================== Messages ====================

    @staticmethod
    async def get_messages(db: AsyncSession, group_id: UUID, limit: int = 50) -> List[GroupMessage]:
        result = await db.execute(
            select(GroupMessage)
            .where(GroupMessage.group_id == group_id)
            .order_by(GroupMessage.created_at.desc(), GroupMessage.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def post_message(
        db: AsyncSession,
        group_id: UUID,
        sender: User,
        content: str,
        message_type: MessageType = MessageType.REGULAR
    ) -> GroupMessage:
        """
        Store a group message, then tell the other members about it.

        Raises:
            LookupError: group does not exist
            PermissionError: sender is neither an active student nor a teacher of the group
            ValueError: empty message
        """
        from app.services.notification_builder import NotificationBuilder

        group = await GroupService.get_group(db, group_id)
        if not group:
            raise LookupError("Group not found")

        if sender.role != UserRole.ADMIN and not await GroupService.is_member(db, group_id, sender.id):
            raise PermissionError("Access denied to this group")

        content = content.strip()
        if not content:
            raise ValueError("Message content is required")

        message = GroupMessage(
            group_id=group_id,
            sender_id=sender.id,
            content=content,
            message_type=message_type
        )
        db.add(message)
        await db.commit()
        await db.refresh(message)

        preview = content[:settings.MESSAGE_PREVIEW_LENGTH]
        builder = NotificationBuilder(db)
        await builder.dispatch(
            "group message",
            builder.notify_group_members_about_new_message(
                group_id=group_id,
                sender_id=sender.id,
                sender_name=sender.name,
                preview=preview,
                message_type=message_type,
                truncated=len(content) > settings.MESSAGE_PREVIEW_LENGTH
            ),
            message
        )

        return message
