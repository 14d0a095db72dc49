"""
Calendar event service.

Handles visibility-filtered listing, creation with roster attendees, partial
updates and soft deletion. Every write commits first and then fans out
notifications to the event's participants on a best-effort basis.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy import select, delete, or_

from app.models.user import User, UserRole
from app.models.group import GroupStudent, GroupTeacher, GroupStudentStatus
from app.models.event import Event, EventAttendee, EventType, AttendanceStatus
from app.models.notification import NotificationType
from app.schemas.event import EventCreate, EventUpdate
from app.services.group_service import GroupService
from app.services.notification_builder import NotificationBuilder


logger = logging.getLogger(__name__)


def _validate_dates(start_date: datetime, end_date: datetime) -> None:
    if start_date >= end_date:
        raise ValueError("End date must be after start date")


class EventService:
    """Service for calendar events."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_event(self, event_id: UUID, include_inactive: bool = False) -> Optional[Event]:
        query = (
            select(Event)
            .options(selectinload(Event.attendees))
            .where(Event.id == event_id)
        )
        if not include_inactive:
            query = query.where(Event.is_active == True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_events(
        self,
        user: User,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        group_id: Optional[UUID] = None,
        event_type: Optional[EventType] = None
    ) -> List[Event]:
        """
        Active events visible to the user, ordered by start.

        Students see events of their active groups and events they attend.
        Teachers additionally see events they created and events of groups they
        teach. Admins see everything. A date range keeps events overlapping it.
        """
        query = self._visible_query(user)

        if start_date:
            query = query.where(Event.end_date >= start_date)
        if end_date:
            query = query.where(Event.start_date <= end_date)
        if group_id:
            query = query.where(Event.group_id == group_id)
        if event_type:
            query = query.where(Event.type == event_type)

        result = await self.db.execute(query.order_by(Event.start_date, Event.id))
        return list(result.scalars().all())

    async def get_visible_event(self, event_id: UUID, user: User) -> Optional[Event]:
        result = await self.db.execute(self._visible_query(user).where(Event.id == event_id))
        return result.scalar_one_or_none()

    def _visible_query(self, user: User):
        query = (
            select(Event)
            .options(selectinload(Event.attendees))
            .where(Event.is_active == True)
        )

        if user.role != UserRole.ADMIN:
            attending = select(EventAttendee.event_id).where(EventAttendee.user_id == user.id)
            student_groups = select(GroupStudent.group_id).where(
                GroupStudent.user_id == user.id,
                GroupStudent.status == GroupStudentStatus.ACTIVE
            )
            visibility = [
                Event.id.in_(attending),
                Event.group_id.in_(student_groups)
            ]
            if user.role == UserRole.TEACHER:
                teacher_groups = select(GroupTeacher.group_id).where(GroupTeacher.user_id == user.id)
                visibility.append(Event.created_by == user.id)
                visibility.append(Event.group_id.in_(teacher_groups))
            query = query.where(or_(*visibility))

        return query

    async def _can_edit(self, event: Event, user: User) -> bool:
        if user.role == UserRole.ADMIN or event.created_by == user.id:
            return True
        if event.group_id:
            return await GroupService.can_manage_group(self.db, event.group_id, user)
        return False

    async def create_event(self, data: EventCreate, creator: User) -> Event:
        """
        Create an event and invite attendees.

        Attendees are the explicit attendee_ids plus every active student and
        teacher of the linked group, except the creator.

        Raises:
            PermissionError: students, or teachers outside the group
            ValueError: empty title or start not before end
        """
        if creator.role == UserRole.STUDENT:
            raise PermissionError("Students cannot create events")

        title = (data.title or "").strip()
        if not title:
            raise ValueError("Event title is required")
        _validate_dates(data.start_date, data.end_date)

        if data.group_id:
            group = await GroupService.get_group(self.db, data.group_id)
            if not group:
                raise LookupError("Group not found")
            if not await GroupService.can_manage_group(self.db, data.group_id, creator):
                raise PermissionError("Access denied to this group")

        event = Event(
            title=title,
            description=data.description.strip() if data.description else None,
            type=data.type,
            start_date=data.start_date,
            end_date=data.end_date,
            location=data.location.strip() if data.location else None,
            group_id=data.group_id,
            assignment_id=data.assignment_id,
            created_by=creator.id,
            is_active=True,
            is_attendance_required=data.is_attendance_required
        )
        self.db.add(event)
        await self.db.flush()

        attendee_ids = list(data.attendee_ids)
        if data.group_id:
            attendee_ids.extend(await GroupService.get_active_student_ids(self.db, data.group_id))
            attendee_ids.extend(await GroupService.get_teacher_ids(self.db, data.group_id))

        seen = set()
        for user_id in attendee_ids:
            if user_id == creator.id or user_id in seen:
                continue
            seen.add(user_id)
            self.db.add(EventAttendee(event_id=event.id, user_id=user_id, status=AttendanceStatus.PENDING))

        await self.db.commit()
        logger.info(f"Event {event.id} created by {creator.id} with {len(seen)} attendees")

        builder = NotificationBuilder(self.db)
        await builder.dispatch(
            "event created",
            builder.notify_event_participants(
                event.id,
                NotificationType.EVENT_REMINDER,
                title,
                data.start_date,
                data.group_id
            ),
            event
        )
        await self.db.refresh(event, ["attendees"])

        return event

    async def update_event(self, event_id: UUID, data: EventUpdate, user: User) -> Optional[Event]:
        """
        Partially update an event. Returns None when the event does not exist.

        Raises:
            PermissionError: user is not the creator, an admin or a teacher of the group
            ValueError: empty title or start not before end
        """
        event = await self.get_event(event_id)
        if not event:
            return None
        if not await self._can_edit(event, user):
            raise PermissionError("Access denied to this event")

        update_data = data.model_dump(exclude_unset=True)
        attendee_ids = update_data.pop("attendee_ids", None)

        if "title" in update_data:
            update_data["title"] = (update_data["title"] or "").strip()
            if not update_data["title"]:
                raise ValueError("Event title is required")

        start_date = update_data.get("start_date") or event.start_date
        end_date = update_data.get("end_date") or event.end_date
        _validate_dates(start_date, end_date)

        for field, value in update_data.items():
            if value is None and field in ("type", "start_date", "end_date", "is_attendance_required"):
                continue
            setattr(event, field, value)

        if attendee_ids is not None:
            await self.db.execute(delete(EventAttendee).where(EventAttendee.event_id == event_id))
            for user_id in dict.fromkeys(attendee_ids):
                self.db.add(EventAttendee(event_id=event_id, user_id=user_id, status=AttendanceStatus.PENDING))

        await self.db.commit()

        builder = NotificationBuilder(self.db)
        await builder.dispatch(
            "event updated",
            builder.notify_event_participants(
                event_id,
                NotificationType.EVENT_UPDATED,
                event.title,
                event.start_date,
                event.group_id
            ),
            event
        )
        await self.db.refresh(event, ["attendees"])

        return event

    async def delete_event(self, event_id: UUID, user: User) -> bool:
        """Soft delete, then tell the participants the event is cancelled."""
        event = await self.get_event(event_id)
        if not event:
            return False
        if not await self._can_edit(event, user):
            raise PermissionError("Access denied to this event")

        event.is_active = False
        await self.db.commit()
        title, starts_at, group_id = event.title, event.start_date, event.group_id

        builder = NotificationBuilder(self.db)
        await builder.dispatch(
            "event cancelled",
            builder.notify_event_participants(
                event_id,
                NotificationType.EVENT_CANCELLED,
                title,
                starts_at,
                group_id
            )
        )
        return True
