"""
Service for per-event attendance and the monthly attendance journal.

The journal addresses cells by (student, calendar date) while attendance is
stored per (event, student). A date resolves to the group's first event of
that day: earliest start time, ties broken by event id.
"""

import calendar
import logging
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.user import User, UserRole
from app.models.event import Event, EventAttendee, EventType, AttendanceStatus
from app.services.group_service import GroupService


logger = logging.getLogger(__name__)

DAILY_ATTENDANCE_TITLE = "Daily attendance"


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    if not 1 <= month <= 12:
        raise ValueError("Invalid month")
    days_in_month = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime.combine(date(year, month, days_in_month), time.max)
    )


def first_event_per_day(events: List[Event]) -> "OrderedDict[date, Event]":
    """Map each calendar date to its first event, in date order."""
    by_day: "OrderedDict[date, Event]" = OrderedDict()
    for event in sorted(events, key=lambda e: (e.start_date, str(e.id))):
        by_day.setdefault(event.start_date.date(), event)
    return by_day


class AttendanceService:
    """Service for recording attendance against events."""

    @staticmethod
    async def get_event(db: AsyncSession, event_id: UUID) -> Optional[Event]:
        result = await db.execute(
            select(Event).where(Event.id == event_id, Event.is_active == True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def update_attendance(
        db: AsyncSession,
        event_id: UUID,
        user_id: UUID,
        status: AttendanceStatus,
        response: Optional[str] = None
    ) -> EventAttendee:
        """Create or update one attendee row for the event."""
        result = await db.execute(
            select(EventAttendee).where(
                EventAttendee.event_id == event_id,
                EventAttendee.user_id == user_id
            )
        )
        attendee = result.scalar_one_or_none()

        if attendee:
            attendee.status = status
            if response is not None:
                attendee.response = response.strip()
        else:
            attendee = EventAttendee(
                event_id=event_id,
                user_id=user_id,
                status=status,
                response=response.strip() if response else None
            )
            db.add(attendee)

        await db.commit()
        await db.refresh(attendee)
        return attendee

    @staticmethod
    async def record_for_user(
        db: AsyncSession,
        event_id: UUID,
        actor: User,
        status: AttendanceStatus,
        target_user_id: Optional[UUID] = None,
        response: Optional[str] = None
    ) -> EventAttendee:
        """
        Record attendance on behalf of the acting user.

        Members answer for themselves. Teachers of the event's group and admins
        may record another user's status.

        Raises:
            LookupError: event missing or inactive
            PermissionError: actor may not record this status
        """
        event = await AttendanceService.get_event(db, event_id)
        if not event:
            raise LookupError("Event not found")

        user_id = target_user_id or actor.id

        if user_id != actor.id:
            if not event.group_id or not await GroupService.can_manage_group(db, event.group_id, actor):
                if actor.role != UserRole.ADMIN:
                    raise PermissionError("Access denied to this event")
        else:
            attendee_result = await db.execute(
                select(EventAttendee.id).where(
                    EventAttendee.event_id == event_id,
                    EventAttendee.user_id == actor.id
                )
            )
            is_attendee = attendee_result.first() is not None
            is_member = bool(event.group_id) and await GroupService.is_member(db, event.group_id, actor.id)
            if not (is_attendee or is_member or event.created_by == actor.id or actor.role == UserRole.ADMIN):
                raise PermissionError("Access denied to this event")

        return await AttendanceService.update_attendance(db, event_id, user_id, status, response)

    @staticmethod
    async def mark_all_as(
        db: AsyncSession,
        event_id: UUID,
        status: AttendanceStatus
    ) -> int:
        """Apply the same status to every active student of the event's group, one upsert each."""
        event = await AttendanceService.get_event(db, event_id)
        if not event:
            raise LookupError("Event not found")
        if not event.group_id:
            raise ValueError("Event is not linked to a group")

        student_ids = await GroupService.get_active_student_ids(db, event.group_id)
        for user_id in student_ids:
            await AttendanceService.update_attendance(db, event_id, user_id, status)

        return len(student_ids)

    # ==================== Monthly journal ====================

    @staticmethod
    async def _month_events(db: AsyncSession, group_id: UUID, year: int, month: int) -> List[Event]:
        month_start, month_end = month_bounds(year, month)
        result = await db.execute(
            select(Event)
            .where(
                Event.group_id == group_id,
                Event.is_attendance_required == True,
                Event.is_active == True,
                Event.start_date >= month_start,
                Event.start_date <= month_end
            )
            .order_by(Event.start_date)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_monthly_attendance(
        db: AsyncSession,
        group_id: UUID,
        year: int,
        month: int
    ) -> Optional[Dict[str, Any]]:
        """
        Roster plus one status per (student, lesson day) for the month.

        Lesson days are the distinct dates with at least one active,
        attendance-required event of the group. Returns None for an unknown group.
        """
        group = await GroupService.get_group(db, group_id)
        if not group:
            return None

        month_start, _ = month_bounds(year, month)
        students = await GroupService.get_active_students(db, group_id)
        events = await AttendanceService._month_events(db, group_id, year, month)
        day_events = first_event_per_day(events)

        records: List[EventAttendee] = []
        if events:
            result = await db.execute(
                select(EventAttendee)
                .where(EventAttendee.event_id.in_([e.id for e in events]))
            )
            records = list(result.scalars().all())

        events_by_id = {e.id: e for e in events}
        status_by_key = {(r.event_id, r.user_id): r.status for r in records}

        cells = {}
        for student in students:
            row = {}
            for day, event in day_events.items():
                status = status_by_key.get((event.id, student.id))
                row[day.isoformat()] = status.value if status else None
            cells[str(student.id)] = row

        return {
            "group": {
                "id": group.id,
                "name": group.name,
                "description": group.description
            },
            "students": [
                {"id": s.id, "name": s.name, "email": s.email}
                for s in students
            ],
            "lesson_days": [day.isoformat() for day in day_events.keys()],
            "attendance": cells,
            "attendance_records": [
                {
                    "id": r.id,
                    "user_id": r.user_id,
                    "event_id": r.event_id,
                    "status": r.status.value,
                    "date": events_by_id[r.event_id].start_date.date().isoformat(),
                    "event_title": events_by_id[r.event_id].title
                }
                for r in records
            ],
            "current_month": f"{year}-{month:02d}",
            "days_in_month": calendar.monthrange(year, month)[1],
            "month_start_date": month_start.date().isoformat()
        }

    @staticmethod
    async def set_monthly_cell(
        db: AsyncSession,
        group_id: UUID,
        user_id: UUID,
        day: date,
        status: AttendanceStatus,
        created_by: UUID
    ) -> EventAttendee:
        """
        Set one journal cell.

        The date resolves to the group's first attendance-required event that
        day. A day without any such event gets a "Daily attendance" event
        spanning the whole day.

        Raises:
            LookupError: group does not exist
            ValueError: user is not a student of the group
        """
        group = await GroupService.get_group(db, group_id)
        if not group:
            raise LookupError("Group not found")

        membership = await GroupService.get_student_membership(db, group_id, user_id)
        if not membership:
            raise ValueError("User is not a student in this group")

        start_of_day = datetime.combine(day, time.min)
        end_of_day = datetime.combine(day, time.max)

        result = await db.execute(
            select(Event)
            .where(
                Event.group_id == group_id,
                Event.is_attendance_required == True,
                Event.is_active == True,
                Event.start_date >= start_of_day,
                Event.start_date <= end_of_day
            )
        )
        day_events = first_event_per_day(list(result.scalars().all()))
        event = day_events.get(day)

        if not event:
            event = Event(
                title=f"{DAILY_ATTENDANCE_TITLE} - {day.strftime('%d.%m.%Y')}",
                description="Created automatically for daily attendance marking",
                type=EventType.LESSON,
                start_date=start_of_day,
                end_date=start_of_day + timedelta(hours=23, minutes=59),
                group_id=group_id,
                created_by=created_by,
                is_active=True,
                is_attendance_required=True
            )
            db.add(event)
            await db.flush()
            logger.info(f"Created daily attendance event {event.id} for group {group_id} on {day.isoformat()}")

        return await AttendanceService.update_attendance(db, event.id, user_id, status)
