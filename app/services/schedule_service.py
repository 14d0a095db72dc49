"""
Weekly group schedules and calendar event generation.

A group's schedule is a set of weekly slot templates (day of week plus a
start and end time of day). Generation expands the templates over a date
range into concrete Event rows. Generation does not look for events that
already exist: running it twice over the same range creates the events twice.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from app.models.group import GroupSchedule
from app.models.event import Event, EventType
from app.services.group_service import GroupService


logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DEFAULT_LESSON_TITLE = "Group lesson"


@dataclass(frozen=True)
class SlotTemplate:
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    start_time: str
    end_time: str


def parse_time(value: str) -> time:
    """Parse an HH:MM string."""
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def day_of_week(day: date) -> int:
    """Day number with Sunday as 0, matching the stored slot convention."""
    return (day.weekday() + 1) % 7


def validate_slot(slot: SlotTemplate) -> None:
    if not isinstance(slot.day_of_week, int) or not 0 <= slot.day_of_week <= 6:
        raise ValueError("Invalid dayOfWeek, expected 0-6")
    if parse_time(slot.start_time) >= parse_time(slot.end_time):
        raise ValueError("startTime must be before endTime")


def expand_schedule(
    slots: Sequence[SlotTemplate],
    start_date: date,
    end_date: date
) -> List[Tuple[datetime, datetime]]:
    """
    One (start, end) pair per calendar day in [start_date, end_date] and per
    slot whose day of week matches that day, in date order.
    """
    occurrences = []
    current = start_date
    while current <= end_date:
        weekday = day_of_week(current)
        for slot in slots:
            if slot.day_of_week != weekday:
                continue
            occurrences.append((
                datetime.combine(current, parse_time(slot.start_time)),
                datetime.combine(current, parse_time(slot.end_time))
            ))
        current += timedelta(days=1)
    return occurrences


class ScheduleService:
    """Service for group schedule templates and event generation."""

    @staticmethod
    async def get_schedule(db: AsyncSession, group_id: UUID) -> List[GroupSchedule]:
        result = await db.execute(
            select(GroupSchedule)
            .where(
                GroupSchedule.group_id == group_id,
                GroupSchedule.is_active == True
            )
            .order_by(GroupSchedule.day_of_week, GroupSchedule.start_time)
        )
        return list(result.scalars().all())

    @staticmethod
    async def save_schedule(
        db: AsyncSession,
        group_id: UUID,
        slots: Sequence[SlotTemplate]
    ) -> List[GroupSchedule]:
        """
        Replace the group's whole schedule with the given slots.

        Overlapping slots are accepted as-is.
        """
        for slot in slots:
            validate_slot(slot)

        await db.execute(delete(GroupSchedule).where(GroupSchedule.group_id == group_id))

        for slot in slots:
            db.add(GroupSchedule(
                group_id=group_id,
                day_of_week=slot.day_of_week,
                start_time=slot.start_time,
                end_time=slot.end_time,
                is_active=True
            ))

        await db.commit()
        logger.info(f"Saved {len(slots)} schedule slots for group {group_id}")

        return await ScheduleService.get_schedule(db, group_id)

    @staticmethod
    async def delete_slot(db: AsyncSession, group_id: UUID, slot_id: UUID) -> bool:
        result = await db.execute(
            delete(GroupSchedule).where(
                GroupSchedule.id == slot_id,
                GroupSchedule.group_id == group_id
            )
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def generate_events(
        db: AsyncSession,
        group_id: UUID,
        start_date: date,
        end_date: date,
        created_by: UUID,
        title: Optional[str] = None,
        location: Optional[str] = None,
        is_attendance_required: bool = False
    ) -> int:
        """
        Create one LESSON event per matching (day, slot) pair in the range.

        Returns:
            Number of events created

        Raises:
            LookupError: group does not exist
            ValueError: start after end, or the group has no schedule
        """
        if start_date > end_date:
            raise ValueError("Invalid date range")

        group = await GroupService.get_group(db, group_id)
        if not group:
            raise LookupError("Group not found")

        schedule = await ScheduleService.get_schedule(db, group_id)
        if not schedule:
            raise ValueError("Empty schedule")

        templates = [
            SlotTemplate(s.day_of_week, s.start_time, s.end_time)
            for s in schedule
        ]
        occurrences = expand_schedule(templates, start_date, end_date)

        for starts_at, ends_at in occurrences:
            db.add(Event(
                title=(title or "").strip() or DEFAULT_LESSON_TITLE,
                type=EventType.LESSON,
                start_date=starts_at,
                end_date=ends_at,
                location=location.strip() if location else None,
                group_id=group_id,
                created_by=created_by,
                is_active=True,
                is_attendance_required=bool(is_attendance_required)
            ))

        await db.commit()
        logger.info(
            f"[Schedule] Generated {len(occurrences)} events for group {group_id} "
            f"between {start_date.isoformat()} and {end_date.isoformat()}"
        )
        return len(occurrences)

    @staticmethod
    async def delete_future_events(
        db: AsyncSession,
        group_id: UUID,
        event_ids: Optional[List[UUID]] = None,
        now: Optional[datetime] = None
    ) -> int:
        """Delete the group's events that have not started yet, optionally limited to event_ids."""
        now = now or datetime.now()
        conditions = [
            Event.group_id == group_id,
            Event.start_date >= now
        ]
        if event_ids is not None:
            conditions.append(Event.id.in_(event_ids))

        result = await db.execute(
            select(Event).where(*conditions)
        )
        events = list(result.scalars().all())
        for event in events:
            await db.delete(event)

        await db.commit()
        return len(events)
