"""
Notification fan-out for domain events.

Each domain event has a recipient resolver that recomputes the recipient set
from the current database state, and a notify_* method that writes one
Notification row per recipient. Rows are committed one at a time: a failure
part way through leaves the earlier rows in place. None of the methods are
idempotent, calling one twice produces duplicate notifications.

Callers that have already committed a primary write go through
NotificationBuilder.dispatch(), which logs and swallows fan-out failures so
that the primary write is never affected.
"""
import logging
from datetime import datetime, date, time, timedelta
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Union
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.models.notification import Notification, NotificationType
from app.models.group import GroupStudent, GroupStudentStatus, MessageType
from app.models.assignment import Assignment, AssignmentStatus, GroupAssignment, Submission
from app.models.event import Event, EventAttendee
from app.services.group_service import GroupService
from app.services.notification_service import NotificationService


logger = logging.getLogger(__name__)

EVENT_NOTIFICATION_KINDS = (
    NotificationType.EVENT_REMINDER,
    NotificationType.EVENT_CANCELLED,
    NotificationType.EVENT_UPDATED,
)


def _unique(user_ids: Iterable[UUID]) -> List[UUID]:
    """Deduplicate keeping first-seen order."""
    seen = set()
    unique_ids = []
    for user_id in user_ids:
        if user_id not in seen:
            seen.add(user_id)
            unique_ids.append(user_id)
    return unique_ids


def _format_date(value: Union[datetime, date, None]) -> str:
    if value is None:
        return "no due date"
    if isinstance(value, datetime):
        return value.strftime("%d.%m.%Y %H:%M")
    return value.strftime("%d.%m.%Y")


def _iso(value: Union[datetime, date, None]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ==================== Recipient resolvers ====================

async def resolve_active_group_students(db: AsyncSession, group_id: UUID) -> List[UUID]:
    return await GroupService.get_active_student_ids(db, group_id)


async def resolve_group_teachers(db: AsyncSession, group_id: UUID) -> List[UUID]:
    return await GroupService.get_teacher_ids(db, group_id)


async def resolve_pending_deadline_students(
    db: AsyncSession,
    assignment_id: UUID,
    group_id: Optional[UUID] = None
) -> List[UUID]:
    """
    Active students of every group the assignment is attached to, minus those
    who already submitted. group_id narrows it to one attached group.
    """
    query = (
        select(GroupStudent.user_id)
        .join(GroupAssignment, GroupAssignment.group_id == GroupStudent.group_id)
        .where(
            GroupAssignment.assignment_id == assignment_id,
            GroupStudent.status == GroupStudentStatus.ACTIVE
        )
        .order_by(GroupStudent.joined_at, GroupStudent.id)
    )
    if group_id:
        query = query.where(GroupAssignment.group_id == group_id)
    result = await db.execute(query)
    student_ids = _unique(row[0] for row in result.all())
    if not student_ids:
        return []

    submitted_result = await db.execute(
        select(Submission.user_id).where(
            Submission.assignment_id == assignment_id,
            Submission.user_id.in_(student_ids)
        )
    )
    submitted_ids = {row[0] for row in submitted_result.all()}

    return [user_id for user_id in student_ids if user_id not in submitted_ids]


async def resolve_group_message_recipients(
    db: AsyncSession,
    group_id: UUID,
    sender_id: UUID
) -> List[UUID]:
    students = await GroupService.get_active_student_ids(db, group_id)
    teachers = await GroupService.get_teacher_ids(db, group_id)
    return [user_id for user_id in _unique(students + teachers) if user_id != sender_id]


async def resolve_event_participants(
    db: AsyncSession,
    event_id: UUID,
    group_id: Optional[UUID] = None
) -> List[UUID]:
    """Explicit attendees plus the linked group's active students and teachers."""
    result = await db.execute(
        select(EventAttendee.user_id)
        .where(EventAttendee.event_id == event_id)
        .order_by(EventAttendee.created_at, EventAttendee.id)
    )
    user_ids = [row[0] for row in result.all()]

    if group_id:
        user_ids.extend(await GroupService.get_active_student_ids(db, group_id))
        user_ids.extend(await GroupService.get_teacher_ids(db, group_id))

    return _unique(user_ids)


# ==================== Builder ====================

class NotificationBuilder:
    """Computes recipients for a domain event and persists their notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    async def _fan_out(
        self,
        user_ids: List[UUID],
        type: NotificationType,
        title: str,
        message: Optional[str],
        data: Optional[Dict[str, Any]]
    ) -> List[Notification]:
        created = []
        for user_id in user_ids:
            created.append(
                await self.notifications.create_notification(
                    user_id=user_id,
                    type=type,
                    title=title,
                    message=message,
                    data=data
                )
            )
        return created

    async def dispatch(self, label: str, notification_call: Awaitable[Any], *keep: Any) -> Any:
        """
        Run a fan-out after the primary write; failures are logged, never raised.

        A failed fan-out leaves the session in need of a rollback, which also
        expires every loaded object. The objects passed in keep are reloaded
        so the caller can still return them.
        """
        try:
            return await notification_call
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error sending {label} notifications: {e}")
            for obj in keep:
                await self.db.refresh(obj)
            return []

    async def notify_group_students_about_new_assignment(
        self,
        group_id: UUID,
        title: str,
        assignment_id: UUID,
        due_date: Optional[datetime]
    ) -> List[Notification]:
        recipients = await resolve_active_group_students(self.db, group_id)
        return await self._fan_out(
            recipients,
            NotificationType.NEW_ASSIGNMENT,
            "New assignment",
            f'You have a new assignment: "{title}". Due: {_format_date(due_date)}',
            {
                "assignmentId": str(assignment_id),
                "groupId": str(group_id),
                "dueDate": _iso(due_date)
            }
        )

    async def notify_group_teachers_about_submission(
        self,
        group_id: UUID,
        title: str,
        student_name: str,
        assignment_id: UUID,
        submission_id: UUID
    ) -> List[Notification]:
        recipients = await resolve_group_teachers(self.db, group_id)
        return await self._fan_out(
            recipients,
            NotificationType.ASSIGNMENT_SUBMITTED,
            "New submission",
            f'{student_name} submitted "{title}"',
            {
                "assignmentId": str(assignment_id),
                "submissionId": str(submission_id),
                "groupId": str(group_id),
                "studentName": student_name
            }
        )

    async def notify_student_about_grade(
        self,
        student_id: UUID,
        title: str,
        score: int,
        assignment_id: UUID,
        submission_id: UUID,
        max_score: Optional[int] = None
    ) -> List[Notification]:
        score_text = f"{score}/{max_score}" if max_score is not None else str(score)
        return await self._fan_out(
            [student_id],
            NotificationType.ASSIGNMENT_GRADED,
            "Assignment graded",
            f'Your assignment "{title}" has been graded. Score: {score_text}',
            {
                "assignmentId": str(assignment_id),
                "submissionId": str(submission_id),
                "score": score
            }
        )

    async def notify_students_about_deadline(
        self,
        assignment_id: UUID,
        title: str,
        due_date: Optional[datetime],
        group_id: Optional[UUID] = None
    ) -> List[Notification]:
        recipients = await resolve_pending_deadline_students(self.db, assignment_id, group_id)
        return await self._fan_out(
            recipients,
            NotificationType.DEADLINE_REMINDER,
            "Deadline approaching",
            f'"{title}" is due {_format_date(due_date)}',
            {
                "assignmentId": str(assignment_id),
                "groupId": str(group_id) if group_id else None,
                "dueDate": _iso(due_date)
            }
        )

    async def notify_group_members_about_new_message(
        self,
        group_id: UUID,
        sender_id: UUID,
        sender_name: str,
        preview: str,
        message_type: MessageType = MessageType.REGULAR,
        truncated: bool = False
    ) -> List[Notification]:
        recipients = await resolve_group_message_recipients(self.db, group_id, sender_id)
        if message_type == MessageType.ANNOUNCEMENT:
            title = "New announcement"
        else:
            title = "New group message"
        return await self._fan_out(
            recipients,
            NotificationType.NEW_MESSAGE,
            title,
            f"{sender_name}: {preview}{'...' if truncated else ''}",
            {
                "groupId": str(group_id),
                "senderId": str(sender_id),
                "senderName": sender_name,
                "messageType": message_type.value
            }
        )

    async def notify_event_participants(
        self,
        event_id: UUID,
        kind: NotificationType,
        title: str,
        event_date: datetime,
        group_id: Optional[UUID] = None
    ) -> List[Notification]:
        if kind not in EVENT_NOTIFICATION_KINDS:
            raise ValueError(f"Unsupported event notification kind: {kind.value}")

        when = _format_date(event_date)
        if kind == NotificationType.EVENT_CANCELLED:
            heading, message = "Event cancelled", f'"{title}" on {when} has been cancelled'
        elif kind == NotificationType.EVENT_UPDATED:
            heading, message = "Event updated", f'"{title}" has been updated. Starts: {when}'
        else:
            heading, message = "Event reminder", f'"{title}" starts {when}'

        recipients = await resolve_event_participants(self.db, event_id, group_id)
        return await self._fan_out(
            recipients,
            kind,
            heading,
            message,
            {
                "eventId": str(event_id),
                "groupId": str(group_id) if group_id else None,
                "date": _iso(event_date)
            }
        )

    async def notify_checklist_completed(
        self,
        owner_id: UUID,
        student_id: UUID,
        student_name: str,
        checklist_id: UUID,
        title: str
    ) -> List[Notification]:
        return await self._fan_out(
            [owner_id],
            NotificationType.CHECKLIST_COMPLETED,
            "Checklist completed",
            f'{student_name} completed the checklist "{title}"',
            {
                "checklistId": str(checklist_id),
                "studentId": str(student_id),
                "studentName": student_name
            }
        )

    async def notify_upcoming_deadlines(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Reminder sweep over [start of today, tomorrow 23:59:59].

        Published assignments remind the pending students of each attached group
        whose effective due date (the group's own, else the assignment's) falls
        in the window. Active events starting in the window remind their
        participants.
        Meant to be run once a day by the scheduler.
        """
        now = now or datetime.now()
        window_start = datetime.combine(now.date(), time.min)
        window_end = datetime.combine(now.date() + timedelta(days=1), time(23, 59, 59))

        # A group's own due date overrides the assignment's
        effective_due = func.coalesce(GroupAssignment.due_date, Assignment.due_date)
        links_result = await self.db.execute(
            select(Assignment.id, Assignment.title, GroupAssignment.group_id, effective_due)
            .join(GroupAssignment, GroupAssignment.assignment_id == Assignment.id)
            .where(
                Assignment.status == AssignmentStatus.PUBLISHED,
                Assignment.is_template == False,
                effective_due >= window_start,
                effective_due <= window_end
            )
            .order_by(effective_due, Assignment.id, GroupAssignment.group_id)
        )
        link_rows = [tuple(row) for row in links_result.all()]

        events_result = await self.db.execute(
            select(Event)
            .where(
                Event.is_active == True,
                Event.start_date >= window_start,
                Event.start_date <= window_end
            )
            .order_by(Event.start_date)
        )
        events = list(events_result.scalars().all())

        # Snapshot before fan-out; each notification commit would otherwise touch these rows
        event_rows = [(e.id, e.title, e.start_date, e.group_id) for e in events]

        sent = 0
        for assignment_id, title, group_id, due_date in link_rows:
            sent += len(await self.notify_students_about_deadline(assignment_id, title, due_date, group_id))
        assignment_count = len({row[0] for row in link_rows})

        for event_id, title, start_date, group_id in event_rows:
            sent += len(
                await self.notify_event_participants(
                    event_id,
                    NotificationType.EVENT_REMINDER,
                    title,
                    start_date,
                    group_id
                )
            )

        logger.info(
            f"Deadline sweep: {assignment_count} assignments, "
            f"{len(event_rows)} events, {sent} notifications"
        )

        return {
            "assignments": assignment_count,
            "events": len(event_rows),
            "notifications": sent
        }
