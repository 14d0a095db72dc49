"""
Assignment service.

Covers the assignment lifecycle (draft, publish, attach to groups), student
submissions and grading, template copies and deadline calendar events.
Notifications go out after the primary write has been committed and never
affect its outcome.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Any
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.user import User, UserRole
from app.models.assignment import Assignment, AssignmentStatus, GroupAssignment, Submission
from app.models.event import Event, EventAttendee, EventType, AttendanceStatus
from app.schemas.assignment import AssignmentCreate, AssignmentUpdate, TemplateCopyRequest
from app.services.group_service import GroupService
from app.services.notification_builder import NotificationBuilder


logger = logging.getLogger(__name__)

DEADLINE_EVENT_LEAD = timedelta(hours=1)


class AssignmentService:
    """Service for assignments and submissions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationBuilder(db)

    # ============== Lookups ==============

    async def get_assignment(self, assignment_id: UUID) -> Optional[Assignment]:
        result = await self.db.execute(
            select(Assignment).where(Assignment.id == assignment_id)
        )
        return result.scalar_one_or_none()

    async def get_group_assignments(self, assignment_id: UUID) -> List[GroupAssignment]:
        result = await self.db.execute(
            select(GroupAssignment)
            .where(GroupAssignment.assignment_id == assignment_id)
            .order_by(GroupAssignment.created_at, GroupAssignment.id)
        )
        return list(result.scalars().all())

    async def get_submission(self, submission_id: UUID) -> Optional[Submission]:
        result = await self.db.execute(
            select(Submission).where(Submission.id == submission_id)
        )
        return result.scalar_one_or_none()

    async def get_submissions(self, assignment_id: UUID) -> List[Submission]:
        result = await self.db.execute(
            select(Submission)
            .where(Submission.assignment_id == assignment_id)
            .order_by(Submission.submitted_at.desc())
        )
        return list(result.scalars().all())

    async def can_manage(self, assignment: Assignment, user: User) -> bool:
        """Admins, the author, or a teacher of any attached group."""
        if user.role == UserRole.ADMIN or assignment.created_by == user.id:
            return True
        if user.role != UserRole.TEACHER:
            return False
        for link in await self.get_group_assignments(assignment.id):
            if await GroupService.is_teacher(self.db, link.group_id, user.id):
                return True
        return False

    # ============== Lifecycle ==============

    async def create_assignment(self, data: AssignmentCreate, created_by: UUID) -> Assignment:
        title = data.title.strip()
        if not title:
            raise ValueError("Assignment title is required")

        assignment = Assignment(
            **data.model_dump(exclude={"title"}),
            title=title,
            created_by=created_by
        )
        self.db.add(assignment)
        await self.db.commit()
        await self.db.refresh(assignment)
        logger.info(f"Assignment {assignment.id} created ({assignment.status.value})")
        return assignment

    async def update_assignment(self, assignment_id: UUID, data: AssignmentUpdate) -> Optional[Assignment]:
        """
        Partial update. Moving a draft to PUBLISHED here behaves like publish().
        """
        assignment = await self.get_assignment(assignment_id)
        if not assignment:
            return None

        update_data = data.model_dump(exclude_unset=True)
        becomes_published = (
            update_data.get("status") == AssignmentStatus.PUBLISHED
            and assignment.status != AssignmentStatus.PUBLISHED
        )

        for field, value in update_data.items():
            if value is None and field in ("title", "type", "status", "max_score"):
                continue
            setattr(assignment, field, value.strip() if field == "title" else value)

        await self.db.commit()
        await self.db.refresh(assignment)

        if becomes_published:
            await self._notify_attached_groups(assignment)

        return assignment

    async def publish(self, assignment_id: UUID) -> Optional[Assignment]:
        """Publish and notify the students of every attached group."""
        assignment = await self.get_assignment(assignment_id)
        if not assignment:
            return None
        if assignment.is_template:
            raise ValueError("Templates cannot be published")

        already_published = assignment.status == AssignmentStatus.PUBLISHED
        assignment.status = AssignmentStatus.PUBLISHED
        await self.db.commit()
        await self.db.refresh(assignment)

        if not already_published:
            await self._notify_attached_groups(assignment)

        return assignment

    async def _notify_attached_groups(self, assignment: Assignment) -> None:
        assignment_id, title = assignment.id, assignment.title
        links = [
            (link.group_id, link.due_date or assignment.due_date)
            for link in await self.get_group_assignments(assignment_id)
        ]
        for group_id, due_date in links:
            await self.notifications.dispatch(
                "new assignment",
                self.notifications.notify_group_students_about_new_assignment(
                    group_id, title, assignment_id, due_date
                ),
                assignment
            )

    async def attach_to_group(
        self,
        assignment_id: UUID,
        group_id: UUID,
        due_date: Optional[datetime] = None
    ) -> GroupAssignment:
        """
        Link the assignment to a group. Students are told about it right away
        when the assignment is already published.

        Raises:
            LookupError: assignment or group does not exist
            ValueError: already attached
        """
        assignment = await self.get_assignment(assignment_id)
        if not assignment:
            raise LookupError("Assignment not found")
        if not await GroupService.get_group(self.db, group_id):
            raise LookupError("Group not found")

        existing = await self.db.execute(
            select(GroupAssignment.id).where(
                GroupAssignment.assignment_id == assignment_id,
                GroupAssignment.group_id == group_id
            )
        )
        if existing.first() is not None:
            raise ValueError("Assignment is already attached to this group")

        link = GroupAssignment(
            group_id=group_id,
            assignment_id=assignment_id,
            due_date=due_date
        )
        self.db.add(link)
        await self.db.commit()
        await self.db.refresh(link)

        if assignment.status == AssignmentStatus.PUBLISHED:
            await self.notifications.dispatch(
                "new assignment",
                self.notifications.notify_group_students_about_new_assignment(
                    group_id, assignment.title, assignment.id, due_date or assignment.due_date
                ),
                link
            )

        return link

    # ============== Submissions ==============

    async def _student_link(self, assignment_id: UUID, user_id: UUID) -> Optional[GroupAssignment]:
        """First attached group in which the user is an active student."""
        for link in await self.get_group_assignments(assignment_id):
            if await GroupService.is_active_student(self.db, link.group_id, user_id):
                return link
        return None

    async def submit(
        self,
        assignment_id: UUID,
        student: User,
        content: Optional[str] = None,
        file_url: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Submission:
        """
        Hand in work. A second submission overwrites the first and clears its grade.

        Raises:
            LookupError: assignment does not exist
            PermissionError: student is not in an attached group
            ValueError: not published, past due, or nothing submitted
        """
        now = now or datetime.now()
        assignment = await self.get_assignment(assignment_id)
        if not assignment:
            raise LookupError("Assignment not found")

        link = await self._student_link(assignment_id, student.id)
        if not link:
            raise PermissionError("Access denied to this assignment")

        if assignment.status != AssignmentStatus.PUBLISHED:
            raise ValueError("Assignment is not published")

        due_date = link.due_date or assignment.due_date
        if due_date and now > due_date:
            raise ValueError("Submission deadline has passed")

        if not (content and content.strip()) and not file_url:
            raise ValueError("Submission content or file is required")

        result = await self.db.execute(
            select(Submission).where(
                Submission.assignment_id == assignment_id,
                Submission.user_id == student.id
            )
        )
        submission = result.scalar_one_or_none()

        if submission:
            submission.content = content
            submission.file_url = file_url
            submission.submitted_at = now
            submission.score = None
            submission.feedback = None
            submission.graded_at = None
            submission.graded_by = None
        else:
            submission = Submission(
                assignment_id=assignment_id,
                user_id=student.id,
                content=content,
                file_url=file_url,
                submitted_at=now
            )
            self.db.add(submission)

        await self.db.commit()
        await self.db.refresh(submission)
        logger.info(f"Submission {submission.id} for assignment {assignment_id} by {student.id}")

        await self.notifications.dispatch(
            "submission",
            self.notifications.notify_group_teachers_about_submission(
                link.group_id, assignment.title, student.name, assignment.id, submission.id
            ),
            submission
        )

        return submission

    async def grade(
        self,
        submission_id: UUID,
        grader: User,
        score: int,
        feedback: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Optional[Submission]:
        """
        Grade a submission and tell the student.

        Raises:
            PermissionError: grader does not manage the assignment
            ValueError: score outside 0..max_score
        """
        submission = await self.get_submission(submission_id)
        if not submission:
            return None

        assignment = await self.get_assignment(submission.assignment_id)
        if not await self.can_manage(assignment, grader):
            raise PermissionError("Access denied to this submission")

        if score < 0 or score > assignment.max_score:
            raise ValueError(f"Score must be between 0 and {assignment.max_score}")

        submission.score = score
        submission.feedback = feedback
        submission.graded_at = now or datetime.now()
        submission.graded_by = grader.id
        await self.db.commit()
        await self.db.refresh(submission)

        await self.notifications.dispatch(
            "grade",
            self.notifications.notify_student_about_grade(
                submission.user_id,
                assignment.title,
                score,
                assignment.id,
                submission.id,
                assignment.max_score
            ),
            submission
        )

        return submission

    # ============== Templates ==============

    async def copy_template(
        self,
        template_id: UUID,
        data: TemplateCopyRequest,
        created_by: UUID
    ) -> Assignment:
        """
        Create a concrete draft assignment from a template, optionally attached to a group.
        """
        template = await self.get_assignment(template_id)
        if not template:
            raise LookupError("Template not found")
        if not template.is_template:
            raise ValueError("Assignment is not a template")

        if data.group_id and not await GroupService.get_group(self.db, data.group_id):
            raise LookupError("Group not found")

        assignment = Assignment(
            title=template.title,
            description=template.description,
            type=template.type,
            status=AssignmentStatus.DRAFT,
            due_date=data.due_date or template.due_date,
            max_score=template.max_score,
            lesson_id=data.lesson_id or template.lesson_id,
            is_template=False,
            template_id=template.id,
            created_by=created_by
        )
        self.db.add(assignment)
        await self.db.flush()

        if data.group_id:
            self.db.add(GroupAssignment(
                group_id=data.group_id,
                assignment_id=assignment.id,
                due_date=data.due_date
            ))

        await self.db.commit()
        await self.db.refresh(assignment)
        return assignment

    # ============== Deadline events ==============

    async def sync_deadline_events(self, assignment_id: UUID, created_by: UUID) -> Dict[str, Any]:
        """
        Keep one active DEADLINE event per attached group, ending at the due date.

        Existing events are moved to the current due date; new ones invite the
        group's active students as PENDING attendees.
        """
        assignment = await self.get_assignment(assignment_id)
        if not assignment:
            raise LookupError("Assignment not found")

        links = await self.get_group_assignments(assignment_id)
        if not assignment.due_date and not any(link.due_date for link in links):
            raise ValueError("Assignment has no due date")

        created, updated, event_ids = 0, 0, []
        for link in links:
            due_date = link.due_date or assignment.due_date
            if not due_date:
                continue

            result = await self.db.execute(
                select(Event).where(
                    Event.assignment_id == assignment_id,
                    Event.group_id == link.group_id,
                    Event.type == EventType.DEADLINE,
                    Event.is_active == True
                )
            )
            event = result.scalars().first()

            if event:
                event.title = f"Deadline: {assignment.title}"
                event.start_date = due_date - DEADLINE_EVENT_LEAD
                event.end_date = due_date
                updated += 1
            else:
                event = Event(
                    title=f"Deadline: {assignment.title}",
                    description=assignment.description,
                    type=EventType.DEADLINE,
                    start_date=due_date - DEADLINE_EVENT_LEAD,
                    end_date=due_date,
                    group_id=link.group_id,
                    assignment_id=assignment_id,
                    created_by=created_by,
                    is_active=True
                )
                self.db.add(event)
                await self.db.flush()
                for user_id in await GroupService.get_active_student_ids(self.db, link.group_id):
                    self.db.add(EventAttendee(
                        event_id=event.id,
                        user_id=user_id,
                        status=AttendanceStatus.PENDING
                    ))
                created += 1
            event_ids.append(event.id)

        await self.db.commit()
        logger.info(f"Deadline events for assignment {assignment_id}: {created} created, {updated} updated")

        return {
            "assignment_id": assignment_id,
            "created": created,
            "updated": updated,
            "event_ids": event_ids
        }
