import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

from sqlalchemy import select

from app.models.user import UserRole
from app.models.assignment import AssignmentStatus, GroupAssignment
from app.models.event import Event, EventAttendee, EventType
from app.models.notification import Notification, NotificationType
from app.schemas.assignment import AssignmentCreate, AssignmentUpdate, TemplateCopyRequest
from app.services.assignment_service import AssignmentService
from app.services.notification_service import NotificationService
from tests.helpers import make_session_factory, create_user, create_group

DUE = datetime(2026, 10, 30, 18, 0)


class AssignmentServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine, self.Session = await make_session_factory()
        self.db = self.Session()
        self.service = AssignmentService(self.db)

        self.teacher = await create_user(self.db, "Teacher", UserRole.TEACHER)
        self.other_teacher = await create_user(self.db, "Other Teacher", UserRole.TEACHER)
        self.alice = await create_user(self.db, "Alice")
        self.bob = await create_user(self.db, "Bob")
        self.group = await create_group(self.db, "Group A", students=[self.alice, self.bob], teachers=[self.teacher])

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()

    async def _notifications(self, type):
        result = await self.db.execute(select(Notification).where(Notification.type == type))
        return list(result.scalars().all())

    async def _published(self):
        assignment = await self.service.create_assignment(
            AssignmentCreate(title="Essay", due_date=DUE, max_score=20), self.teacher.id
        )
        await self.service.attach_to_group(assignment.id, self.group.id)
        return await self.service.publish(assignment.id)

    async def test_create_defaults_to_draft(self):
        assignment = await self.service.create_assignment(AssignmentCreate(title="  Essay "), self.teacher.id)
        self.assertEqual(assignment.status, AssignmentStatus.DRAFT)
        self.assertEqual(assignment.title, "Essay")

    async def test_attaching_a_draft_is_silent(self):
        assignment = await self.service.create_assignment(AssignmentCreate(title="Essay"), self.teacher.id)
        await self.service.attach_to_group(assignment.id, self.group.id)
        self.assertEqual(await self._notifications(NotificationType.NEW_ASSIGNMENT), [])

    async def test_publishing_notifies_attached_groups(self):
        await self._published()
        notifications = await self._notifications(NotificationType.NEW_ASSIGNMENT)
        self.assertEqual({n.user_id for n in notifications}, {self.alice.id, self.bob.id})

    async def test_publishing_through_update(self):
        assignment = await self.service.create_assignment(AssignmentCreate(title="Essay"), self.teacher.id)
        await self.service.attach_to_group(assignment.id, self.group.id)
        await self.service.update_assignment(assignment.id, AssignmentUpdate(status=AssignmentStatus.PUBLISHED))
        self.assertEqual(len(await self._notifications(NotificationType.NEW_ASSIGNMENT)), 2)

    async def test_attach_twice_fails(self):
        assignment = await self._published()
        with self.assertRaises(ValueError):
            await self.service.attach_to_group(assignment.id, self.group.id)

    async def test_submit_and_resubmit(self):
        assignment = await self._published()
        first = await self.service.submit(assignment.id, self.alice, content="v1", now=DUE - timedelta(days=2))
        await self.service.grade(first.id, self.teacher, 15, "Good")

        second = await self.service.submit(assignment.id, self.alice, content="v2", now=DUE - timedelta(days=1))

        self.assertEqual(second.id, first.id)
        self.assertEqual(second.content, "v2")
        self.assertIsNone(second.score)
        self.assertIsNone(second.graded_at)
        self.assertEqual(len(await self._notifications(NotificationType.ASSIGNMENT_SUBMITTED)), 2)

    async def test_submit_after_deadline(self):
        assignment = await self._published()
        with self.assertRaises(ValueError):
            await self.service.submit(assignment.id, self.alice, content="late", now=DUE + timedelta(minutes=1))

    async def test_submit_requires_membership(self):
        assignment = await self._published()
        outsider = await create_user(self.db, "Outsider")
        with self.assertRaises(PermissionError):
            await self.service.submit(assignment.id, outsider, content="hi", now=DUE - timedelta(days=1))

    async def test_submit_requires_published(self):
        assignment = await self.service.create_assignment(AssignmentCreate(title="Draft"), self.teacher.id)
        await self.service.attach_to_group(assignment.id, self.group.id)
        with self.assertRaises(ValueError):
            await self.service.submit(assignment.id, self.alice, content="hi")

    async def test_grade_bounds_and_notification(self):
        assignment = await self._published()
        submission = await self.service.submit(assignment.id, self.bob, content="x", now=DUE - timedelta(days=1))

        with self.assertRaises(ValueError):
            await self.service.grade(submission.id, self.teacher, 21)
        with self.assertRaises(PermissionError):
            await self.service.grade(submission.id, self.other_teacher, 10)

        graded = await self.service.grade(submission.id, self.teacher, 20)
        self.assertIsNotNone(graded.graded_at)
        notifications = await self._notifications(NotificationType.ASSIGNMENT_GRADED)
        self.assertEqual([n.user_id for n in notifications], [self.bob.id])

    async def test_copy_template(self):
        template = await self.service.create_assignment(
            AssignmentCreate(title="Lab report", is_template=True, max_score=50), self.teacher.id
        )
        copy = await self.service.copy_template(
            template.id, TemplateCopyRequest(due_date=DUE, group_id=self.group.id), self.teacher.id
        )

        self.assertFalse(copy.is_template)
        self.assertEqual(copy.template_id, template.id)
        self.assertEqual(copy.max_score, 50)
        links = await self.db.execute(select(GroupAssignment).where(GroupAssignment.assignment_id == copy.id))
        self.assertEqual(len(links.scalars().all()), 1)

    async def test_sync_deadline_creates_then_moves_event(self):
        assignment = await self._published()
        result = await self.service.sync_deadline_events(assignment.id, self.teacher.id)
        self.assertEqual((result["created"], result["updated"]), (1, 0))

        event = await self.db.get(Event, result["event_ids"][0])
        self.assertEqual(event.type, EventType.DEADLINE)
        self.assertEqual(event.end_date, DUE)
        self.assertEqual(event.start_date, DUE - timedelta(hours=1))
        attendees = await self.db.execute(select(EventAttendee).where(EventAttendee.event_id == event.id))
        self.assertEqual(len(attendees.scalars().all()), 2)

        new_due = DUE + timedelta(days=2)
        await self.service.update_assignment(assignment.id, AssignmentUpdate(due_date=new_due))
        result = await self.service.sync_deadline_events(assignment.id, self.teacher.id)
        self.assertEqual((result["created"], result["updated"]), (0, 1))
        self.assertEqual(event.end_date, new_due)

    async def test_sync_deadline_without_due_date(self):
        assignment = await self.service.create_assignment(AssignmentCreate(title="Open"), self.teacher.id)
        await self.service.attach_to_group(assignment.id, self.group.id)
        with self.assertRaises(ValueError):
            await self.service.sync_deadline_events(assignment.id, self.teacher.id)


    async def test_failed_fan_out_does_not_stop_the_next_group(self):
        carol = await create_user(self.db, "Carol")
        dave = await create_user(self.db, "Dave")
        first = await create_group(self.db, "Group B", students=[carol], teachers=[self.teacher])
        second = await create_group(self.db, "Group C", students=[dave], teachers=[self.teacher])
        assignment = await self.service.create_assignment(AssignmentCreate(title="Essay"), self.teacher.id)
        await self.service.attach_to_group(assignment.id, first.id)
        await self.service.attach_to_group(assignment.id, second.id)
        assignment_id, student_ids = assignment.id, {carol.id, dave.id}

        create_notification = NotificationService.create_notification
        recipients = []

        async def reject_first_insert(service, user_id, type, title, message=None, data=None):
            recipients.append(user_id)
            if len(recipients) == 1:
                title = None  # violates NOT NULL on notifications.title
            return await create_notification(service, user_id, type, title, message, data)

        with patch.object(NotificationService, "create_notification", reject_first_insert):
            with self.assertLogs("app.services.notification_builder", level="ERROR"):
                published = await self.service.publish(assignment_id)

        self.assertEqual(published.id, assignment_id)
        self.assertEqual(published.status, AssignmentStatus.PUBLISHED)
        self.assertEqual(set(recipients), student_ids)
        notifications = await self._notifications(NotificationType.NEW_ASSIGNMENT)
        self.assertEqual([n.user_id for n in notifications], [recipients[1]])


if __name__ == "__main__":
    unittest.main()
