import json
import unittest
from datetime import datetime, timedelta

from sqlalchemy import select

from app.models.user import UserRole
from app.models.group import MessageType
from app.models.event import Event, EventAttendee, EventType
from app.models.assignment import Assignment, AssignmentStatus, GroupAssignment, Submission
from app.models.notification import Notification, NotificationType
from app.services.group_service import GroupService
from app.services.notification_builder import (
    NotificationBuilder,
    resolve_event_participants,
    resolve_group_message_recipients,
    resolve_pending_deadline_students,
)
from tests.helpers import make_session_factory, create_user, create_group

NOW = datetime(2026, 10, 19, 9, 0)


class NotificationBuilderTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine, self.Session = await make_session_factory()
        self.db = self.Session()
        self.builder = NotificationBuilder(self.db)

        self.teacher = await create_user(self.db, "Teacher", UserRole.TEACHER)
        self.alice = await create_user(self.db, "Alice")
        self.bob = await create_user(self.db, "Bob")
        self.carol = await create_user(self.db, "Carol")
        self.dropped = await create_user(self.db, "Dropped")
        self.group = await create_group(
            self.db, "Group A",
            students=[self.alice, self.bob, self.carol],
            teachers=[self.teacher],
            inactive_students=[self.dropped]
        )

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()

    async def _notifications(self, type=None):
        query = select(Notification)
        if type:
            query = query.where(Notification.type == type)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _assignment(self, due_date, status=AssignmentStatus.PUBLISHED):
        assignment = Assignment(title="Essay", status=status, due_date=due_date, created_by=self.teacher.id)
        self.db.add(assignment)
        await self.db.flush()
        self.db.add(GroupAssignment(group_id=self.group.id, assignment_id=assignment.id))
        await self.db.commit()
        return assignment

    async def test_new_assignment_reaches_active_students_only(self):
        created = await self.builder.notify_group_students_about_new_assignment(
            self.group.id, "Essay", self.group.id, NOW
        )
        self.assertEqual(
            {n.user_id for n in created},
            {self.alice.id, self.bob.id, self.carol.id}
        )
        self.assertTrue(all(n.type == NotificationType.NEW_ASSIGNMENT for n in created))

    async def test_payload_is_json(self):
        assignment = await self._assignment(NOW)
        created = await self.builder.notify_group_students_about_new_assignment(
            self.group.id, "Essay", assignment.id, NOW
        )
        data = json.loads(created[0].data)
        self.assertEqual(data["assignmentId"], str(assignment.id))
        self.assertEqual(data["dueDate"], NOW.isoformat())

    async def test_submission_notifies_teachers(self):
        created = await self.builder.notify_group_teachers_about_submission(
            self.group.id, "Essay", "Alice", self.group.id, self.alice.id
        )
        self.assertEqual([n.user_id for n in created], [self.teacher.id])
        self.assertIn("Alice", created[0].message)

    async def test_grade_notifies_one_student(self):
        created = await self.builder.notify_student_about_grade(
            self.alice.id, "Essay", 87, self.group.id, self.alice.id, max_score=100
        )
        self.assertEqual(len(created), 1)
        self.assertIn("87/100", created[0].message)

    async def test_deadline_skips_students_who_submitted(self):
        assignment = await self._assignment(NOW + timedelta(hours=5))
        self.db.add(Submission(assignment_id=assignment.id, user_id=self.bob.id, content="done", submitted_at=NOW))
        await self.db.commit()

        pending = await resolve_pending_deadline_students(self.db, assignment.id)
        self.assertEqual(set(pending), {self.alice.id, self.carol.id})

        created = await self.builder.notify_students_about_deadline(assignment.id, "Essay", assignment.due_date)
        self.assertNotIn(self.bob.id, {n.user_id for n in created})

    async def test_removed_submission_makes_student_pending_again(self):
        assignment = await self._assignment(NOW + timedelta(hours=5))
        submission = Submission(assignment_id=assignment.id, user_id=self.bob.id, submitted_at=NOW)
        self.db.add(submission)
        await self.db.commit()
        self.assertNotIn(self.bob.id, await resolve_pending_deadline_students(self.db, assignment.id))

        await self.db.delete(submission)
        await self.db.commit()
        self.assertIn(self.bob.id, await resolve_pending_deadline_students(self.db, assignment.id))

    async def test_message_recipients_exclude_sender(self):
        recipients = await resolve_group_message_recipients(self.db, self.group.id, self.alice.id)
        self.assertEqual(set(recipients), {self.bob.id, self.carol.id, self.teacher.id})

        recipients = await resolve_group_message_recipients(self.db, self.group.id, self.teacher.id)
        self.assertNotIn(self.teacher.id, recipients)

    async def test_announcement_title_and_preview(self):
        created = await self.builder.notify_group_members_about_new_message(
            self.group.id, self.teacher.id, "Teacher", "x" * 100,
            message_type=MessageType.ANNOUNCEMENT, truncated=True
        )
        self.assertEqual(len(created), 3)
        self.assertEqual(created[0].title, "New announcement")
        self.assertTrue(created[0].message.endswith("x..."))

    async def test_posted_message_is_fanned_out(self):
        message = await GroupService.post_message(self.db, self.group.id, self.bob, "Hello everyone")
        self.assertEqual(message.content, "Hello everyone")

        notifications = await self._notifications(NotificationType.NEW_MESSAGE)
        self.assertEqual(
            {n.user_id for n in notifications},
            {self.alice.id, self.carol.id, self.teacher.id}
        )
        self.assertEqual(notifications[0].title, "New group message")

    async def test_outsider_cannot_post(self):
        outsider = await create_user(self.db, "Outsider")
        with self.assertRaises(PermissionError):
            await GroupService.post_message(self.db, self.group.id, outsider, "Hi")

    async def test_event_participants_are_deduplicated(self):
        guest = await create_user(self.db, "Guest")
        event = Event(
            title="Open day", type=EventType.MEETING,
            start_date=NOW, end_date=NOW + timedelta(hours=1),
            group_id=self.group.id, created_by=self.teacher.id
        )
        self.db.add(event)
        await self.db.flush()
        self.db.add(EventAttendee(event_id=event.id, user_id=guest.id))
        self.db.add(EventAttendee(event_id=event.id, user_id=self.alice.id))
        await self.db.commit()

        participants = await resolve_event_participants(self.db, event.id, self.group.id)
        self.assertEqual(len(participants), len(set(participants)))
        self.assertEqual(
            set(participants),
            {guest.id, self.alice.id, self.bob.id, self.carol.id, self.teacher.id}
        )

    async def test_event_kind_must_be_an_event_type(self):
        with self.assertRaises(ValueError):
            await self.builder.notify_event_participants(
                self.group.id, NotificationType.NEW_MESSAGE, "Open day", NOW
            )

    async def test_cancelled_event_wording(self):
        created = await self.builder.notify_event_participants(
            self.group.id, NotificationType.EVENT_CANCELLED, "Open day", NOW, self.group.id
        )
        self.assertEqual(created[0].title, "Event cancelled")
        self.assertIn("cancelled", created[0].message)

    async def test_empty_recipient_set(self):
        empty = await create_group(self.db, "Empty")
        created = await self.builder.notify_group_students_about_new_assignment(empty.id, "Essay", empty.id, None)
        self.assertEqual(created, [])

    async def test_dispatch_swallows_failures(self):
        async def failing():
            raise RuntimeError("boom")

        with self.assertLogs("app.services.notification_builder", level="ERROR"):
            result = await self.builder.dispatch("test", failing())
        self.assertEqual(result, [])

    async def test_sweep_window(self):
        await self._assignment(NOW + timedelta(hours=3))
        await self._assignment(datetime(2026, 10, 20, 23, 0))
        await self._assignment(NOW + timedelta(days=3))
        await self._assignment(NOW + timedelta(hours=3), status=AssignmentStatus.DRAFT)
        self.db.add(Event(
            title="Lesson", type=EventType.LESSON,
            start_date=NOW + timedelta(hours=2), end_date=NOW + timedelta(hours=3),
            group_id=self.group.id, created_by=self.teacher.id
        ))
        self.db.add(Event(
            title="Cancelled", type=EventType.LESSON, is_active=False,
            start_date=NOW + timedelta(hours=2), end_date=NOW + timedelta(hours=3),
            group_id=self.group.id, created_by=self.teacher.id
        ))
        await self.db.commit()

        counts = await self.builder.notify_upcoming_deadlines(now=NOW)

        self.assertEqual(counts["assignments"], 2)
        self.assertEqual(counts["events"], 1)
        # 3 students per assignment, 3 students plus the teacher for the event
        self.assertEqual(counts["notifications"], 2 * 3 + 4)
        self.assertEqual(len(await self._notifications(NotificationType.DEADLINE_REMINDER)), 6)
        self.assertEqual(len(await self._notifications(NotificationType.EVENT_REMINDER)), 4)

    async def _link(self, assignment, group, due_date=None):
        self.db.add(GroupAssignment(group_id=group.id, assignment_id=assignment.id, due_date=due_date))
        await self.db.commit()

    async def test_sweep_uses_the_group_due_date(self):
        dave = await create_user(self.db, "Dave")
        later_group = await create_group(self.db, "Group B", students=[dave])
        assignment = Assignment(title="Project", status=AssignmentStatus.PUBLISHED, created_by=self.teacher.id)
        self.db.add(assignment)
        await self.db.commit()
        await self._link(assignment, self.group, NOW + timedelta(hours=5))
        await self._link(assignment, later_group, NOW + timedelta(days=20))

        counts = await self.builder.notify_upcoming_deadlines(now=NOW)

        self.assertEqual(counts["assignments"], 1)
        reminders = await self._notifications(NotificationType.DEADLINE_REMINDER)
        self.assertEqual({n.user_id for n in reminders}, {self.alice.id, self.bob.id, self.carol.id})
        self.assertEqual(json.loads(reminders[0].data)["groupId"], str(self.group.id))

    async def test_sweep_skips_groups_with_a_later_due_date(self):
        dave = await create_user(self.db, "Dave")
        other_group = await create_group(self.db, "Group B", students=[dave])
        assignment = Assignment(
            title="Quiz prep", status=AssignmentStatus.PUBLISHED,
            due_date=NOW + timedelta(hours=3), created_by=self.teacher.id
        )
        self.db.add(assignment)
        await self.db.commit()
        await self._link(assignment, self.group, NOW + timedelta(days=14))
        await self._link(assignment, other_group)

        counts = await self.builder.notify_upcoming_deadlines(now=NOW)

        self.assertEqual(counts, {"assignments": 1, "events": 0, "notifications": 1})
        reminders = await self._notifications(NotificationType.DEADLINE_REMINDER)
        self.assertEqual([n.user_id for n in reminders], [dave.id])


if __name__ == "__main__":
    unittest.main()
