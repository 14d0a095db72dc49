import unittest

from sqlalchemy import select

from app.models.user import UserRole
from app.models.checklist import Checklist, ChecklistGroup, ChecklistItem, ChecklistItemStatus
from app.models.notification import Notification, NotificationType
from app.services.checklist_service import ChecklistService, compute_progress
from tests.helpers import make_session_factory, create_user


class ComputeProgressTests(unittest.TestCase):
    def test_not_needed_counts_as_done(self):
        statuses = [ChecklistItemStatus.COMPLETED, ChecklistItemStatus.NOT_NEEDED, ChecklistItemStatus.HAS_QUESTIONS]
        self.assertEqual(compute_progress(statuses, 3), 67)

    def test_missing_items_count_as_not_done(self):
        self.assertEqual(compute_progress([ChecklistItemStatus.COMPLETED], 4), 25)

    def test_empty_checklist(self):
        self.assertEqual(compute_progress([], 0), 0)


class ChecklistServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine, self.Session = await make_session_factory()
        self.db = self.Session()
        self.service = ChecklistService(self.db)
        self.teacher = await create_user(self.db, "Teacher", UserRole.TEACHER)
        self.student = await create_user(self.db, "Student")

        self.first = ChecklistItem(title="Install tools", order=0)
        self.second = ChecklistItem(title="Read the guide", order=1)
        self.checklist = Checklist(
            title="Onboarding",
            created_by=self.teacher.id,
            groups=[ChecklistGroup(title="Setup", order=0, items=[self.first, self.second])]
        )
        self.db.add(self.checklist)
        await self.db.commit()

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()

    async def _completed_notifications(self):
        result = await self.db.execute(
            select(Notification).where(Notification.type == NotificationType.CHECKLIST_COMPLETED)
        )
        return list(result.scalars().all())

    async def test_progress_is_recomputed(self):
        result = await self.service.update_item_progress(
            self.checklist.id, self.first.id, self.student, ChecklistItemStatus.COMPLETED
        )
        self.assertEqual(result["progress"], 50)
        self.assertIsNone(result["completed_at"])

        result = await self.service.update_item_progress(
            self.checklist.id, self.first.id, self.student, ChecklistItemStatus.HAS_QUESTIONS, "Which version?"
        )
        self.assertEqual(result["progress"], 0)
        self.assertEqual(len(result["items"]), 1)

    async def test_completion_notifies_author_once(self):
        await self.service.update_item_progress(
            self.checklist.id, self.first.id, self.student, ChecklistItemStatus.COMPLETED
        )
        result = await self.service.update_item_progress(
            self.checklist.id, self.second.id, self.student, ChecklistItemStatus.NOT_NEEDED
        )
        self.assertEqual(result["progress"], 100)
        self.assertIsNotNone(result["completed_at"])

        await self.service.update_item_progress(
            self.checklist.id, self.second.id, self.student, ChecklistItemStatus.COMPLETED
        )
        notifications = await self._completed_notifications()
        self.assertEqual([n.user_id for n in notifications], [self.teacher.id])

    async def test_unknown_item(self):
        other = ChecklistItem(title="Elsewhere", order=0)
        self.db.add(Checklist(
            title="Other", created_by=self.teacher.id,
            groups=[ChecklistGroup(title="G", order=0, items=[other])]
        ))
        await self.db.commit()

        with self.assertRaises(LookupError):
            await self.service.update_item_progress(
                self.checklist.id, other.id, self.student, ChecklistItemStatus.COMPLETED
            )

    async def test_progress_before_any_answer(self):
        progress = await self.service.get_progress(self.checklist.id, self.student.id)
        self.assertEqual(progress["progress"], 0)
        self.assertEqual(progress["items"], [])


if __name__ == "__main__":
    unittest.main()
