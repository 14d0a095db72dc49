import unittest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import httpx

from app.core.database import get_db
from app.core.security import create_access_token
from app.main import app
from app.models.user import UserRole
from app.models.quiz import Quiz, QuizQuestion, QuizOption
from tests.helpers import make_session_factory, create_user, create_group


class ApiTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine, self.Session = await make_session_factory()

        async def override_get_db():
            async with self.Session() as session:
                yield session

        app.dependency_overrides[get_db] = override_get_db

        async with self.Session() as db:
            self.teacher = await create_user(db, "Teacher", UserRole.TEACHER)
            self.alice = await create_user(db, "Alice")
            self.bob = await create_user(db, "Bob")
            self.group = await create_group(db, "Group A", students=[self.alice, self.bob], teachers=[self.teacher])

        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    async def asyncTearDown(self):
        await self.client.aclose()
        app.dependency_overrides.clear()
        await self.engine.dispose()

    def auth(self, user):
        return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}

    async def _save_schedule(self):
        return await self.client.post(
            f"/api/v1/admin/groups/{self.group.id}/schedule",
            json={"schedule": [
                {"dayOfWeek": 1, "startTime": "10:00", "endTime": "11:00"},
                {"dayOfWeek": 3, "startTime": "10:00", "endTime": "11:00"},
            ]},
            headers=self.auth(self.teacher)
        )

    async def test_missing_token(self):
        response = await self.client.get("/api/v1/events")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Unauthorized"})

    async def test_schedule_save_and_generate(self):
        response = await self._save_schedule()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["schedule"]), 2)
        self.assertEqual(len(response.json()["students"]), 2)

        response = await self.client.post(
            f"/api/v1/admin/groups/{self.group.id}/schedule/generate",
            json={"startDate": "2026-10-19", "endDate": "2026-11-01", "title": "Lesson", "isAttendanceRequired": True},
            headers=self.auth(self.teacher)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["created"], 4)

        response = await self.client.get(
            "/api/v1/events",
            params={"groupId": str(self.group.id), "startDate": "2026-10-19T00:00:00", "endDate": "2026-10-25T23:59:59"},
            headers=self.auth(self.alice)
        )
        self.assertEqual(response.json()["total"], 2)

    async def test_generate_rejects_reversed_range(self):
        await self._save_schedule()
        response = await self.client.post(
            f"/api/v1/admin/groups/{self.group.id}/schedule/generate",
            json={"startDate": "2026-11-01", "endDate": "2026-10-19", "title": "Lesson", "isAttendanceRequired": False},
            headers=self.auth(self.teacher)
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid date range"})

    async def test_bad_slot_is_a_bad_request(self):
        response = await self.client.post(
            f"/api/v1/admin/groups/{self.group.id}/schedule",
            json={"schedule": [{"dayOfWeek": 9, "startTime": "10:00", "endTime": "11:00"}]},
            headers=self.auth(self.teacher)
        )
        self.assertEqual(response.status_code, 400)

    async def test_students_cannot_manage_schedule(self):
        response = await self.client.get(
            f"/api/v1/admin/groups/{self.group.id}/schedule",
            headers=self.auth(self.alice)
        )
        self.assertEqual(response.status_code, 403)

    async def test_create_event_invites_group(self):
        response = await self.client.post(
            "/api/v1/events",
            json={
                "title": "Exam",
                "type": "EXAM",
                "startDate": "2026-10-20T10:00:00",
                "endDate": "2026-10-20T12:00:00",
                "groupId": str(self.group.id),
            },
            headers=self.auth(self.teacher)
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual({a["user_id"] for a in body["attendees"]}, {str(self.alice.id), str(self.bob.id)})

        response = await self.client.get("/api/v1/notifications", headers=self.auth(self.alice))
        self.assertEqual(response.json()["unread_count"], 1)
        self.assertEqual(response.json()["notifications"][0]["type"], "EVENT_REMINDER")

        response = await self.client.patch(
            f"/api/v1/events/{body['id']}/attendance",
            json={"status": "ATTENDING"},
            headers=self.auth(self.alice)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ATTENDING")

    async def test_event_range_accepts_offsets(self):
        await self.client.post(
            "/api/v1/events",
            json={
                "title": "Exam",
                "startDate": "2026-10-20T10:00:00",
                "endDate": "2026-10-20T12:00:00",
                "groupId": str(self.group.id),
            },
            headers=self.auth(self.teacher)
        )
        # The same instants as local 11:00 and 12:30, written with a +05:00 offset
        plus_five = timezone(timedelta(hours=5))
        during = datetime(2026, 10, 20, 11, 0).astimezone().astimezone(plus_five)
        after = datetime(2026, 10, 20, 12, 30).astimezone().astimezone(plus_five)

        response = await self.client.get(
            "/api/v1/events", params={"startDate": during.isoformat()}, headers=self.auth(self.alice)
        )
        self.assertEqual(response.json()["total"], 1)
        response = await self.client.get(
            "/api/v1/events", params={"startDate": after.isoformat()}, headers=self.auth(self.alice)
        )
        self.assertEqual(response.json()["total"], 0)

    async def test_event_validation(self):
        response = await self.client.post(
            "/api/v1/events",
            json={"title": " ", "startDate": "2026-10-20T10:00:00", "endDate": "2026-10-20T09:00:00"},
            headers=self.auth(self.teacher)
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

        response = await self.client.post(
            "/api/v1/events",
            json={"title": "No dates"},
            headers=self.auth(self.teacher)
        )
        self.assertEqual(response.status_code, 400)

    async def test_students_cannot_create_events(self):
        response = await self.client.post(
            "/api/v1/events",
            json={"title": "Party", "startDate": "2026-10-20T10:00:00", "endDate": "2026-10-20T12:00:00"},
            headers=self.auth(self.alice)
        )
        self.assertEqual(response.status_code, 403)

    async def test_quiz_submit(self):
        async with self.Session() as db:
            right, wrong = QuizOption(text="4", is_correct=True), QuizOption(text="5", is_correct=False)
            right2, wrong2 = QuizOption(text="yes", is_correct=True), QuizOption(text="no", is_correct=False)
            q1 = QuizQuestion(question="2 + 2?", points=2, order=0, options=[right, wrong])
            q2 = QuizQuestion(question="Is 7 prime?", points=1, order=1, options=[right2, wrong2])
            quiz = Quiz(title="Warm-up", passing_score=50, questions=[q1, q2])
            db.add(quiz)
            await db.commit()

        response = await self.client.post(
            f"/api/v1/quizzes/{quiz.id}/submit",
            json={"answers": [
                {"questionId": str(q1.id), "selectedOptions": [str(right.id)]},
                {"questionId": str(q2.id), "selectedOptions": [str(wrong2.id)]},
            ]},
            headers=self.auth(self.alice)
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertAlmostEqual(body["score"], 66.67, places=1)
        self.assertTrue(body["passed"])

        response = await self.client.get(f"/api/v1/quizzes/{quiz.id}", headers=self.auth(self.alice))
        self.assertNotIn("is_correct", response.text)
        self.assertEqual(len(response.json()["attempts"]), 1)

    async def test_unknown_quiz(self):
        response = await self.client.post(
            f"/api/v1/quizzes/{uuid4()}/submit",
            json={"answers": []},
            headers=self.auth(self.alice)
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Quiz not found"})

    async def test_monthly_attendance_roundtrip(self):
        response = await self.client.patch(
            f"/api/v1/admin/groups/{self.group.id}/attendance/monthly",
            json={"userId": str(self.bob.id), "date": "2026-10-06", "status": "ABSENT"},
            headers=self.auth(self.teacher)
        )
        self.assertEqual(response.status_code, 200)

        response = await self.client.get(
            f"/api/v1/admin/groups/{self.group.id}/attendance/monthly",
            params={"year": 2026, "month": 10},
            headers=self.auth(self.teacher)
        )
        body = response.json()
        self.assertEqual(body["lesson_days"], ["2026-10-06"])
        self.assertEqual(body["attendance"][str(self.bob.id)]["2026-10-06"], "ABSENT")

    async def test_group_message_notifies_others(self):
        response = await self.client.post(
            f"/api/v1/groups/{self.group.id}/messages",
            json={"content": "See you tomorrow"},
            headers=self.auth(self.alice)
        )
        self.assertEqual(response.status_code, 201)

        response = await self.client.get("/api/v1/notifications/unread-count", headers=self.auth(self.alice))
        self.assertEqual(response.json()["unread_count"], 0)
        response = await self.client.get("/api/v1/notifications/unread-count", headers=self.auth(self.bob))
        self.assertEqual(response.json()["unread_count"], 1)

        response = await self.client.put("/api/v1/notifications/read-all", headers=self.auth(self.bob))
        self.assertEqual(response.json()["updated"], 1)


if __name__ == "__main__":
    unittest.main()
