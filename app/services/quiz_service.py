"""
Quiz grading and attempts.

A question earns its full points only when the set of selected options equals
the set of correct options. There is no partial credit, for any question type.
Option ids that do not belong to the question are ignored. The quiz time limit
is enforced by the client; started_at is recorded when supplied.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy import select

from app.models.quiz import Quiz, QuizQuestion, QuizAttempt, QuizAttemptType


logger = logging.getLogger(__name__)


@dataclass
class QuizGrade:
    earned_points: int
    max_score: int
    percentage: float
    passed: bool


def grade_answers(
    questions: Sequence[QuizQuestion],
    answers: Mapping[UUID, Iterable[UUID]],
    passing_score: int
) -> QuizGrade:
    """Score answers keyed by question id against the questions' correct options."""
    earned = 0
    possible = 0

    for question in questions:
        possible += question.points

        selected = answers.get(question.id)
        if selected is None:
            continue

        option_ids = {option.id for option in question.options}
        correct_ids = {option.id for option in question.options if option.is_correct}
        chosen_ids = set(selected) & option_ids

        if chosen_ids == correct_ids:
            earned += question.points

    percentage = (earned / possible) * 100 if possible > 0 else 0.0
    return QuizGrade(
        earned_points=earned,
        max_score=possible,
        percentage=percentage,
        passed=percentage >= passing_score
    )


class QuizService:
    """Service for quizzes and attempts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_quiz(self, quiz_id: UUID) -> Optional[Quiz]:
        result = await self.db.execute(
            select(Quiz)
            .options(selectinload(Quiz.questions).selectinload(QuizQuestion.options))
            .where(Quiz.id == quiz_id)
        )
        return result.scalar_one_or_none()

    async def get_attempts(self, quiz_id: UUID, user_id: UUID) -> List[QuizAttempt]:
        result = await self.db.execute(
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id
            )
            .order_by(QuizAttempt.completed_at.desc())
        )
        return list(result.scalars().all())

    async def submit_quiz(
        self,
        quiz_id: UUID,
        user_id: UUID,
        answers: Dict[UUID, List[UUID]],
        assignment_id: Optional[UUID] = None,
        started_at: Optional[datetime] = None
    ) -> Optional[QuizAttempt]:
        """
        Grade and store an attempt. Returns None for an unknown quiz.

        Raises:
            ValueError: the quiz allows a single attempt and one already exists
        """
        quiz = await self.get_quiz(quiz_id)
        if not quiz:
            return None

        if quiz.attempt_type == QuizAttemptType.SINGLE:
            if await self.get_attempts(quiz_id, user_id):
                raise ValueError("Quiz already completed")

        grade = grade_answers(quiz.questions, answers, quiz.passing_score)

        attempt = QuizAttempt(
            quiz_id=quiz_id,
            user_id=user_id,
            assignment_id=assignment_id,
            score=grade.percentage,
            earned_points=grade.earned_points,
            max_score=grade.max_score,
            passed=grade.passed,
            started_at=started_at,
            completed_at=datetime.now()
        )
        self.db.add(attempt)
        await self.db.commit()
        await self.db.refresh(attempt)

        logger.info(
            f"Quiz {quiz_id} attempt by {user_id}: "
            f"{grade.earned_points}/{grade.max_score} ({grade.percentage:.1f}%), passed={grade.passed}"
        )
        return attempt
