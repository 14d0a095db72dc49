from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.models.quiz import QuizAttemptType
from app.services.quiz_service import QuizService
from app.schemas.quiz import (
    QuizSubmitRequest, QuizSubmitResponse, QuizResponse,
    QuizQuestionResponse, QuizAttemptResponse
)

router = APIRouter(prefix="/quizzes")


@router.get("/{quiz_id}", response_model=QuizResponse)
async def get_quiz(
    quiz_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Quiz questions without the answer key, plus the user's attempts"""
    service = QuizService(db)
    quiz = await service.get_quiz(quiz_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")

    attempts = await service.get_attempts(quiz_id, current_user.id)
    return QuizResponse(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        passing_score=quiz.passing_score,
        time_limit=quiz.time_limit,
        attempt_type=quiz.attempt_type,
        questions=[QuizQuestionResponse.model_validate(q) for q in quiz.questions],
        attempts=[QuizAttemptResponse.model_validate(a) for a in attempts],
        can_attempt=quiz.attempt_type == QuizAttemptType.MULTIPLE or not attempts
    )


@router.post("/{quiz_id}/submit", response_model=QuizSubmitResponse)
async def submit_quiz(
    quiz_id: UUID,
    data: QuizSubmitRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = QuizService(db)
    answers = {a.question_id: a.selected_options for a in data.answers}

    try:
        attempt = await service.submit_quiz(
            quiz_id,
            current_user.id,
            answers,
            assignment_id=data.assignment_id,
            started_at=data.started_at
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not attempt:
        raise HTTPException(status_code=404, detail="Quiz not found")

    quiz = await service.get_quiz(quiz_id)
    return QuizSubmitResponse(
        attempt_id=attempt.id,
        score=attempt.score,
        passed=attempt.passed,
        earned_points=attempt.earned_points,
        max_score=attempt.max_score,
        passing_score=quiz.passing_score
    )
