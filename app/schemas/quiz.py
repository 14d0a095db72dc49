"""
Pydantic schemas for quizzes and quiz attempts.

Option correctness is never part of a response model.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.models.quiz import QuizAttemptType, QuizQuestionType
from app.schemas.base import CamelModel


class QuizAnswer(CamelModel):
    question_id: UUID
    selected_options: List[UUID] = Field(default_factory=list)


class QuizSubmitRequest(CamelModel):
    answers: List[QuizAnswer] = Field(default_factory=list)
    assignment_id: Optional[UUID] = None
    started_at: Optional[datetime] = None


class QuizSubmitResponse(BaseModel):
    attempt_id: UUID
    score: float
    passed: bool
    earned_points: int
    max_score: int
    passing_score: int


class QuizOptionResponse(BaseModel):
    id: UUID
    text: str
    order: int

    model_config = ConfigDict(from_attributes=True)


class QuizQuestionResponse(BaseModel):
    id: UUID
    question: str
    type: QuizQuestionType
    points: int
    order: int
    options: List[QuizOptionResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class QuizAttemptResponse(BaseModel):
    id: UUID
    score: float
    earned_points: int
    max_score: int
    passed: bool
    assignment_id: Optional[UUID] = None
    started_at: Optional[datetime] = None
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QuizResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    passing_score: int
    time_limit: Optional[int] = None
    attempt_type: QuizAttemptType
    questions: List[QuizQuestionResponse] = Field(default_factory=list)
    attempts: List[QuizAttemptResponse] = Field(default_factory=list)
    can_attempt: bool = True
