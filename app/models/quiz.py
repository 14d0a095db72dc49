from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, Text, ForeignKey, Enum, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum

from app.core.database import Base


class QuizAttemptType(enum.Enum):
    SINGLE = "SINGLE"
    MULTIPLE = "MULTIPLE"


class QuizQuestionType(enum.Enum):
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    passing_score = Column(Integer, nullable=False, default=70)  # percent
    time_limit = Column(Integer, nullable=True)  # minutes, enforced by the client
    attempt_type = Column(Enum(QuizAttemptType), nullable=False, default=QuizAttemptType.MULTIPLE)
    lesson_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.order"
    )

    def __repr__(self):
        return f"<Quiz(title='{self.title}', passing_score={self.passing_score})>"


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    type = Column(Enum(QuizQuestionType), nullable=False, default=QuizQuestionType.SINGLE_CHOICE)
    points = Column(Integer, nullable=False, default=1)
    order = Column(Integer, nullable=False, default=0)

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "QuizOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuizOption.order"
    )


class QuizOption(Base):
    __tablename__ = "quiz_options"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(String(500), nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)
    order = Column(Integer, nullable=False, default=0)

    question = relationship("QuizQuestion", back_populates="options")


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assignment_id = Column(Uuid, ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True)

    score = Column(Float, nullable=False)  # percentage
    earned_points = Column(Integer, nullable=False, default=0)
    max_score = Column(Integer, nullable=False, default=0)
    passed = Column(Boolean, nullable=False, default=False)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=False)

    quiz = relationship("Quiz")
