from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, Enum, Uuid, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum

from app.core.database import Base


class AssignmentType(enum.Enum):
    HOMEWORK = "HOMEWORK"
    PROJECT = "PROJECT"
    ESSAY = "ESSAY"
    QUIZ = "QUIZ"
    OTHER = "OTHER"


class AssignmentStatus(enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(AssignmentType), nullable=False, default=AssignmentType.HOMEWORK)
    status = Column(Enum(AssignmentStatus), nullable=False, default=AssignmentStatus.DRAFT)
    due_date = Column(DateTime, nullable=True)
    max_score = Column(Integer, nullable=False, default=100)
    lesson_id = Column(Uuid, nullable=True)  # Lessons are managed by the course module

    is_template = Column(Boolean, default=False, nullable=False)
    template_id = Column(Uuid, ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    creator = relationship("User", foreign_keys=[created_by])
    group_assignments = relationship("GroupAssignment", back_populates="assignment", cascade="all, delete-orphan")
    submissions = relationship("Submission", back_populates="assignment", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Assignment(title='{self.title}', status='{self.status.value}')>"


class GroupAssignment(Base):
    __tablename__ = "group_assignments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    assignment_id = Column(Uuid, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    group = relationship("Group")
    assignment = relationship("Assignment", back_populates="group_assignments")

    __table_args__ = (
        UniqueConstraint('group_id', 'assignment_id', name='unique_group_assignment'),
    )


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    assignment_id = Column(Uuid, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=True)
    file_url = Column(String(500), nullable=True)
    submitted_at = Column(DateTime, nullable=False)

    score = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    graded_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    assignment = relationship("Assignment", back_populates="submissions")
    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint('assignment_id', 'user_id', name='unique_assignment_submission'),
    )
