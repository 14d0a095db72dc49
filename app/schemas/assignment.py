"""
Pydantic schemas for assignments, group attachments and submissions.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.models.assignment import AssignmentType, AssignmentStatus
from app.schemas.base import CamelModel


# ==================== Assignment Schemas ====================

class AssignmentCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: AssignmentType = AssignmentType.HOMEWORK
    status: AssignmentStatus = AssignmentStatus.DRAFT
    due_date: Optional[datetime] = None
    max_score: int = Field(100, ge=1)
    lesson_id: Optional[UUID] = None
    is_template: bool = False


class AssignmentUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[AssignmentType] = None
    status: Optional[AssignmentStatus] = None
    due_date: Optional[datetime] = None
    max_score: Optional[int] = Field(None, ge=1)


class AssignmentResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    type: AssignmentType
    status: AssignmentStatus
    due_date: Optional[datetime] = None
    max_score: int
    lesson_id: Optional[UUID] = None
    is_template: bool
    template_id: Optional[UUID] = None
    created_by: UUID

    model_config = ConfigDict(from_attributes=True)


class GroupAttachRequest(CamelModel):
    group_id: UUID
    due_date: Optional[datetime] = None


class GroupAssignmentResponse(BaseModel):
    id: UUID
    group_id: UUID
    assignment_id: UUID
    due_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TemplateCopyRequest(CamelModel):
    due_date: Optional[datetime] = None
    lesson_id: Optional[UUID] = None
    group_id: Optional[UUID] = None


# ==================== Submission Schemas ====================

class SubmissionCreate(CamelModel):
    content: Optional[str] = None
    file_url: Optional[str] = Field(None, max_length=500)


class GradeRequest(CamelModel):
    score: int
    feedback: Optional[str] = None


class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    user_id: UUID
    content: Optional[str] = None
    file_url: Optional[str] = None
    submitted_at: datetime
    score: Optional[int] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DeadlineSyncResponse(BaseModel):
    assignment_id: UUID
    created: int
    updated: int
    event_ids: List[UUID]
