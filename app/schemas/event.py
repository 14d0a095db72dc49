"""
Pydantic schemas for calendar events and attendance.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.models.event import EventType, AttendanceStatus
from app.schemas.base import CamelModel


# ==================== Event Schemas ====================

class EventCreate(CamelModel):
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    type: EventType = EventType.OTHER
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    group_id: Optional[UUID] = None
    assignment_id: Optional[UUID] = None
    is_attendance_required: bool = False
    attendee_ids: List[UUID] = Field(default_factory=list)


class EventUpdate(CamelModel):
    """All fields optional. attendee_ids, when given, replaces the attendee list."""
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    type: Optional[EventType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    is_attendance_required: Optional[bool] = None
    attendee_ids: Optional[List[UUID]] = None


class AttendeeResponse(BaseModel):
    id: UUID
    user_id: UUID
    status: AttendanceStatus
    response: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class EventResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    type: EventType
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    group_id: Optional[UUID] = None
    assignment_id: Optional[UUID] = None
    created_by: UUID
    is_active: bool
    is_attendance_required: bool
    attendees: List[AttendeeResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class EventListResponse(BaseModel):
    events: List[EventResponse]
    total: int


# ==================== Attendance Schemas ====================

class AttendanceUpdate(CamelModel):
    """Own RSVP, or another user's status when user_id is set by a teacher."""
    status: AttendanceStatus
    user_id: Optional[UUID] = None
    response: Optional[str] = None


class MarkAllRequest(CamelModel):
    status: AttendanceStatus


class MarkAllResponse(BaseModel):
    event_id: UUID
    status: AttendanceStatus
    updated: int
