"""
Pydantic schemas for weekly group schedules and the monthly attendance journal.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import date
from uuid import UUID

from app.models.event import AttendanceStatus
from app.schemas.base import CamelModel


class ScheduleSlotIn(CamelModel):
    day_of_week: int = Field(..., description="0 = Sunday ... 6 = Saturday")
    start_time: str = Field(..., description="HH:MM")
    end_time: str = Field(..., description="HH:MM")


class ScheduleSaveRequest(CamelModel):
    """Replaces the group's whole schedule."""
    schedule: List[ScheduleSlotIn] = Field(default_factory=list)


class ScheduleSlotResponse(BaseModel):
    id: UUID
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class RosterStudent(BaseModel):
    id: UUID
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class GroupScheduleResponse(BaseModel):
    group_id: UUID
    group_name: str
    schedule: List[ScheduleSlotResponse]
    students: List[RosterStudent]


class GenerateEventsRequest(CamelModel):
    start_date: date
    end_date: date
    title: Optional[str] = None
    location: Optional[str] = None
    is_attendance_required: bool = False


class GenerateEventsResponse(BaseModel):
    success: bool = True
    created: int


class BulkDeleteFutureRequest(CamelModel):
    event_ids: Optional[List[UUID]] = None


class BulkDeleteFutureResponse(BaseModel):
    success: bool = True
    deleted: int


# ==================== Monthly journal ====================

class MonthlyAttendanceUpdate(CamelModel):
    user_id: UUID
    day: date = Field(..., alias="date")
    status: AttendanceStatus


class MonthlyAttendanceResponse(BaseModel):
    group: Dict[str, Any]
    students: List[Dict[str, Any]]
    lesson_days: List[str]
    attendance: Dict[str, Dict[str, Optional[str]]]
    attendance_records: List[Dict[str, Any]]
    current_month: str
    days_in_month: int
    month_start_date: str
