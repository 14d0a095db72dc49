"""
Monthly attendance journal endpoints.
"""
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.core.security import get_current_teacher_or_admin
from app.models.user import User
from app.models.group import Group
from app.services.attendance_service import AttendanceService
from app.schemas.event import AttendeeResponse
from app.schemas.schedule import MonthlyAttendanceUpdate, MonthlyAttendanceResponse
from app.api.v1.schedule import get_managed_group

router = APIRouter(prefix="/groups/{group_id}/attendance")


@router.get("/monthly", response_model=MonthlyAttendanceResponse)
async def get_monthly_attendance(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    group: Group = Depends(get_managed_group),
    db: AsyncSession = Depends(get_db)
):
    """Roster by lesson day for one month, defaulting to the current month"""
    today = date.today()
    journal = await AttendanceService.get_monthly_attendance(
        db,
        group.id,
        year or today.year,
        month or today.month
    )
    if journal is None:
        raise HTTPException(status_code=404, detail="Group not found")
    return journal


@router.patch("/monthly", response_model=AttendeeResponse)
async def update_monthly_attendance(
    data: MonthlyAttendanceUpdate,
    group: Group = Depends(get_managed_group),
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    """Set one student's status for a calendar date"""
    try:
        attendee = await AttendanceService.set_monthly_cell(
            db,
            group.id,
            data.user_id,
            data.day,
            data.status,
            created_by=current_user.id
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AttendeeResponse.model_validate(attendee)
