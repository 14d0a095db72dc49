"""
Group schedule endpoints: weekly slots, event generation and bulk deletion.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from app.core.database import get_db
from app.core.security import get_current_teacher_or_admin
from app.models.user import User
from app.models.group import Group
from app.services.group_service import GroupService
from app.services.schedule_service import ScheduleService, SlotTemplate
from app.schemas.schedule import (
    ScheduleSaveRequest, ScheduleSlotResponse, RosterStudent, GroupScheduleResponse,
    GenerateEventsRequest, GenerateEventsResponse,
    BulkDeleteFutureRequest, BulkDeleteFutureResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups/{group_id}/schedule")


async def get_managed_group(
    group_id: UUID,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
) -> Group:
    """The path group, provided the current user may manage it."""
    group = await GroupService.get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    if not await GroupService.can_manage_group(db, group_id, current_user):
        raise HTTPException(status_code=403, detail="Access denied to this group")
    return group


async def _schedule_response(db: AsyncSession, group: Group, slots) -> GroupScheduleResponse:
    students = await GroupService.get_active_students(db, group.id)
    return GroupScheduleResponse(
        group_id=group.id,
        group_name=group.name,
        schedule=[ScheduleSlotResponse.model_validate(s) for s in slots],
        students=[RosterStudent.model_validate(s) for s in students]
    )


@router.get("", response_model=GroupScheduleResponse)
async def get_schedule(
    group: Group = Depends(get_managed_group),
    db: AsyncSession = Depends(get_db)
):
    slots = await ScheduleService.get_schedule(db, group.id)
    return await _schedule_response(db, group, slots)


@router.post("", response_model=GroupScheduleResponse)
async def save_schedule(
    data: ScheduleSaveRequest,
    group: Group = Depends(get_managed_group),
    db: AsyncSession = Depends(get_db)
):
    """Replace the whole weekly schedule"""
    templates = [
        SlotTemplate(s.day_of_week, s.start_time, s.end_time)
        for s in data.schedule
    ]
    try:
        slots = await ScheduleService.save_schedule(db, group.id, templates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return await _schedule_response(db, group, slots)


@router.delete("/{slot_id}")
async def delete_schedule_slot(
    slot_id: UUID,
    group: Group = Depends(get_managed_group),
    db: AsyncSession = Depends(get_db)
):
    if not await ScheduleService.delete_slot(db, group.id, slot_id):
        raise HTTPException(status_code=404, detail="Schedule entry not found")
    return {"message": "Schedule entry deleted"}


@router.post("/generate", response_model=GenerateEventsResponse)
async def generate_events(
    data: GenerateEventsRequest,
    group: Group = Depends(get_managed_group),
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    """Expand the weekly schedule into LESSON events over [startDate, endDate]"""
    try:
        created = await ScheduleService.generate_events(
            db,
            group.id,
            data.start_date,
            data.end_date,
            created_by=current_user.id,
            title=data.title,
            location=data.location,
            is_attendance_required=data.is_attendance_required
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return GenerateEventsResponse(created=created)


@router.post("/bulk-delete-future", response_model=BulkDeleteFutureResponse)
async def bulk_delete_future_events(
    data: Optional[BulkDeleteFutureRequest] = None,
    group: Group = Depends(get_managed_group),
    db: AsyncSession = Depends(get_db)
):
    """Delete the group's events that have not started yet"""
    event_ids = data.event_ids if data else None
    deleted = await ScheduleService.delete_future_events(db, group.id, event_ids)
    logger.info(f"Deleted {deleted} future events of group {group.id}")
    return BulkDeleteFutureResponse(deleted=deleted)
