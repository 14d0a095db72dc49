"""
Calendar event and attendance endpoints.
"""
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from app.core.database import get_db
from app.core.security import get_current_user, get_current_teacher_or_admin
from app.models.user import User
from app.models.event import EventType
from app.services.event_service import EventService
from app.services.attendance_service import AttendanceService
from app.services.group_service import GroupService
from app.schemas.base import to_local_naive
from app.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse,
    AttendanceUpdate, AttendeeResponse, MarkAllRequest, MarkAllResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events")


@router.get("", response_model=EventListResponse)
async def list_events(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    group_id: Optional[UUID] = Query(None, alias="groupId"),
    event_type: Optional[EventType] = Query(None, alias="type"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Events visible to the current user, optionally overlapping a date range"""
    service = EventService(db)
    events = await service.list_events(
        current_user,
        start_date=to_local_naive(start_date) if start_date else None,
        end_date=to_local_naive(end_date) if end_date else None,
        group_id=group_id,
        event_type=event_type
    )
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=len(events)
    )


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    data: EventCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = EventService(db)
    try:
        event = await service.create_event(data, current_user)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return EventResponse.model_validate(event)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = EventService(db)
    event = await service.get_visible_event(event_id, current_user)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse.model_validate(event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    data: EventUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = EventService(db)
    try:
        event = await service.update_event(event_id, data, current_user)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse.model_validate(event)


@router.delete("/{event_id}")
async def delete_event(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = EventService(db)
    try:
        deleted = await service.delete_event(event_id, current_user)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    if not deleted:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"message": "Event deleted"}


# ==================== Attendance ====================

@router.get("/{event_id}/attendance")
async def get_event_attendance(
    event_id: UUID,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    service = EventService(db)
    event = await service.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if event.group_id and not await GroupService.can_manage_group(db, event.group_id, current_user):
        raise HTTPException(status_code=403, detail="Access denied to this event")

    return {
        "event_id": event.id,
        "attendees": [AttendeeResponse.model_validate(a) for a in event.attendees]
    }


@router.patch("/{event_id}/attendance", response_model=AttendeeResponse)
async def update_event_attendance(
    event_id: UUID,
    data: AttendanceUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Own RSVP, or a teacher/admin recording another user's attendance"""
    try:
        attendee = await AttendanceService.record_for_user(
            db,
            event_id,
            current_user,
            data.status,
            target_user_id=data.user_id,
            response=data.response
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    return AttendeeResponse.model_validate(attendee)


@router.post("/{event_id}/attendance/mark-all", response_model=MarkAllResponse)
async def mark_all_attendance(
    event_id: UUID,
    data: MarkAllRequest,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    """Apply one status to the whole active roster of the event's group"""
    event = await AttendanceService.get_event(db, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if event.group_id and not await GroupService.can_manage_group(db, event.group_id, current_user):
        raise HTTPException(status_code=403, detail="Access denied to this event")

    try:
        updated = await AttendanceService.mark_all_as(db, event_id, data.status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Marked {updated} attendees of event {event_id} as {data.status.value}")
    return MarkAllResponse(event_id=event_id, status=data.status, updated=updated)
