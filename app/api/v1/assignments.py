"""
Assignment endpoints: lifecycle, group attachment, submissions and grading.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from app.core.database import get_db
from app.core.security import get_current_user, get_current_teacher_or_admin
from app.models.user import User
from app.models.assignment import Assignment
from app.services.assignment_service import AssignmentService
from app.schemas.assignment import (
    AssignmentCreate, AssignmentUpdate, AssignmentResponse,
    GroupAttachRequest, GroupAssignmentResponse, TemplateCopyRequest,
    SubmissionCreate, SubmissionResponse, GradeRequest, DeadlineSyncResponse
)

router = APIRouter(prefix="/assignments")


async def _get_managed_assignment(
    service: AssignmentService,
    assignment_id: UUID,
    user: User
) -> Assignment:
    assignment = await service.get_assignment(assignment_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    if not await service.can_manage(assignment, user):
        raise HTTPException(status_code=403, detail="Access denied to this assignment")
    return assignment


@router.post("", response_model=AssignmentResponse, status_code=201)
async def create_assignment(
    data: AssignmentCreate,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    service = AssignmentService(db)
    try:
        assignment = await service.create_assignment(data, current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AssignmentResponse.model_validate(assignment)


@router.get("/{assignment_id}", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = AssignmentService(db)
    assignment = await service.get_assignment(assignment_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return AssignmentResponse.model_validate(assignment)


@router.put("/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(
    assignment_id: UUID,
    data: AssignmentUpdate,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    service = AssignmentService(db)
    await _get_managed_assignment(service, assignment_id, current_user)
    assignment = await service.update_assignment(assignment_id, data)
    return AssignmentResponse.model_validate(assignment)


@router.post("/{assignment_id}/publish", response_model=AssignmentResponse)
async def publish_assignment(
    assignment_id: UUID,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    """Publish and notify the students of every attached group"""
    service = AssignmentService(db)
    await _get_managed_assignment(service, assignment_id, current_user)
    try:
        assignment = await service.publish(assignment_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AssignmentResponse.model_validate(assignment)


@router.post("/{assignment_id}/groups", response_model=GroupAssignmentResponse, status_code=201)
async def attach_assignment_to_group(
    assignment_id: UUID,
    data: GroupAttachRequest,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    service = AssignmentService(db)
    await _get_managed_assignment(service, assignment_id, current_user)
    try:
        link = await service.attach_to_group(assignment_id, data.group_id, data.due_date)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return GroupAssignmentResponse.model_validate(link)


@router.post("/{assignment_id}/sync-deadline", response_model=DeadlineSyncResponse)
async def sync_deadline_events(
    assignment_id: UUID,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create or move the DEADLINE calendar event of every attached group"""
    service = AssignmentService(db)
    await _get_managed_assignment(service, assignment_id, current_user)
    try:
        result = await service.sync_deadline_events(assignment_id, current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DeadlineSyncResponse(**result)


@router.post("/{template_id}/copy", response_model=AssignmentResponse, status_code=201)
async def copy_assignment_template(
    template_id: UUID,
    data: TemplateCopyRequest,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    service = AssignmentService(db)
    try:
        assignment = await service.copy_template(template_id, data, current_user.id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AssignmentResponse.model_validate(assignment)


# ==================== Submissions ====================

@router.post("/{assignment_id}/submit", response_model=SubmissionResponse)
async def submit_assignment(
    assignment_id: UUID,
    data: SubmissionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = AssignmentService(db)
    try:
        submission = await service.submit(
            assignment_id,
            current_user,
            content=data.content,
            file_url=data.file_url
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SubmissionResponse.model_validate(submission)


@router.get("/{assignment_id}/submissions", response_model=List[SubmissionResponse])
async def list_submissions(
    assignment_id: UUID,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    service = AssignmentService(db)
    await _get_managed_assignment(service, assignment_id, current_user)
    submissions = await service.get_submissions(assignment_id)
    return [SubmissionResponse.model_validate(s) for s in submissions]


@router.post("/submissions/{submission_id}/grade", response_model=SubmissionResponse)
async def grade_submission(
    submission_id: UUID,
    data: GradeRequest,
    current_user: User = Depends(get_current_teacher_or_admin),
    db: AsyncSession = Depends(get_db)
):
    service = AssignmentService(db)
    try:
        submission = await service.grade(submission_id, current_user, data.score, data.feedback)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    return SubmissionResponse.model_validate(submission)
