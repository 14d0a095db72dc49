from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.services.checklist_service import ChecklistService
from app.schemas.checklist import ItemProgressUpdate, ItemProgressResponse, ChecklistProgressResponse

router = APIRouter(prefix="/checklists")


def _progress_response(progress: dict) -> ChecklistProgressResponse:
    return ChecklistProgressResponse(
        checklist_id=progress["checklist_id"],
        progress=progress["progress"],
        completed_at=progress["completed_at"],
        items=[ItemProgressResponse.model_validate(i) for i in progress["items"]]
    )


@router.get("/{checklist_id}/progress", response_model=ChecklistProgressResponse)
async def get_checklist_progress(
    checklist_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ChecklistService(db)
    progress = await service.get_progress(checklist_id, current_user.id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Checklist not found")
    return _progress_response(progress)


@router.put("/{checklist_id}/items/{item_id}/progress", response_model=ChecklistProgressResponse)
async def update_item_progress(
    checklist_id: UUID,
    item_id: UUID,
    data: ItemProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = ChecklistService(db)
    try:
        progress = await service.update_item_progress(
            checklist_id, item_id, current_user, data.status, data.comment
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _progress_response(progress)
