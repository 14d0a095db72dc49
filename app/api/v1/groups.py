from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User, UserRole
from app.services.group_service import GroupService
from app.schemas.group import GroupMessageCreate, GroupMessageResponse, GroupMessageListResponse

router = APIRouter(prefix="/groups")


@router.get("/{group_id}/messages", response_model=GroupMessageListResponse)
async def get_group_messages(
    group_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Most recent messages first"""
    if not await GroupService.get_group(db, group_id):
        raise HTTPException(status_code=404, detail="Group not found")
    if current_user.role != UserRole.ADMIN and not await GroupService.is_member(db, group_id, current_user.id):
        raise HTTPException(status_code=403, detail="Access denied to this group")

    messages = await GroupService.get_messages(db, group_id, limit)
    return GroupMessageListResponse(
        messages=[GroupMessageResponse.model_validate(m) for m in messages]
    )


@router.post("/{group_id}/messages", response_model=GroupMessageResponse, status_code=201)
async def post_group_message(
    group_id: UUID,
    data: GroupMessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        message = await GroupService.post_message(
            db, group_id, current_user, data.content, data.message_type
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return GroupMessageResponse.model_validate(message)
