from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.models.checklist import ChecklistItemStatus
from app.schemas.base import CamelModel


class ItemProgressUpdate(CamelModel):
    status: ChecklistItemStatus
    comment: Optional[str] = None


class ItemProgressResponse(BaseModel):
    item_id: UUID
    status: ChecklistItemStatus
    comment: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ChecklistProgressResponse(BaseModel):
    checklist_id: UUID
    progress: int
    completed_at: Optional[datetime] = None
    items: List[ItemProgressResponse]
