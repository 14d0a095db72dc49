from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.models.group import MessageType
from app.schemas.base import CamelModel


class GroupMessageCreate(CamelModel):
    content: str = Field(..., max_length=5000)
    message_type: MessageType = MessageType.REGULAR


class GroupMessageResponse(BaseModel):
    id: UUID
    group_id: UUID
    sender_id: UUID
    content: str
    message_type: MessageType
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GroupMessageListResponse(BaseModel):
    messages: List[GroupMessageResponse]
