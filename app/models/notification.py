"""
Notification model for per-user in-app notifications.

Rows are written only by the notification builder and are never changed
afterwards except for the recipient's read state.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Enum, Text, ForeignKey, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum

from app.core.database import Base


class NotificationType(enum.Enum):
    """Domain events that produce notifications"""
    NEW_ASSIGNMENT = "NEW_ASSIGNMENT"              # Assignment published to a group
    ASSIGNMENT_SUBMITTED = "ASSIGNMENT_SUBMITTED"  # Student handed in work
    ASSIGNMENT_GRADED = "ASSIGNMENT_GRADED"        # Teacher graded a submission
    DEADLINE_REMINDER = "DEADLINE_REMINDER"        # Due date approaching
    NEW_MESSAGE = "NEW_MESSAGE"                    # Group chat message
    EVENT_REMINDER = "EVENT_REMINDER"
    EVENT_CANCELLED = "EVENT_CANCELLED"
    EVENT_UPDATED = "EVENT_UPDATED"
    CHECKLIST_COMPLETED = "CHECKLIST_COMPLETED"


class Notification(Base):
    """In-app notifications for users"""
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Recipient
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Notification content
    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)

    # JSON-serialized payload (ids, dates) for the client to link to
    data = Column(Text, nullable=True)

    # Status
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=func.now(), index=True)

    # Relationships
    user = relationship("User", backref="notifications")

    def __repr__(self):
        return f"<Notification(user_id={self.user_id}, type={self.type.value}, title='{self.title[:30]}...')>"
