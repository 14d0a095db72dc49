from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, Enum, Uuid, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum

from app.core.database import Base


class ChecklistItemStatus(enum.Enum):
    COMPLETED = "COMPLETED"
    NOT_COMPLETED = "NOT_COMPLETED"
    NOT_NEEDED = "NOT_NEEDED"
    HAS_QUESTIONS = "HAS_QUESTIONS"


class Checklist(Base):
    __tablename__ = "checklists"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    groups = relationship(
        "ChecklistGroup",
        back_populates="checklist",
        cascade="all, delete-orphan",
        order_by="ChecklistGroup.order"
    )


class ChecklistGroup(Base):
    __tablename__ = "checklist_groups"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    checklist_id = Column(Uuid, ForeignKey("checklists.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    order = Column(Integer, nullable=False, default=0)

    checklist = relationship("Checklist", back_populates="groups")
    items = relationship(
        "ChecklistItem",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="ChecklistItem.order"
    )


class ChecklistItem(Base):
    __tablename__ = "checklist_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, ForeignKey("checklist_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)

    group = relationship("ChecklistGroup", back_populates="items")


class ChecklistItemProgress(Base):
    __tablename__ = "checklist_item_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    item_id = Column(Uuid, ForeignKey("checklist_items.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(ChecklistItemStatus), nullable=False, default=ChecklistItemStatus.NOT_COMPLETED)
    comment = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('user_id', 'item_id', name='unique_user_checklist_item'),
    )


class ChecklistProgress(Base):
    __tablename__ = "checklist_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    checklist_id = Column(Uuid, ForeignKey("checklists.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    progress = Column(Integer, nullable=False, default=0)  # percent
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint('user_id', 'checklist_id', name='unique_user_checklist'),
    )
