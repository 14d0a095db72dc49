from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, Enum, Uuid, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum

from app.core.database import Base


class GroupStudentStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class MessageType(enum.Enum):
    REGULAR = "REGULAR"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    SYSTEM = "SYSTEM"
    ASSIGNMENT_DISCUSSION = "ASSIGNMENT_DISCUSSION"


class Group(Base):
    __tablename__ = "groups"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    students = relationship("GroupStudent", back_populates="group", cascade="all, delete-orphan")
    teachers = relationship("GroupTeacher", back_populates="group", cascade="all, delete-orphan")
    schedule = relationship("GroupSchedule", back_populates="group", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Group(name='{self.name}')>"


class GroupStudent(Base):
    __tablename__ = "group_students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(GroupStudentStatus), default=GroupStudentStatus.ACTIVE, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=func.now())

    group = relationship("Group", back_populates="students")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('group_id', 'user_id', name='unique_group_student'),
    )


class GroupTeacher(Base):
    __tablename__ = "group_teachers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    group = relationship("Group", back_populates="teachers")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('group_id', 'user_id', name='unique_group_teacher'),
    )


class GroupSchedule(Base):
    """Weekly time slot template; day_of_week follows 0 = Sunday ... 6 = Saturday."""
    __tablename__ = "group_schedules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)    # HH:MM
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    group = relationship("Group", back_populates="schedule")

    def __repr__(self):
        return f"<GroupSchedule(group_id='{self.group_id}', day={self.day_of_week}, {self.start_time}-{self.end_time})>"


class GroupMessage(Base):
    __tablename__ = "group_messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id = Column(Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(Enum(MessageType), default=MessageType.REGULAR, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    sender = relationship("User")
