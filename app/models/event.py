from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, Enum, Uuid, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
import enum

from app.core.database import Base


class EventType(enum.Enum):
    LESSON = "LESSON"
    EXAM = "EXAM"
    DEADLINE = "DEADLINE"
    MEETING = "MEETING"
    WORKSHOP = "WORKSHOP"
    SEMINAR = "SEMINAR"
    CONSULTATION = "CONSULTATION"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    OTHER = "OTHER"


class AttendanceStatus(enum.Enum):
    PENDING = "PENDING"              # Invited, no answer yet
    ATTENDED = "ATTENDED"
    ABSENT = "ABSENT"
    LATE = "LATE"
    ATTENDING = "ATTENDING"          # RSVP
    NOT_ATTENDING = "NOT_ATTENDING"  # RSVP
    MAYBE = "MAYBE"                  # RSVP


class Event(Base):
    """
    A dated calendar occurrence. start_date/end_date hold local wall-clock time.
    Rows are soft deleted through is_active.
    """
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(EventType), nullable=False, default=EventType.OTHER)
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False)
    location = Column(String(255), nullable=True)

    group_id = Column(Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=True, index=True)
    assignment_id = Column(Uuid, ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_attendance_required = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    group = relationship("Group")
    creator = relationship("User", foreign_keys=[created_by])
    attendees = relationship("EventAttendee", back_populates="event", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Event(title='{self.title}', start={self.start_date})>"


class EventAttendee(Base):
    __tablename__ = "event_attendees"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.PENDING)
    response = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    event = relationship("Event", back_populates="attendees")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('event_id', 'user_id', name='unique_event_attendee'),
    )
