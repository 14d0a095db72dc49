# Models package
from .user import User, UserRole
from .group import (
    Group, GroupStudent, GroupTeacher, GroupSchedule, GroupMessage,
    GroupStudentStatus, MessageType
)
from .event import Event, EventAttendee, EventType, AttendanceStatus
from .assignment import (
    Assignment, GroupAssignment, Submission,
    AssignmentType, AssignmentStatus
)
from .quiz import (
    Quiz, QuizQuestion, QuizOption, QuizAttempt,
    QuizAttemptType, QuizQuestionType
)
from .checklist import (
    Checklist, ChecklistGroup, ChecklistItem, ChecklistItemProgress, ChecklistProgress,
    ChecklistItemStatus
)
from .notification import Notification, NotificationType
