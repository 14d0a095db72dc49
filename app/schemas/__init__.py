# Schemas package
from .base import CamelModel, to_camel
from .event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse,
    AttendeeResponse, AttendanceUpdate, MarkAllRequest, MarkAllResponse
)
from .schedule import (
    ScheduleSlotIn, ScheduleSaveRequest, ScheduleSlotResponse, GroupScheduleResponse,
    GenerateEventsRequest, GenerateEventsResponse,
    BulkDeleteFutureRequest, BulkDeleteFutureResponse,
    MonthlyAttendanceUpdate, MonthlyAttendanceResponse
)
from .assignment import (
    AssignmentCreate, AssignmentUpdate, AssignmentResponse,
    GroupAttachRequest, GroupAssignmentResponse, TemplateCopyRequest,
    SubmissionCreate, SubmissionResponse, GradeRequest, DeadlineSyncResponse
)
from .quiz import (
    QuizAnswer, QuizSubmitRequest, QuizSubmitResponse,
    QuizResponse, QuizQuestionResponse, QuizOptionResponse, QuizAttemptResponse
)
from .notification import (
    NotificationResponse, NotificationListResponse, UnreadCountResponse,
    MarkAllReadResponse, DeadlineSweepResponse
)
from .group import GroupMessageCreate, GroupMessageResponse, GroupMessageListResponse
from .checklist import ItemProgressUpdate, ItemProgressResponse, ChecklistProgressResponse
