from fastapi import APIRouter

from .events import router as events_router
from .schedule import router as schedule_router
from .attendance import router as attendance_router
from .assignments import router as assignments_router
from .quizzes import router as quizzes_router
from .checklists import router as checklists_router
from .groups import router as groups_router
from .notification import router as notification_router

# Create main API router
api_router = APIRouter()

# Include all routers
api_router.include_router(events_router, tags=["Events"])
api_router.include_router(schedule_router, prefix="/admin", tags=["Schedule"])
api_router.include_router(attendance_router, prefix="/admin", tags=["Attendance"])
api_router.include_router(assignments_router, tags=["Assignments"])
api_router.include_router(quizzes_router, tags=["Quizzes"])
api_router.include_router(checklists_router, tags=["Checklists"])
api_router.include_router(groups_router, tags=["Groups"])
api_router.include_router(notification_router, tags=["Notifications"])
