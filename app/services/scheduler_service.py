"""
Scheduler Service for running background jobs.

Uses APScheduler for cron-like scheduling of automated tasks
such as the daily deadline and event reminder sweep.
"""

import logging
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.database import AsyncSessionLocal


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def run_deadline_sweep():
    """
    Daily job sending deadline and event reminders.

    Covers assignments due and events starting between the start of today
    and the end of tomorrow. Running it twice on the same day sends the
    reminders twice.
    """
    logger.info(f"[Scheduler] Starting deadline sweep at {datetime.now()}")

    try:
        async with AsyncSessionLocal() as db:
            from app.services.notification_builder import NotificationBuilder

            builder = NotificationBuilder(db)
            counts = await builder.notify_upcoming_deadlines()

            logger.info(
                f"[Scheduler] Deadline sweep complete. "
                f"{counts['assignments']} assignments, {counts['events']} events, "
                f"{counts['notifications']} notifications sent."
            )
            return counts

    except Exception as e:
        logger.error(f"[Scheduler] Error in deadline sweep: {str(e)}")
        raise


def init_scheduler():
    """
    Initialize the scheduler with all scheduled jobs.

    Jobs:
    - Daily deadline sweep at DEADLINE_SWEEP_HOUR (SCHEDULER_TIMEZONE)
    """
    scheduler.add_job(
        run_deadline_sweep,
        CronTrigger(hour=settings.DEADLINE_SWEEP_HOUR, minute=0, timezone=settings.SCHEDULER_TIMEZONE),
        id='daily_deadline_sweep',
        name='Daily Deadline Sweep',
        replace_existing=True,
        misfire_grace_time=3600  # Allow up to 1 hour misfire grace
    )

    scheduler.start()
    logger.info(
        f"[Scheduler] Initialized with daily deadline sweep at "
        f"{settings.DEADLINE_SWEEP_HOUR:02d}:00 ({settings.SCHEDULER_TIMEZONE})"
    )


def shutdown_scheduler():
    if not scheduler.running:
        return
    scheduler.shutdown(wait=False)
    logger.info("[Scheduler] Stopped")


def get_scheduler_status() -> dict:
    """Running flag plus the next fire time of each registered job, for /health."""
    return {
        "running": scheduler.running,
        "enabled": settings.SCHEDULER_ENABLED,
        "jobs": {
            job.id: job.next_run_time.isoformat() if job.next_run_time else None
            for job in scheduler.get_jobs()
        }
    }
