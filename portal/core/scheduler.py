"""APScheduler housekeeping for the session store."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from portal.core.config import settings
from portal.core.database import session_scope
from portal.services.session_store import purge_expired_sessions

logger = logging.getLogger(__name__)

PURGE_JOB_ID = "purge_expired_sessions"

scheduler: AsyncIOScheduler | None = None


def purge_expired_sessions_job() -> int:
    """Drop session entries idle for longer than the session TTL."""
    try:
        with session_scope() as db:
            count = purge_expired_sessions(db, settings.SESSION_TTL_HOURS)
    except Exception as e:
        logger.exception(f"Session purge failed: {e}")
        return 0
    if count:
        logger.info(f"Purged {count} expired session entries")
    return count


def init_scheduler() -> AsyncIOScheduler:
    global scheduler

    scheduler = AsyncIOScheduler(
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300}
    )
    # Only the database backend keeps entries outside the process
    if settings.SESSION_BACKEND == "database":
        scheduler.add_job(
            purge_expired_sessions_job,
            trigger=IntervalTrigger(minutes=settings.SESSION_CLEANUP_INTERVAL_MINUTES),
            id=PURGE_JOB_ID,
            name="Purge expired portal sessions",
            replace_existing=True,
        )
        logger.info(
            f"Session purge scheduled every {settings.SESSION_CLEANUP_INTERVAL_MINUTES} minutes"
        )
    return scheduler


def start_scheduler():
    global scheduler
    if scheduler is None:
        scheduler = init_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler():
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
