import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.clock import Clock
from app.jobs.auto_absent import run_auto_absent

logger = logging.getLogger(__name__)

AUTO_ABSENT_JOB_ID = "auto_absent"


def build_scheduler(settings, session_factory, ledger, clock: Clock) -> AsyncIOScheduler:
    """Scheduler with the daily auto-absent job at AUTO_ABSENT_HOUR:AUTO_ABSENT_MINUTE local time."""
    scheduler = AsyncIOScheduler(
        timezone=settings.app_timezone,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 3600,
        },
    )
    scheduler.add_job(
        run_auto_absent,
        CronTrigger(
            hour=settings.auto_absent_hour,
            minute=settings.auto_absent_minute,
            timezone=settings.app_timezone,
        ),
        args=[session_factory, ledger, clock],
        id=AUTO_ABSENT_JOB_ID,
        name="Mark unmarked employees absent",
        replace_existing=True,
    )
    logger.info(
        "Auto-absent scheduled daily at %02d:%02d %s",
        settings.auto_absent_hour, settings.auto_absent_minute, settings.app_timezone,
    )
    return scheduler
