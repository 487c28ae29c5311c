"""APScheduler integration for periodic record, auto-tag and rollover jobs."""

import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from togglsync.config import settings
from togglsync.database import SessionLocal
from togglsync.exceptions import ConfigurationError
from togglsync.services import jobs

log = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

RECORD_JOB_ID = "periodic_record_job"
AUTO_TAG_JOB_ID = "periodic_auto_tag_job"
AUTO_TAG_RETRY_JOB_ID = "auto_tag_retry_job"
ROLLOVER_JOB_ID = "daily_rollover_job"


async def _run(job_name: str, job, **kwargs):
    """Run one job with its own session and connectors; errors are logged, never raised."""
    db = SessionLocal()
    try:
        async with jobs.open_context(db, settings) as ctx:
            report = await job(ctx, **kwargs)
            log.info(f"Scheduled {job_name} finished: {report.status} ({report.message})")
    except ConfigurationError as e:
        log.error(f"Scheduled {job_name} skipped: {e}")
    except Exception as e:
        log.error(f"Scheduled {job_name} failed: {e}", exc_info=True)
    finally:
        db.close()


async def scheduled_record_job():
    await _run("record", jobs.record_time_entries, trigger_type='scheduled')


async def scheduled_auto_tag_job(trigger_type: str = 'scheduled'):
    await _run("auto_tag", jobs.auto_tag, trigger_type=trigger_type, on_failure=schedule_auto_tag_retry)


async def scheduled_rollover_job():
    await _run("rollover", jobs.check_rollover, trigger_type='scheduled')


def schedule_auto_tag_retry() -> bool:
    """Queue one auto-tag retry after auto_tag_retry_minutes. A pending retry is replaced."""
    if not scheduler.running:
        log.info("Auto-tag retry not scheduled: scheduler is not running")
        return False
    run_date = datetime.now(ZoneInfo(settings.time_zone)) + timedelta(minutes=settings.auto_tag_retry_minutes)
    scheduler.add_job(
        scheduled_auto_tag_job,
        trigger=DateTrigger(run_date=run_date),
        id=AUTO_TAG_RETRY_JOB_ID,
        kwargs={"trigger_type": "retry"},
        replace_existing=True
    )
    log.info(f"Auto-tag retry scheduled at {run_date.isoformat()}")
    return True


def start_scheduler():
    """Register the periodic jobs from settings and start the APScheduler."""
    scheduler.add_job(
        scheduled_record_job,
        trigger=IntervalTrigger(minutes=settings.sync_interval_minutes),
        id=RECORD_JOB_ID,
        replace_existing=True
    )
    log.info(f"Record job scheduled every {settings.sync_interval_minutes} minutes")

    if settings.auto_tags or settings.auto_tag_mapping:
        scheduler.add_job(
            scheduled_auto_tag_job,
            trigger=IntervalTrigger(minutes=settings.sync_interval_minutes),
            id=AUTO_TAG_JOB_ID,
            replace_existing=True
        )
        log.info(f"Auto-tag job scheduled every {settings.sync_interval_minutes} minutes")

    try:
        trigger = CronTrigger.from_crontab(settings.rollover_cron, timezone=ZoneInfo(settings.time_zone))
    except ValueError as e:
        log.error(f"Invalid rollover_cron '{settings.rollover_cron}': {e}")
        raise
    scheduler.add_job(scheduled_rollover_job, trigger=trigger, id=ROLLOVER_JOB_ID, replace_existing=True)
    log.info(f"Rollover check scheduled: cron='{settings.rollover_cron}'")

    if not scheduler.running:
        scheduler.start()
        log.info("APScheduler started successfully")


def shutdown_scheduler():
    """Shutdown the APScheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        log.info("APScheduler shut down successfully")
