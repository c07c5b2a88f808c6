"""Background scheduler for periodic job maintenance."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from nutrilog.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def run_stale_sweep() -> None:
    """
    Sweep every user with open jobs.

    Called by APScheduler so that stuck jobs are reclaimed even for users
    who submit nothing else.
    """
    from nutrilog.db.mongo import MongoDB
    from nutrilog.db.unit_of_work import UnitOfWork
    from nutrilog.services.maintenance import JobMaintenance

    settings = get_settings()

    try:
        uow = UnitOfWork(MongoDB.get_database(settings.db_name))
        maintenance = JobMaintenance(
            uow.jobs,
            uow.job_slots,
            cutoff_minutes=settings.stale_job_cutoff_minutes,
            retain=settings.jobs_retain,
        )
        reports = await maintenance.sweep_all_users()
        consumed = sum(report.consumed for report in reports)
        logger.info(f"Scheduled sweep finished: {len(reports)} users, {consumed} jobs timed out")
    except Exception as e:
        logger.exception(f"Scheduled sweep error: {e}")


def start_scheduler(settings: Settings | None = None) -> AsyncIOScheduler | None:
    """
    Start the background scheduler if configured.

    Args:
        settings: Optional settings instance

    Returns:
        Scheduler instance if started, None otherwise
    """
    global _scheduler

    settings = settings or get_settings()

    if settings.stale_sweep_interval_minutes <= 0:
        logger.info("Periodic stale-job sweep is disabled")
        return None

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        run_stale_sweep,
        trigger=IntervalTrigger(minutes=settings.stale_sweep_interval_minutes),
        id="stale_job_sweep",
        name="Stale Job Sweep",
        replace_existing=True,
        max_instances=1,
    )
    _scheduler.start()

    logger.info(
        f"Scheduler started: stale-job sweep every {settings.stale_sweep_interval_minutes} minutes"
    )
    return _scheduler


def stop_scheduler() -> None:
    """Stop the background scheduler if running."""
    global _scheduler

    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    _scheduler = None


def get_scheduler() -> AsyncIOScheduler | None:
    """Get the current scheduler instance."""
    return _scheduler
