"""Daily food log: commit parsed jobs as entries and summarize a day."""

import logging

from nutrilog.core.exceptions import JobNotFoundError, ValidationError
from nutrilog.db.unit_of_work import UnitOfWork
from nutrilog.models.catalog import DaySummary
from nutrilog.models.job import JobResult, JobStatus
from nutrilog.utils.dates import today_iso, utc_now

logger = logging.getLogger(__name__)


class FoodLogService:
    """Service for the user's daily food log."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def log_job_items(
        self,
        user_id: str,
        job_id: str,
        *,
        entry_time: str | None = None,
    ) -> DaySummary:
        """
        Log a finished job's items for its entry date and consume the job.

        Items without a catalog food or without grams are skipped.

        Returns:
            Summary of the entry date after logging

        Raises:
            JobNotFoundError: If the job is unknown
            ValidationError: If the job is not done
        """
        job = await self.uow.jobs.get_job_for_user(job_id, user_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status != JobStatus.DONE or not job.result:
            raise ValidationError(
                "Job has no result to log",
                details={"job_id": job_id, "status": job.status.value},
            )

        result = JobResult.model_validate(job.result)
        entry_date = result.entry_date or today_iso()
        entry_time = entry_time or utc_now().strftime("%H:%M")
        meal_type = job.payload.get("entryMeal") or "uncategorized"

        logged = 0
        for item in result.items:
            if not item.food_id or not item.grams_estimate:
                continue
            await self.uow.food_entries.log_entry(
                user_id,
                item.food_id,
                entry_date,
                item.grams_estimate,
                entry_time=entry_time,
                meal_type=meal_type,
                source="ai",
            )
            logged += 1

        await self.uow.jobs.transition(job_id, JobStatus.CONSUMED)
        logger.info(f"Logged {logged} items from job {job_id} for {entry_date}")
        return await self.day_summary(user_id, entry_date)

    async def day_summary(self, user_id: str, entry_date: str | None = None) -> DaySummary:
        """Entries and nutrient totals for one day (today by default)."""
        date = entry_date or today_iso()
        entries = await self.uow.food_entries.get_entries_by_date(user_id, date)
        nutrients = await self.uow.food_entries.get_day_nutrients(user_id, date)
        return DaySummary(date=date, entries=entries, nutrients=nutrients)
