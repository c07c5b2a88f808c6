"""Staleness sweep and retention pruning for a user's jobs."""

import logging
from dataclasses import dataclass

from nutrilog.db.repositories.job_slots import JobSlotRepository
from nutrilog.db.repositories.jobs import JobRepository

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """What one sweep changed."""

    user_id: str
    consumed: int = 0
    pruned: int = 0


class JobMaintenance:
    """
    Reclaims stuck jobs and enforces the per-user retention cap.

    Open jobs older than ``cutoff_minutes`` are force-consumed, slots held by
    jobs that are no longer open are released, and all but the newest
    ``retain`` jobs are deleted.
    """

    def __init__(
        self,
        jobs: JobRepository,
        job_slots: JobSlotRepository,
        cutoff_minutes: int = 30,
        retain: int = 500,
    ):
        self.jobs = jobs
        self.job_slots = job_slots
        self.cutoff_minutes = cutoff_minutes
        self.retain = retain

    async def reclaim_slots(self, user_id: str) -> int:
        """
        Time out the user's stale jobs and free the slots of closed ones.

        Slots outlive a crashed worker, so this runs before a job is turned
        away at the concurrency limit and whenever jobs are listed.

        Returns:
            Number of jobs timed out
        """
        consumed = await self.jobs.mark_stale_jobs(user_id, self.cutoff_minutes)
        open_ids = await self.jobs.get_open_job_ids(user_id)
        await self.job_slots.retain(user_id, open_ids)
        return consumed

    async def sweep_user_jobs(self, user_id: str) -> SweepReport:
        report = SweepReport(user_id=user_id)
        report.consumed = await self.reclaim_slots(user_id)
        report.pruned = await self.jobs.prune_jobs(user_id, self.retain)

        if report.consumed or report.pruned:
            logger.info(
                f"Swept jobs for user {user_id}: "
                f"{report.consumed} timed out, {report.pruned} pruned"
            )
        return report

    async def sweep_all_users(self) -> list[SweepReport]:
        """Sweep every user that currently has an open job."""
        user_ids = await self.jobs.get_users_with_open_jobs()
        reports = []
        for user_id in user_ids:
            reports.append(await self.sweep_user_jobs(user_id))
        return reports
