"""Repository for the jobs collection (asynchronous parse jobs)."""

import logging
from datetime import datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection

from nutrilog.models.job import OPEN_STATUSES, Job, JobStatus, allowed_sources
from nutrilog.utils.dates import minutes_ago, utc_now

from .base import BaseRepository, new_id

logger = logging.getLogger(__name__)

_OPEN = [status.value for status in OPEN_STATUSES]


class JobRepository(BaseRepository[Job]):
    """
    Repository for parse jobs.

    Every status write goes through ``transition``, which filters on the
    legal predecessor states so an illegal move is a no-op rather than a
    silent overwrite.
    """

    model_class = Job

    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection)

    async def ensure_indexes(self) -> None:
        """Ensure required indexes exist on the collection."""
        await self.collection.create_index(
            [("user_id", 1), ("created_at", -1)],
            name="user_created_idx",
        )
        await self.collection.create_index(
            [("user_id", 1), ("status", 1)],
            name="user_status_idx",
        )

    async def create_job(
        self,
        user_id: str,
        job_type: str,
        payload: dict[str, Any] | None = None,
        *,
        job_id: str | None = None,
    ) -> str:
        """
        Create a pending job.

        Args:
            user_id: Owner of the job
            job_type: ``parse_text`` or ``parse_image``
            payload: Type-specific input, kept for retries and listing
            job_id: Optional pre-generated id

        Returns:
            The job id
        """
        payload = payload or {}
        now = utc_now()
        document = {
            "_id": job_id or new_id(),
            "user_id": user_id,
            "type": str(getattr(job_type, "value", job_type)),
            "status": JobStatus.PENDING.value,
            "payload": payload,
            "result": None,
            "error": None,
            "attempt": int(payload.get("attempt") or 0),
            "created_at": now,
            "updated_at": now,
        }
        return await self.insert_one(document)

    async def get_job(self, job_id: str) -> Job | None:
        return await self.find_by_id(job_id)

    async def get_job_for_user(self, job_id: str, user_id: str) -> Job | None:
        return await self.find_one({"_id": job_id, "user_id": user_id})

    async def get_jobs_by_user(self, user_id: str, limit: int | None = None) -> list[Job]:
        """Jobs for a user, newest first."""
        return await self.find_many(
            filter={"user_id": user_id},
            sort=[("created_at", -1)],
            limit=limit if limit and limit > 0 else 0,
        )

    async def transition(
        self,
        job_id: str,
        status: JobStatus,
        *,
        result: dict[str, Any] | None = None,
        error: str | None = None,
        clear_error: bool = False,
        attempt: int | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        """
        Move a job to ``status``.

        Only the given fields are written; ``clear_error`` wins over
        ``error``.

        Returns:
            False if the job does not exist or its current status may not
            move to ``status``
        """
        fields: dict[str, Any] = {"status": status.value, "updated_at": utc_now()}
        if result is not None:
            fields["result"] = result
        if clear_error:
            fields["error"] = None
        elif error is not None:
            fields["error"] = error
        if attempt is not None:
            fields["attempt"] = attempt
        if started_at is not None:
            fields["started_at"] = started_at
        if completed_at is not None:
            fields["completed_at"] = completed_at

        sources = [source.value for source in allowed_sources(status)]
        update = await self.collection.update_one(
            {"_id": job_id, "status": {"$in": sources}},
            {"$set": fields},
        )
        if update.matched_count == 0:
            logger.warning(f"Job {job_id}: transition to {status.value} rejected")
            return False
        return True

    async def count_processing_jobs(self, user_id: str) -> int:
        return await self.count({"user_id": user_id, "status": JobStatus.PROCESSING.value})

    async def get_open_job_ids(self, user_id: str) -> list[str]:
        """Ids of the user's pending or processing jobs."""
        return await self.collection.distinct(
            "_id", {"user_id": user_id, "status": {"$in": _OPEN}}
        )

    async def get_users_with_open_jobs(self) -> list[str]:
        return await self.collection.distinct("user_id", {"status": {"$in": _OPEN}})

    async def mark_stale_jobs(self, user_id: str, cutoff_minutes: int = 30) -> int:
        """
        Force-consume open jobs created more than ``cutoff_minutes`` ago.

        An error already on the job (e.g. the concurrency backpressure
        message) is kept; otherwise a timeout error is written.

        Returns:
            Number of jobs consumed
        """
        now = utc_now()
        result = await self.collection.update_many(
            {
                "user_id": user_id,
                "status": {"$in": _OPEN},
                "created_at": {"$lt": minutes_ago(cutoff_minutes, now)},
            },
            [
                {
                    "$set": {
                        "status": JobStatus.CONSUMED.value,
                        "error": {
                            "$ifNull": ["$error", f"Timed out after {cutoff_minutes} minutes"]
                        },
                        "completed_at": {"$ifNull": ["$completed_at", now]},
                        "updated_at": now,
                    }
                }
            ],
        )
        return result.modified_count

    async def prune_jobs(self, user_id: str, keep: int = 500) -> int:
        """
        Delete the user's oldest jobs beyond the newest ``keep``.

        Returns:
            Number of deleted jobs
        """
        cursor = (
            self.collection.find({"user_id": user_id}, {"_id": 1})
            .sort("created_at", -1)
            .skip(max(keep, 0))
        )
        stale_ids = [doc["_id"] for doc in await cursor.to_list(length=None)]
        if not stale_ids:
            return 0
        result = await self.collection.delete_many({"_id": {"$in": stale_ids}})
        return result.deleted_count

    async def delete_job(self, job_id: str, user_id: str) -> bool:
        return await self.delete_one({"_id": job_id, "user_id": user_id})
