"""Repository for per-user processing slots (concurrency limiting)."""

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError

from nutrilog.utils.dates import utc_now

from .base import BaseRepository


class JobSlotRepository(BaseRepository):
    """
    One document per user holding the ids of jobs allowed to process.

    ``acquire`` claims a slot with a single conditional update, so two
    workers cannot both pass the limit check for the same user.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection)

    async def acquire(self, user_id: str, job_id: str, limit: int) -> bool:
        """
        Claim a processing slot for ``job_id``.

        Re-acquiring a slot the job already holds succeeds, so duplicate
        deliveries of the same message do not consume extra slots.

        The upsert raises ``DuplicateKeyError`` both when the user's document
        is full and when another worker created it concurrently, so a
        collision is retried once; a second collision means the set is full.

        Returns:
            True if the job holds a slot afterwards
        """
        query = {
            "_id": user_id,
            "$or": [
                {"job_ids": job_id},
                {"$expr": {"$lt": [{"$size": {"$ifNull": ["$job_ids", []]}}, limit]}},
            ],
        }
        update = {"$addToSet": {"job_ids": job_id}, "$set": {"updated_at": utc_now()}}
        for _ in range(2):
            try:
                await self.collection.update_one(query, update, upsert=True)
            except DuplicateKeyError:
                continue
            return True
        return False

    async def release(self, user_id: str, job_id: str) -> None:
        await self.collection.update_one(
            {"_id": user_id},
            {"$pull": {"job_ids": job_id}, "$set": {"updated_at": utc_now()}},
        )

    async def retain(self, user_id: str, open_job_ids: list[str]) -> None:
        """Drop slots held by jobs that are no longer open."""
        await self.collection.update_one(
            {"_id": user_id},
            {
                "$pull": {"job_ids": {"$nin": list(open_job_ids)}},
                "$set": {"updated_at": utc_now()},
            },
        )
