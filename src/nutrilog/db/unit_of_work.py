"""Unit of Work pattern for managing repository access."""

import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from .repositories.food_entries import FoodEntryRepository
from .repositories.foods import FoodRepository
from .repositories.job_slots import JobSlotRepository
from .repositories.jobs import JobRepository
from .repositories.nutrients import NutrientRepository
from .repositories.queue import QueueRepository

logger = logging.getLogger(__name__)

JOBS_COLLECTION = "jobs"
JOB_SLOTS_COLLECTION = "job_slots"
QUEUE_COLLECTION = "queue_messages"
FOODS_COLLECTION = "foods"
FOOD_NUTRIENTS_COLLECTION = "food_nutrients"
NUTRIENTS_COLLECTION = "nutrients"
FOOD_ENTRIES_COLLECTION = "food_entries"


class UnitOfWork:
    """
    Unit of Work pattern implementation.

    Groups repository access and provides a single injection point for services.

    Usage:
        uow = UnitOfWork(db)
        job = await uow.jobs.get_job(job_id)
        foods = await uow.foods.search_foods_by_name("rice", limit=1)
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize Unit of Work with database instance.

        Args:
            db: Motor database instance
        """
        self._db = db
        self._jobs: JobRepository | None = None
        self._job_slots: JobSlotRepository | None = None
        self._queue: QueueRepository | None = None
        self._foods: FoodRepository | None = None
        self._nutrients: NutrientRepository | None = None
        self._food_entries: FoodEntryRepository | None = None

    @property
    def jobs(self) -> JobRepository:
        """Get Jobs repository (lazy loaded)."""
        if self._jobs is None:
            self._jobs = JobRepository(self._db[JOBS_COLLECTION])
        return self._jobs

    @property
    def job_slots(self) -> JobSlotRepository:
        """Get per-user processing slots repository (lazy loaded)."""
        if self._job_slots is None:
            self._job_slots = JobSlotRepository(self._db[JOB_SLOTS_COLLECTION])
        return self._job_slots

    @property
    def queue(self) -> QueueRepository:
        """Get dispatch queue repository (lazy loaded)."""
        if self._queue is None:
            self._queue = QueueRepository(self._db[QUEUE_COLLECTION])
        return self._queue

    @property
    def foods(self) -> FoodRepository:
        """Get food catalog repository (lazy loaded)."""
        if self._foods is None:
            self._foods = FoodRepository(
                self._db[FOODS_COLLECTION],
                self._db[FOOD_NUTRIENTS_COLLECTION],
                nutrients_collection_name=NUTRIENTS_COLLECTION,
            )
        return self._foods

    @property
    def nutrients(self) -> NutrientRepository:
        """Get nutrient catalog repository (lazy loaded)."""
        if self._nutrients is None:
            self._nutrients = NutrientRepository(self._db[NUTRIENTS_COLLECTION])
        return self._nutrients

    @property
    def food_entries(self) -> FoodEntryRepository:
        """Get food log repository (lazy loaded)."""
        if self._food_entries is None:
            self._food_entries = FoodEntryRepository(
                self._db[FOOD_ENTRIES_COLLECTION],
                foods_collection_name=FOODS_COLLECTION,
                food_nutrients_collection_name=FOOD_NUTRIENTS_COLLECTION,
                nutrients_collection_name=NUTRIENTS_COLLECTION,
            )
        return self._food_entries

    async def ensure_indexes(self) -> None:
        """Create the indexes every repository relies on."""
        await self.jobs.ensure_indexes()
        await self.queue.ensure_indexes()
        await self.foods.ensure_indexes()
        await self.food_entries.ensure_indexes()
        logger.info("MongoDB indexes ensured")
