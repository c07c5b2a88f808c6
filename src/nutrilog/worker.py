"""Queue worker entry point: wires the services together and consumes jobs."""

import asyncio
import logging

from nutrilog.core.config import Settings, get_settings
from nutrilog.core.scheduler import start_scheduler, stop_scheduler
from nutrilog.db.mongo import MongoDB
from nutrilog.db.unit_of_work import UnitOfWork
from nutrilog.services.catalog import FoodCatalogResolver
from nutrilog.services.estimation.base import EstimationClient
from nutrilog.services.estimation.factory import get_estimation_client
from nutrilog.services.extraction import ImageExtractionOrchestrator, TextExtractionOrchestrator
from nutrilog.services.food_parse import FoodParseService
from nutrilog.services.history import UserHistoryLog
from nutrilog.services.macros import MacroAggregator
from nutrilog.services.nutrient_index import NutrientIndex
from nutrilog.services.processor import ImageUrlResolver, JobProcessor
from nutrilog.services.queue import JobQueue

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_processor(
    uow: UnitOfWork,
    client: EstimationClient,
    settings: Settings | None = None,
    *,
    image_url_resolver: ImageUrlResolver | None = None,
) -> JobProcessor:
    """
    Assemble a JobProcessor and its collaborators.

    Args:
        uow: Unit of Work for storage access
        client: Estimation backend
        settings: Optional settings instance
        image_url_resolver: Turns an uploaded object key into a fetchable URL

    Returns:
        Ready-to-use JobProcessor
    """
    settings = settings or get_settings()
    nutrient_index = NutrientIndex(uow.nutrients)
    text_orchestrator = TextExtractionOrchestrator(client)
    parse_service = FoodParseService(
        text_orchestrator,
        ImageExtractionOrchestrator(client, text_orchestrator),
        FoodCatalogResolver(uow.foods, client, nutrient_index),
    )
    return JobProcessor(
        uow,
        parse_service,
        MacroAggregator(uow.foods),
        JobQueue(uow.queue, poll_interval=settings.queue_poll_interval_seconds),
        history=UserHistoryLog(settings.history_size),
        settings=settings,
        image_url_resolver=image_url_resolver,
    )


class FoodJobWorker:
    """Runs ``concurrency`` consumer tasks against the job queue."""

    def __init__(self, processor: JobProcessor, concurrency: int = 4):
        self.processor = processor
        self.concurrency = max(concurrency, 1)
        self._tasks: list[asyncio.Task] = []

    async def _consume(self, worker_id: int) -> None:
        queue = self.processor.queue
        while True:
            message = None
            try:
                message = await queue.receive()
                status = await self.processor.process(message)
                logger.debug(
                    f"Consumer {worker_id}: job {message.job_id} -> "
                    f"{status.value if status else 'skipped'}"
                )
            except asyncio.CancelledError:
                raise
            except Exception:
                job_id = message.job_id if message is not None else "<none>"
                logger.exception(f"Consumer {worker_id}: error while handling job {job_id}")

    async def run(self) -> None:
        logger.info(f"Starting {self.concurrency} queue consumers")
        self._tasks = [
            asyncio.create_task(self._consume(worker_id), name=f"consumer-{worker_id}")
            for worker_id in range(self.concurrency)
        ]
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []


async def run_worker(settings: Settings | None = None) -> None:
    """Connect to MongoDB, start the scheduler and consume jobs until cancelled."""
    settings = settings or get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Connecting to MongoDB at {settings.mongo_uri[:20]}...")

    MongoDB.connect(settings.mongo_uri, settings.db_name)
    client = get_estimation_client()
    try:
        if not await client.health_check():
            logger.warning(f"Estimation backend {client.provider_name} is not reachable")
        uow = UnitOfWork(MongoDB.get_database(settings.db_name))
        await uow.ensure_indexes()
        start_scheduler(settings)
        worker = FoodJobWorker(build_processor(uow, client, settings), settings.worker_concurrency)
        await worker.run()
    finally:
        stop_scheduler()
        await client.close()
        MongoDB.close()
        logger.info("MongoDB connection closed")


def main() -> None:
    """Console entry point."""
    settings = get_settings()
    configure_logging(settings)
    try:
        asyncio.run(run_worker(settings))
    except KeyboardInterrupt:
        logger.info("Worker stopped")


if __name__ == "__main__":
    main()
