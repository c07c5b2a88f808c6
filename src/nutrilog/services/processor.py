"""
Job processor: the queue consumer for parse jobs.

For each delivered message the processor claims a per-user processing slot,
runs the text or image parse, decides the job's outcome and writes it, then
sweeps the user's stale and surplus jobs.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable
from urllib.parse import quote

from nutrilog.core.config import Settings, get_settings
from nutrilog.db.unit_of_work import UnitOfWork
from nutrilog.models.food import FoodItem, FoodParseResult
from nutrilog.models.job import Job, JobResult, JobStatus, JobType, QueueMessage, TERMINAL_STATUSES
from nutrilog.utils.dates import utc_now

from .food_parse import FoodParseService
from .history import UserHistoryLog
from .macros import MacroAggregator
from .maintenance import JobMaintenance
from .queue import JobQueue

logger = logging.getLogger(__name__)

ImageUrlResolver = Callable[[str], Awaitable[str]]

BACKPRESSURE_ERROR = "Concurrent limit reached, retrying ({limit} max)."
IMAGE_RETRY_ERROR = "Image parse empty, retrying ({attempt}/{max_retries})"
IMAGE_EMPTY_ERROR = "Image parse returned no items after retries."
NO_FOOD_IN_TEXT = "No food detected in text."
NO_FOOD_IN_IMAGE = "No food detected in image."
UNKNOWN_TYPE_ERROR = "Unknown job type"


def is_likely_food(items: list[FoodItem], min_average_confidence: float = 0.35) -> bool:
    """True when there are items and their average confidence reaches the threshold."""
    if not items:
        return False
    average = sum(item.confidence or 0.0 for item in items) / len(items)
    return average >= min_average_confidence


def validate_items(items: list[FoodItem]) -> str | None:
    """
    Shape checks on a parse result.

    Returns:
        The first violation as an error message, or None if all items pass
    """
    if not items:
        return "AI output missing items."
    for item in items:
        if not (item.name or "").strip():
            return "AI output missing item name."
        if not item.grams_estimate or item.grams_estimate <= 0:
            return "AI output missing grams_estimate."
        if item.confidence is None:
            return "AI output missing confidence."
    return None


@dataclass
class JobDecision:
    """
    What to do with a parsed job.

    ``PENDING`` means re-queue (image retry), with ``attempt`` the next
    attempt number.
    """

    status: JobStatus
    error: str | None = None
    attempt: int | None = None


def evaluate_outcome(
    job_type: str,
    result: FoodParseResult,
    attempt: int = 0,
    *,
    max_image_retries: int = 2,
    min_average_confidence: float = 0.35,
) -> JobDecision:
    """
    Decide a job's outcome from its parse result.

    Checks run in order: empty image result (retry until the cap), non-food
    reason or low confidence, item shape validation. Anything that passes
    all of them is done.
    """
    is_image = job_type == JobType.PARSE_IMAGE.value
    items = result.items

    if is_image and not items:
        if attempt < max_image_retries:
            return JobDecision(
                JobStatus.PENDING,
                error=IMAGE_RETRY_ERROR.format(attempt=attempt + 1, max_retries=max_image_retries),
                attempt=attempt + 1,
            )
        return JobDecision(JobStatus.FAILED, error=IMAGE_EMPTY_ERROR)

    if result.non_food_reason or not is_likely_food(items, min_average_confidence):
        default_reason = NO_FOOD_IN_IMAGE if is_image else NO_FOOD_IN_TEXT
        return JobDecision(JobStatus.FAILED, error=result.non_food_reason or default_reason)

    violation = validate_items(items)
    if violation:
        return JobDecision(JobStatus.FAILED, error=violation)

    return JobDecision(JobStatus.DONE)


def url_prefix_resolver(base_url: str) -> ImageUrlResolver:
    """Resolve an uploaded object key to ``<base_url>/<key>``."""

    async def resolve(object_key: str) -> str:
        if not base_url or not object_key:
            return ""
        return f"{base_url.rstrip('/')}/{quote(object_key)}"

    return resolve


class JobProcessor:
    """
    Processes queue messages for parse jobs end to end.

    A job is skipped when it no longer exists or is already terminal. The
    per-user limit is enforced by claiming a slot atomically; slots left by
    closed jobs are reclaimed once, and a job that still cannot get one goes
    back to pending and is re-queued with a delay.
    Any exception while the job is processing fails the job with the
    exception message.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        parse_service: FoodParseService,
        macros: MacroAggregator,
        queue: JobQueue,
        *,
        maintenance: JobMaintenance | None = None,
        history: UserHistoryLog | None = None,
        settings: Settings | None = None,
        image_url_resolver: ImageUrlResolver | None = None,
    ):
        self.uow = uow
        self.parse_service = parse_service
        self.macros = macros
        self.queue = queue
        self.settings = settings or get_settings()
        self.maintenance = maintenance or JobMaintenance(
            uow.jobs,
            uow.job_slots,
            cutoff_minutes=self.settings.stale_job_cutoff_minutes,
            retain=self.settings.jobs_retain,
        )
        self.history = history or UserHistoryLog(self.settings.history_size)
        self.image_url_resolver = image_url_resolver or url_prefix_resolver(
            self.settings.image_base_url
        )

    async def process(self, message: QueueMessage) -> JobStatus | None:
        """
        Handle one delivered message.

        Returns:
            The job's status after processing, or None if the job is gone
        """
        job = await self.uow.jobs.get_job(message.job_id)
        if job is None:
            logger.warning(f"Job {message.job_id} not found; dropping message")
            return None
        if job.status in TERMINAL_STATUSES:
            logger.info(f"Job {job.id} already {job.status.value}; skipping delivery")
            return job.status

        user_id = job.user_id
        limit = self.settings.concurrent_user_limit
        if not await self._acquire_slot(user_id, job.id, limit):
            return await self._defer(job, message, limit)

        try:
            status = await self._run(job, message)
        except Exception as e:
            logger.exception(f"Job {job.id} failed with an unexpected error")
            await self.uow.jobs.transition(
                job.id,
                JobStatus.FAILED,
                error=str(e) or e.__class__.__name__,
                completed_at=utc_now(),
            )
            status = JobStatus.FAILED
        finally:
            await self.uow.job_slots.release(user_id, job.id)

        await self.maintenance.sweep_user_jobs(user_id)
        return status

    async def _acquire_slot(self, user_id: str, job_id: str, limit: int) -> bool:
        if await self.uow.job_slots.acquire(user_id, job_id, limit):
            return True
        # Slots held by jobs that timed out or were closed elsewhere
        await self.maintenance.reclaim_slots(user_id)
        return await self.uow.job_slots.acquire(user_id, job_id, limit)

    async def _defer(self, job: Job, message: QueueMessage, limit: int) -> JobStatus:
        processing = await self.uow.jobs.count_processing_jobs(job.user_id)
        logger.info(
            f"User {job.user_id} at concurrency limit ({processing}/{limit} processing); "
            f"deferring job {job.id}"
        )
        await self.uow.jobs.transition(
            job.id,
            JobStatus.PENDING,
            error=BACKPRESSURE_ERROR.format(limit=limit),
        )
        await self.queue.send(
            message,
            delay_seconds=self.settings.concurrency_retry_delay_seconds,
        )
        return JobStatus.PENDING

    async def _run(self, job: Job, message: QueueMessage) -> JobStatus | None:
        started = await self.uow.jobs.transition(
            job.id,
            JobStatus.PROCESSING,
            started_at=utc_now(),
            clear_error=True,
        )
        if not started:
            return None

        match message.type:
            case JobType.PARSE_TEXT.value:
                result = await self.parse_service.parse_text(message.text or "")
                kind = "text"
            case JobType.PARSE_IMAGE.value:
                image_url = await self.image_url_resolver(message.object_key or "")
                result = await self.parse_service.parse_image(image_url, message.hint)
                kind = "image"
            case _:
                await self.uow.jobs.transition(
                    job.id,
                    JobStatus.FAILED,
                    error=UNKNOWN_TYPE_ERROR,
                    completed_at=utc_now(),
                )
                return JobStatus.FAILED

        self.history.record(job.user_id, kind, result.items)

        decision = evaluate_outcome(
            message.type,
            result,
            message.attempt,
            max_image_retries=self.settings.image_max_retries,
            min_average_confidence=self.settings.min_average_confidence,
        )
        return await self._apply(job, message, result, decision)

    async def _apply(
        self,
        job: Job,
        message: QueueMessage,
        result: FoodParseResult,
        decision: JobDecision,
    ) -> JobStatus:
        match decision.status:
            case JobStatus.PENDING:
                logger.info(f"Job {job.id}: {decision.error}")
                await self.uow.jobs.transition(
                    job.id,
                    JobStatus.PENDING,
                    error=decision.error,
                    attempt=decision.attempt,
                )
                await self.queue.send(message.model_copy(update={"attempt": decision.attempt}))
            case JobStatus.FAILED:
                logger.info(f"Job {job.id} failed: {decision.error}")
                await self.uow.jobs.transition(
                    job.id,
                    JobStatus.FAILED,
                    error=decision.error,
                    completed_at=utc_now(),
                )
            case JobStatus.DONE:
                summary = await self.macros.summarize(result.items)
                job_result = JobResult(
                    items=result.items,
                    entry_date=message.entry_date,
                    summary=summary,
                )
                await self.uow.jobs.transition(
                    job.id,
                    JobStatus.DONE,
                    result=job_result.to_document(),
                    completed_at=utc_now(),
                    clear_error=True,
                )
                logger.info(f"Job {job.id} done with {len(result.items)} items")
        return decision.status
