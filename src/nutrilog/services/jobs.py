"""
Caller-side job operations: submit, list, inspect, consume, retry, delete.

This is the logic behind the external job endpoints; HTTP handling lives
outside this package.
"""

import logging

from nutrilog.core.config import Settings, get_settings
from nutrilog.core.exceptions import JobNotFoundError, ValidationError
from nutrilog.db.repositories.base import new_id
from nutrilog.db.unit_of_work import UnitOfWork
from nutrilog.models.job import Job, JobStatus, JobType, QueueMessage
from nutrilog.utils.dates import today_iso

from .maintenance import JobMaintenance
from .queue import JobQueue

logger = logging.getLogger(__name__)

MEAL_TYPES = ("uncategorized", "breakfast", "lunch", "dinner", "snack")
MAX_IMAGE_BYTES = 20 * 1024 * 1024

# Message fields that identify the job rather than describe its input
_ROUTING_FIELDS = ("jobId", "userId", "type")


def normalize_meal(value: str | None) -> str:
    """Lower-cased meal type, or ``uncategorized`` for anything unknown."""
    meal = (value or "").strip().lower()
    return meal if meal in MEAL_TYPES else "uncategorized"


class JobService:
    """Service for creating and managing a user's parse jobs."""

    def __init__(
        self,
        uow: UnitOfWork,
        queue: JobQueue,
        settings: Settings | None = None,
    ):
        self.uow = uow
        self.queue = queue
        self.settings = settings or get_settings()
        self.maintenance = JobMaintenance(
            uow.jobs,
            uow.job_slots,
            cutoff_minutes=self.settings.stale_job_cutoff_minutes,
            retain=self.settings.jobs_retain,
        )

    async def _enqueue(self, message: QueueMessage) -> str:
        payload = {
            key: value
            for key, value in message.to_wire().items()
            if key not in _ROUTING_FIELDS
        }
        job_id = await self.uow.jobs.create_job(
            message.user_id,
            message.type,
            payload,
            job_id=message.job_id,
        )
        await self.queue.send(message)
        logger.info(f"Submitted {message.type} job {job_id} for user {message.user_id}")
        return job_id

    async def submit_text_job(
        self,
        user_id: str,
        text: str,
        *,
        entry_date: str | None = None,
        entry_meal: str | None = None,
    ) -> str:
        """
        Create a pending text parse job and queue it.

        Raises:
            ValidationError: If the text is empty
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Text is required")
        message = QueueMessage(
            job_id=new_id(),
            user_id=user_id,
            type=JobType.PARSE_TEXT.value,
            text=text,
            entry_date=(entry_date or "").strip() or today_iso(),
            entry_meal=normalize_meal(entry_meal),
        )
        return await self._enqueue(message)

    async def submit_image_job(
        self,
        user_id: str,
        object_key: str,
        *,
        mime_type: str | None = None,
        entry_date: str | None = None,
        entry_meal: str | None = None,
        hint: str | None = None,
        size: int | None = None,
    ) -> str:
        """
        Create a pending image parse job for an uploaded object and queue it.

        Raises:
            ValidationError: If the object key is missing or the image is too large
        """
        object_key = (object_key or "").strip()
        if not object_key:
            raise ValidationError("Image object key missing")
        if size is not None and size > MAX_IMAGE_BYTES:
            raise ValidationError("Image is too large (max 20 MB).", details={"size": size})
        message = QueueMessage(
            job_id=new_id(),
            user_id=user_id,
            type=JobType.PARSE_IMAGE.value,
            object_key=object_key,
            mime_type=(mime_type or "").strip() or None,
            entry_date=(entry_date or "").strip() or today_iso(),
            entry_meal=normalize_meal(entry_meal),
            hint=(hint or "").strip() or None,
            size=size,
            attempt=0,
        )
        return await self._enqueue(message)

    async def list_jobs(self, user_id: str, limit: int | None = None) -> list[Job]:
        """The user's jobs, newest first, after timing out stale ones."""
        await self.maintenance.reclaim_slots(user_id)
        return await self.uow.jobs.get_jobs_by_user(user_id, limit=limit)

    async def get_job(self, user_id: str, job_id: str) -> Job:
        """
        Raises:
            JobNotFoundError: If the job does not exist or belongs to another user
        """
        job = await self.uow.jobs.get_job_for_user(job_id, user_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def consume_job(self, user_id: str, job_id: str) -> bool:
        """Acknowledge a job; returns False if it was already consumed."""
        await self.get_job(user_id, job_id)
        return await self.uow.jobs.transition(job_id, JobStatus.CONSUMED)

    async def delete_job(self, user_id: str, job_id: str) -> bool:
        await self.get_job(user_id, job_id)
        return await self.uow.jobs.delete_job(job_id, user_id)

    async def retry_job(self, user_id: str, job_id: str) -> str:
        """
        Re-run a job's input as a fresh job and consume the old one.

        Returns:
            The new job id

        Raises:
            JobNotFoundError: If the job is unknown
            ValidationError: If the job type cannot be retried
        """
        job = await self.get_job(user_id, job_id)
        if job.type not in (JobType.PARSE_TEXT.value, JobType.PARSE_IMAGE.value):
            raise ValidationError("Unsupported job type", details={"type": job.type})

        message = QueueMessage.model_validate(
            {
                **job.payload,
                "jobId": new_id(),
                "userId": user_id,
                "type": job.type,
                "attempt": 0,
            }
        )
        new_job_id = await self._enqueue(message)
        await self.uow.jobs.transition(job_id, JobStatus.CONSUMED)
        logger.info(f"Retried job {job_id} as {new_job_id}")
        return new_job_id
