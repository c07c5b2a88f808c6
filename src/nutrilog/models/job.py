"""Pydantic models for parse jobs, their queue messages and results.

A job moves through a small state machine:

    pending -> processing -> done | failed
    done | failed -> consumed            (caller acknowledges the result)
    pending | processing -> consumed     (staleness sweep)

plus the two re-queue edges the processor uses: a job that hit the per-user
concurrency limit is rewritten as pending, and an image job whose vision
call came back empty goes from processing back to pending.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .food import FoodItem, MacroSummary


class JobStatus(str, Enum):
    """Lifecycle status of a parse job."""

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"
    CONSUMED = "consumed"


class JobType(str, Enum):
    """Kind of input a job parses."""

    PARSE_TEXT = "parse_text"
    PARSE_IMAGE = "parse_image"


# Legal predecessor states for every target state
JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PENDING, JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.PENDING, JobStatus.PROCESSING}),
    JobStatus.DONE: frozenset({JobStatus.PROCESSING}),
    JobStatus.FAILED: frozenset({JobStatus.PROCESSING}),
    JobStatus.CONSUMED: frozenset({
        JobStatus.PENDING,
        JobStatus.PROCESSING,
        JobStatus.DONE,
        JobStatus.FAILED,
    }),
}

OPEN_STATUSES = frozenset({JobStatus.PENDING, JobStatus.PROCESSING})
TERMINAL_STATUSES = frozenset({JobStatus.DONE, JobStatus.FAILED, JobStatus.CONSUMED})


def allowed_sources(target: JobStatus) -> frozenset[JobStatus]:
    """States a job may be in when moving to ``target``."""
    return JOB_TRANSITIONS[target]


class Job(BaseModel):
    """Stored parse job."""

    id: str
    user_id: str
    type: str
    status: JobStatus = JobStatus.PENDING
    payload: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None
    error: str | None = None
    attempt: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class QueueMessage(BaseModel):
    """
    Dispatch message consumed by the job processor.

    Serialized with camelCase keys (``jobId``, ``userId``, ``entryDate`` ...).
    ``type`` stays a plain string so that an unknown job type reaches the
    processor and fails the job instead of failing message decoding.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    user_id: str
    type: str
    text: str | None = None
    entry_date: str | None = None
    entry_meal: str | None = None
    object_key: str | None = None
    mime_type: str | None = None
    hint: str | None = None
    size: int | None = None
    attempt: int = 0

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the queue, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class JobResult(BaseModel):
    """Result stored on a job once it is done."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[FoodItem]
    entry_date: str | None = Field(None, alias="entryDate")
    summary: MacroSummary

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
