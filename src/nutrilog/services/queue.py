"""Job dispatch queue: producer and polling consumer side."""

import asyncio
import logging

from nutrilog.db.repositories.queue import QueueRepository
from nutrilog.models.job import QueueMessage

logger = logging.getLogger(__name__)


class JobQueue:
    """
    Queue of ``QueueMessage``s backed by the ``queue_messages`` collection.

    Delivery is at-least-once from the processor's point of view: a message
    re-sent for a retry is a new message.
    """

    def __init__(self, repository: QueueRepository, poll_interval: float = 1.0):
        self.repository = repository
        self.poll_interval = poll_interval

    async def send(self, message: QueueMessage, delay_seconds: float = 0) -> None:
        """Enqueue ``message``, invisible to consumers for ``delay_seconds``."""
        await self.repository.push(message, delay_seconds=delay_seconds)
        logger.debug(
            f"Queued {message.type} job {message.job_id} "
            f"(attempt {message.attempt}, delay {delay_seconds}s)"
        )

    async def receive(self) -> QueueMessage:
        """Wait for and claim the next visible message."""
        while True:
            message = await self.repository.claim_next()
            if message is not None:
                return message
            await asyncio.sleep(self.poll_interval)
