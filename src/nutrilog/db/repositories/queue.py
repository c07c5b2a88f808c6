"""Repository backing the job dispatch queue."""

from datetime import timedelta

from motor.motor_asyncio import AsyncIOMotorCollection

from nutrilog.models.job import QueueMessage
from nutrilog.utils.dates import utc_now

from .base import BaseRepository, new_id


class QueueRepository(BaseRepository):
    """
    Queue messages stored as documents with a ``visible_at`` time.

    Delayed delivery is a ``visible_at`` in the future. Claiming deletes the
    message, so each message is handed to at most one consumer.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection)

    async def ensure_indexes(self) -> None:
        await self.collection.create_index("visible_at", name="visible_at_idx")

    async def push(self, message: QueueMessage, delay_seconds: float = 0) -> str:
        """
        Enqueue a message.

        Args:
            message: Message to deliver
            delay_seconds: Hide the message from consumers for this long

        Returns:
            Queue document id
        """
        now = utc_now()
        document = {
            "_id": new_id(),
            "body": message.to_wire(),
            "visible_at": now + timedelta(seconds=max(delay_seconds, 0)),
            "created_at": now,
        }
        return await self.insert_one(document)

    async def claim_next(self) -> QueueMessage | None:
        """Remove and return the oldest visible message, if any."""
        doc = await self.collection.find_one_and_delete(
            {"visible_at": {"$lte": utc_now()}},
            sort=[("visible_at", 1)],
        )
        if doc is None:
            return None
        return QueueMessage.model_validate(doc["body"])
