"""Process-wide Motor client shared by the worker and the scheduled sweep."""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase


class MongoDB:
    """Holds the worker's single client; datetimes are read back UTC-aware."""

    client: AsyncIOMotorClient | None = None
    db_name: str = "nutrilog"

    @classmethod
    def connect(cls, uri: str, db_name: str = "nutrilog") -> None:
        cls.client = AsyncIOMotorClient(uri, tz_aware=True)
        cls.db_name = db_name

    @classmethod
    def get_database(cls, name: str | None = None) -> AsyncIOMotorDatabase:
        """
        Raises:
            RuntimeError: If the worker has not connected yet
        """
        if cls.client is None:
            raise RuntimeError("MongoDB not connected. Call MongoDB.connect() first.")
        return cls.client[name or cls.db_name]

    @classmethod
    def close(cls) -> None:
        if cls.client is not None:
            cls.client.close()
            cls.client = None
