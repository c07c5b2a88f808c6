"""Repository for the nutrient catalog (reference data)."""

from motor.motor_asyncio import AsyncIOMotorCollection

from nutrilog.models.catalog import Nutrient

from .base import BaseRepository


class NutrientRepository(BaseRepository[Nutrient]):
    """Read access to the catalog nutrients."""

    model_class = Nutrient

    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection)

    async def get_nutrients(self) -> list[Nutrient]:
        """All catalog nutrients ordered by name."""
        return await self.find_many(sort=[("name", 1)], limit=0)
