"""Food catalog resolver: find or create catalog foods and fill their profiles."""

import logging
from dataclasses import dataclass

from nutrilog.db.repositories.foods import FoodRepository

from .estimation.base import EstimationClient
from .nutrient_index import NutrientIndex

logger = logging.getLogger(__name__)


@dataclass
class ResolvedFood:
    """Catalog food an item resolved to."""

    food_id: str
    is_estimated: bool


class FoodCatalogResolver:
    """
    Resolve food names to catalog foods.

    An existing food is matched by case-insensitive substring, shortest name
    first. A new food is inserted before its nutrients are researched, so a
    failed research leaves a profile-less food that the next lookup
    backfills. Profile rows are only ever added, never overwritten.
    """

    def __init__(
        self,
        foods: FoodRepository,
        client: EstimationClient,
        nutrient_index: NutrientIndex,
    ):
        self.foods = foods
        self.client = client
        self.nutrient_index = nutrient_index

    async def resolve(self, name: str) -> ResolvedFood:
        """
        Find the catalog food for ``name``, creating it if needed.

        Args:
            name: Food name as extracted (non-empty)

        Returns:
            ResolvedFood; ``is_estimated`` is True only for a food created here
        """
        matches = await self.foods.search_foods_by_name(name, limit=1)
        if matches:
            food = matches[0]
            await self.backfill_if_missing(food.id, name)
            return ResolvedFood(food_id=food.id, is_estimated=False)

        food_id = await self.foods.add_food(name, source="ai", source_detail="ai", is_estimated=True)
        logger.info(f"Created catalog food {food_id} for {name!r}")
        inserted = await self.attach_researched_nutrients(food_id, name)
        if not inserted:
            logger.info(f"No nutrient mappings found for new food: {name}")
        return ResolvedFood(food_id=food_id, is_estimated=True)

    async def backfill_if_missing(self, food_id: str, name: str) -> int:
        """
        Research and store nutrients for a food whose profile is empty.

        Returns:
            Number of profile rows added
        """
        existing = await self.foods.get_food_nutrients(food_id)
        if existing:
            return 0

        logger.info(f"Backfilling nutrients for food: {name}")
        inserted = await self.attach_researched_nutrients(food_id, name)
        if not inserted:
            logger.info(f"Backfill produced no mappings for: {name}")
        return inserted

    async def attach_researched_nutrients(self, food_id: str, name: str) -> int:
        nutrient_names = await self.nutrient_index.nutrient_names()
        estimates = await self.client.research_nutrients(name, nutrient_names)
        if not estimates:
            return 0
        mapping = await self.nutrient_index.map_estimates(estimates)
        if not mapping.amounts:
            return 0
        return await self.foods.add_food_nutrients(food_id, mapping.amounts)
