"""Macro summary aggregation over resolved food items."""

import logging
from collections import defaultdict

from nutrilog.db.repositories.foods import FoodRepository
from nutrilog.models.food import FoodItem, MacroSummary

logger = logging.getLogger(__name__)

MACRO_NUTRIENT_IDS = ("calories", "carbs", "protein", "fat")


class MacroAggregator:
    """Sum calories, carbs, protein and fat for a set of items."""

    def __init__(self, foods: FoodRepository):
        self.foods = foods

    async def summarize(self, items: list[FoodItem]) -> MacroSummary:
        """
        Compute macro totals as ``amount_per_100g * grams / 100`` per item.

        Items without a food id or grams contribute nothing, as do foods
        without macro rows.
        """
        food_ids = list(dict.fromkeys(item.food_id for item in items if item.food_id))
        if not food_ids:
            return MacroSummary()

        rows = await self.foods.get_nutrient_amounts(food_ids, MACRO_NUTRIENT_IDS)
        per_food: dict[str, dict[str, float]] = defaultdict(dict)
        for row in rows:
            per_food[row.food_id][row.nutrient_id] = row.amount_per_100g or 0.0

        totals = dict.fromkeys(MACRO_NUTRIENT_IDS, 0.0)
        for item in items:
            grams = item.grams_estimate or 0.0
            if not grams or not item.food_id:
                continue
            amounts = per_food.get(item.food_id, {})
            for nutrient_id in MACRO_NUTRIENT_IDS:
                totals[nutrient_id] += amounts.get(nutrient_id, 0.0) * grams / 100

        logger.debug(f"Macro summary over {len(items)} items: {totals}")
        return MacroSummary(**totals)
