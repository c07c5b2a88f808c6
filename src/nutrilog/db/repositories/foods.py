"""Repository for catalog foods and their per-100g nutrient profiles."""

import re
from typing import Iterable

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import UpdateOne

from nutrilog.models.catalog import Food, FoodNutrientAmount, FoodNutrientRow
from nutrilog.utils.dates import utc_now
from nutrilog.utils.normalize import normalize_name

from .base import BaseRepository, new_id


class FoodRepository(BaseRepository[Food]):
    """
    Repository for the food catalog.

    Foods live in ``foods``; profile rows live in ``food_nutrients`` with one
    row per (food, nutrient). Profile writes are append-only: a row that
    already exists is never overwritten.
    """

    model_class = Food

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        food_nutrients: AsyncIOMotorCollection,
        nutrients_collection_name: str = "nutrients",
    ):
        super().__init__(collection)
        self.food_nutrients = food_nutrients
        self._nutrients_collection_name = nutrients_collection_name

    async def ensure_indexes(self) -> None:
        """Ensure required indexes exist on both collections."""
        await self.collection.create_index("normalized_name", name="normalized_name_idx")
        await self.food_nutrients.create_index(
            [("food_id", 1), ("nutrient_id", 1)],
            unique=True,
            name="food_nutrient_unique_idx",
        )

    async def search_foods_by_name(self, query: str, limit: int = 5) -> list[Food]:
        """
        Case-insensitive substring search, shortest name first.

        Args:
            query: Food name fragment
            limit: Maximum foods to return
        """
        needle = normalize_name(query).lower()
        if not needle:
            return []
        pipeline = [
            {"$match": {"normalized_name": {"$regex": re.escape(needle)}}},
            {"$addFields": {"name_length": {"$strLenCP": "$name"}}},
            {"$sort": {"name_length": 1, "_id": 1}},
            {"$limit": limit},
            {"$project": {"name_length": 0}},
        ]
        return self._to_models(await self.aggregate(pipeline))

    async def add_food(
        self,
        name: str,
        *,
        source: str = "ai",
        source_detail: str | None = None,
        is_estimated: bool = True,
    ) -> str:
        """
        Insert a catalog food.

        Returns:
            The new food id
        """
        document = {
            "_id": new_id(),
            "name": name,
            "normalized_name": normalize_name(name).lower(),
            "source": source,
            "source_detail": source_detail or source,
            "is_estimated": bool(is_estimated),
        }
        return await self.insert_one(document)

    async def add_food_nutrients(
        self,
        food_id: str,
        amounts: Iterable[FoodNutrientAmount],
    ) -> int:
        """
        Fill missing profile rows for a food.

        Returns:
            Number of rows actually inserted
        """
        now = utc_now()
        operations = [
            UpdateOne(
                {"food_id": food_id, "nutrient_id": amount.nutrient_id},
                {
                    "$setOnInsert": {
                        "amount_per_100g": amount.amount_per_100g,
                        "created_at": now,
                    }
                },
                upsert=True,
            )
            for amount in amounts
        ]
        if not operations:
            return 0
        result = await self.food_nutrients.bulk_write(operations, ordered=False)
        return result.upserted_count

    async def get_food_nutrients(self, food_id: str) -> list[FoodNutrientRow]:
        """Profile rows of one food, joined with nutrient name and unit."""
        pipeline = [
            {"$match": {"food_id": food_id}},
            {
                "$lookup": {
                    "from": self._nutrients_collection_name,
                    "localField": "nutrient_id",
                    "foreignField": "_id",
                    "as": "nutrient",
                }
            },
            {"$unwind": {"path": "$nutrient", "preserveNullAndEmptyArrays": True}},
            {
                "$project": {
                    "_id": 0,
                    "food_id": 1,
                    "nutrient_id": 1,
                    "amount_per_100g": 1,
                    "name": "$nutrient.name",
                    "unit": "$nutrient.unit",
                }
            },
        ]
        cursor = self.food_nutrients.aggregate(pipeline)
        rows = await cursor.to_list(length=None)
        return [FoodNutrientRow.model_validate(row) for row in rows]

    async def get_nutrient_amounts(
        self,
        food_ids: list[str],
        nutrient_ids: Iterable[str],
    ) -> list[FoodNutrientRow]:
        """Selected profile rows for many foods in one read."""
        if not food_ids:
            return []
        cursor = self.food_nutrients.find(
            {"food_id": {"$in": list(food_ids)}, "nutrient_id": {"$in": list(nutrient_ids)}},
            {"_id": 0, "food_id": 1, "nutrient_id": 1, "amount_per_100g": 1},
        )
        rows = await cursor.to_list(length=None)
        return [FoodNutrientRow.model_validate(row) for row in rows]
