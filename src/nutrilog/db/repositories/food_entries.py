"""Repository for the daily food log."""

from motor.motor_asyncio import AsyncIOMotorCollection

from nutrilog.models.catalog import DayNutrient, FoodEntry

from .base import BaseRepository, new_id


class FoodEntryRepository(BaseRepository[FoodEntry]):
    """
    Logged food entries, one per food and day.

    Day totals are computed in the database by joining entries with the
    food profiles: ``sum(amount_per_100g * grams / 100)`` per nutrient.
    """

    model_class = FoodEntry

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        foods_collection_name: str = "foods",
        food_nutrients_collection_name: str = "food_nutrients",
        nutrients_collection_name: str = "nutrients",
    ):
        super().__init__(collection)
        self._foods = foods_collection_name
        self._food_nutrients = food_nutrients_collection_name
        self._nutrients = nutrients_collection_name

    async def ensure_indexes(self) -> None:
        await self.collection.create_index(
            [("user_id", 1), ("entry_date", 1)],
            name="user_date_idx",
        )

    async def log_entry(
        self,
        user_id: str,
        food_id: str,
        entry_date: str,
        grams: float,
        *,
        entry_time: str | None = None,
        meal_type: str = "uncategorized",
        source: str = "manual",
    ) -> str:
        """
        Log one food entry.

        Returns:
            The entry id
        """
        document = {
            "_id": new_id(),
            "user_id": user_id,
            "food_id": food_id,
            "entry_date": entry_date,
            "entry_time": entry_time,
            "grams": grams,
            "meal_type": meal_type,
            "source": source,
        }
        return await self.insert_one(document)

    async def get_entries_by_date(self, user_id: str, entry_date: str) -> list[FoodEntry]:
        """Entries for one day in time order, with the food name attached."""
        pipeline = [
            {"$match": {"user_id": user_id, "entry_date": entry_date}},
            {
                "$lookup": {
                    "from": self._foods,
                    "localField": "food_id",
                    "foreignField": "_id",
                    "as": "food",
                }
            },
            {"$unwind": "$food"},
            {"$addFields": {"food_name": "$food.name"}},
            {"$project": {"food": 0}},
            {"$sort": {"entry_time": 1, "created_at": 1}},
        ]
        return self._to_models(await self.aggregate(pipeline))

    async def get_day_nutrients(self, user_id: str, entry_date: str) -> list[DayNutrient]:
        """Per-nutrient totals over one day's entries, ordered by name."""
        pipeline = [
            {"$match": {"user_id": user_id, "entry_date": entry_date}},
            {
                "$lookup": {
                    "from": self._food_nutrients,
                    "localField": "food_id",
                    "foreignField": "food_id",
                    "as": "profile",
                }
            },
            {"$unwind": "$profile"},
            {
                "$group": {
                    "_id": "$profile.nutrient_id",
                    "total_amount": {
                        "$sum": {
                            "$divide": [
                                {"$multiply": ["$profile.amount_per_100g", "$grams"]},
                                100,
                            ]
                        }
                    },
                }
            },
            {
                "$lookup": {
                    "from": self._nutrients,
                    "localField": "_id",
                    "foreignField": "_id",
                    "as": "nutrient",
                }
            },
            {"$unwind": "$nutrient"},
            {
                "$project": {
                    "_id": 0,
                    "nutrient_id": "$_id",
                    "name": "$nutrient.name",
                    "unit": "$nutrient.unit",
                    "total_amount": 1,
                }
            },
            {"$sort": {"name": 1}},
        ]
        rows = await self.aggregate(pipeline)
        return [DayNutrient.model_validate(row) for row in rows]
