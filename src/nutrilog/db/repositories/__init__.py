"""Repository classes for database access."""

from .food_entries import FoodEntryRepository
from .foods import FoodRepository
from .job_slots import JobSlotRepository
from .jobs import JobRepository
from .nutrients import NutrientRepository
from .queue import QueueRepository

__all__ = [
    "FoodEntryRepository",
    "FoodRepository",
    "JobRepository",
    "JobSlotRepository",
    "NutrientRepository",
    "QueueRepository",
]
