"""Pydantic models for jobs, food items and the catalog."""

from .catalog import (
    DayNutrient,
    DaySummary,
    Food,
    FoodEntry,
    FoodNutrientAmount,
    FoodNutrientRow,
    Nutrient,
    NutrientEstimate,
)
from .food import (
    Classification,
    EstimatedItem,
    FoodItem,
    FoodParseResult,
    MacroSummary,
    ParseOutcome,
)
from .job import (
    Job,
    JobResult,
    JobStatus,
    JobType,
    OPEN_STATUSES,
    QueueMessage,
    TERMINAL_STATUSES,
    allowed_sources,
)

__all__ = [
    # Catalog
    "DayNutrient",
    "DaySummary",
    "Food",
    "FoodEntry",
    "FoodNutrientAmount",
    "FoodNutrientRow",
    "Nutrient",
    "NutrientEstimate",
    # Food items
    "Classification",
    "EstimatedItem",
    "FoodItem",
    "FoodParseResult",
    "MacroSummary",
    "ParseOutcome",
    # Jobs
    "Job",
    "JobResult",
    "JobStatus",
    "JobType",
    "OPEN_STATUSES",
    "QueueMessage",
    "TERMINAL_STATUSES",
    "allowed_sources",
]
