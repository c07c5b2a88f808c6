"""Business logic services."""

from .catalog import FoodCatalogResolver, ResolvedFood
from .extraction import (
    DEFAULT_STRATEGIES,
    CascadeState,
    ExtractionStrategy,
    ImageExtractionOrchestrator,
    TextExtractionOrchestrator,
)
from .food_log import FoodLogService
from .food_parse import FoodParseService, safety_warnings
from .history import UserHistoryLog
from .jobs import JobService
from .macros import MacroAggregator
from .maintenance import JobMaintenance
from .nutrient_index import NutrientIndex
from .processor import JobProcessor, evaluate_outcome, is_likely_food, validate_items
from .queue import JobQueue

__all__ = [
    "CascadeState",
    "DEFAULT_STRATEGIES",
    "ExtractionStrategy",
    "FoodCatalogResolver",
    "FoodLogService",
    "FoodParseService",
    "ImageExtractionOrchestrator",
    "JobMaintenance",
    "JobProcessor",
    "JobQueue",
    "JobService",
    "MacroAggregator",
    "NutrientIndex",
    "ResolvedFood",
    "TextExtractionOrchestrator",
    "UserHistoryLog",
    "evaluate_outcome",
    "is_likely_food",
    "safety_warnings",
    "validate_items",
]
