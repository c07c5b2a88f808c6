"""Pydantic models for the food catalog and the daily food log."""

from datetime import datetime

from pydantic import BaseModel, Field


class Nutrient(BaseModel):
    """Catalog nutrient (reference data)."""

    id: str
    name: str
    unit: str = ""


class Food(BaseModel):
    """Catalog food."""

    id: str
    name: str
    normalized_name: str = ""
    source: str = "ai"
    source_detail: str | None = None
    is_estimated: bool = False
    created_at: datetime | None = None


class FoodNutrientAmount(BaseModel):
    """One row of a food's nutrient profile, per 100 g."""

    nutrient_id: str
    amount_per_100g: float = Field(0, ge=0)


class FoodNutrientRow(FoodNutrientAmount):
    """Profile row joined with its catalog nutrient."""

    food_id: str
    name: str | None = None
    unit: str | None = None


class NutrientEstimate(BaseModel):
    """Nutrient amount reported by the research backend."""

    name: str
    unit: str | None = None
    amount_per_100g: float = 0.0
    confidence: float | None = None


class FoodEntry(BaseModel):
    """A logged food for a user on a given day."""

    id: str
    user_id: str
    food_id: str
    food_name: str | None = None
    entry_date: str
    entry_time: str | None = None
    grams: float = 0.0
    meal_type: str = "uncategorized"
    source: str = "manual"
    created_at: datetime | None = None


class DayNutrient(BaseModel):
    """Total of one nutrient over a day's entries."""

    nutrient_id: str
    name: str
    unit: str = ""
    total_amount: float = 0.0


class DaySummary(BaseModel):
    """Entries and nutrient totals for one day."""

    date: str
    entries: list[FoodEntry] = Field(default_factory=list)
    nutrients: list[DayNutrient] = Field(default_factory=list)
