"""Pydantic models for food items flowing through the estimation pipeline."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from nutrilog.utils.normalize import to_number


class EstimatedItem(BaseModel):
    """
    A food item as reported by the estimation backend.

    Fields are loose: model output routinely omits the gram
    estimate or reports confidence as a word.
    """

    name: str = ""
    quantity: float | None = None
    unit: str | None = None
    grams_estimate: float | None = None
    confidence: float | str | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "EstimatedItem":
        """Build from one decoded JSON item, tolerating junk values."""
        confidence = raw.get("confidence")
        if not isinstance(confidence, str):
            confidence = to_number(confidence)
        unit = raw.get("unit")
        return cls(
            name=str(raw.get("name") or "").strip(),
            quantity=to_number(raw.get("quantity")),
            unit=str(unit) if unit is not None else None,
            grams_estimate=to_number(raw.get("grams_estimate") or raw.get("grams")),
            confidence=confidence,
        )

    @property
    def has_grams(self) -> bool:
        return (self.grams_estimate or 0) > 0


class Classification(BaseModel):
    """Result of the is-this-a-food-log classification call."""

    is_food: bool | None = None
    reason: str | None = None


class ParseOutcome(BaseModel):
    """Items extracted from one input, or the reason there are none."""

    items: list[EstimatedItem] = Field(default_factory=list)
    non_food_reason: str | None = None
    stages: list[str] = Field(default_factory=list)


class FoodItem(BaseModel):
    """A validated, catalog-resolved food item as stored in a job result."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    quantity: float | None = None
    unit: str | None = None
    grams_estimate: float = Field(0, ge=0)
    confidence: float = Field(0, ge=0.0, le=1.0)
    food_id: str | None = Field(None, alias="foodId")
    is_estimated: bool = Field(False, alias="isEstimated")
    warnings: list[str] = Field(default_factory=list)


class FoodParseResult(BaseModel):
    """Resolved items for one job, plus the non-food reason if any."""

    items: list[FoodItem] = Field(default_factory=list)
    non_food_reason: str | None = None


class MacroSummary(BaseModel):
    """Macro totals for a set of resolved items."""

    calories: float = 0.0
    carbs: float = 0.0
    protein: float = 0.0
    fat: float = 0.0
