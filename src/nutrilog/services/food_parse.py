"""
Food parsing: extraction plus catalog resolution.

Turns a text log or an uploaded image into catalog-resolved ``FoodItem``s
with normalized grams and confidence and any safety warnings.
"""

import logging
import re

from nutrilog.models.food import EstimatedItem, FoodItem, FoodParseResult, ParseOutcome
from nutrilog.utils.normalize import clamp_number, normalize_confidence, normalize_name

from .catalog import FoodCatalogResolver
from .extraction import ImageExtractionOrchestrator, TextExtractionOrchestrator

logger = logging.getLogger(__name__)

TEXT_DEFAULT_CONFIDENCE = 0.5
IMAGE_DEFAULT_CONFIDENCE = 0.4

SAFETY_WARNINGS: tuple[tuple[re.Pattern, str], ...] = (
    (
        re.compile(r"laetrile|amygdalin", re.IGNORECASE),
        "Laetrile/Amygdalin can release cyanide; avoid unless medically supervised.",
    ),
    (
        re.compile(r"\bliver\b", re.IGNORECASE),
        "Frequent large servings of liver can cause vitamin A toxicity (hypervitaminosis A).",
    ),
    (
        re.compile(
            r"\b(sodium|salami|ham|bacon|sausage|prosciutto|soy sauce|instant noodles|ramen)\b",
            re.IGNORECASE,
        ),
        "High sodium food; watch total daily intake.",
    ),
    (
        re.compile(
            r"\b(shark|swordfish|king mackerel|bigeye tuna|marlin|orange roughy)\b",
            re.IGNORECASE,
        ),
        "High mercury fish; limit frequency, especially during pregnancy.",
    ),
    (
        re.compile(
            r"\b(raw egg|raw eggs|sushi|sashimi|raw milk|unpasteurized|ceviche|steak tartare)\b",
            re.IGNORECASE,
        ),
        "Raw or undercooked foods can increase foodborne illness risk.",
    ),
    (
        re.compile(
            r"\b(energy drink|energy drinks|preworkout|pre-workout|espresso shots|caffeine)\b",
            re.IGNORECASE,
        ),
        "High caffeine item; monitor total caffeine intake.",
    ),
    (
        re.compile(
            r"\b(candy|soda|soft drink|dessert|pastry|sweetened|ice cream|chocolate bar)\b",
            re.IGNORECASE,
        ),
        "High added sugar item; watch total daily added sugar.",
    ),
)


def safety_warnings(name: str) -> list[str]:
    """Warnings whose pattern matches the food name, in table order."""
    return [warning for pattern, warning in SAFETY_WARNINGS if pattern.search(name)]


class FoodParseService:
    """Run extraction for a job input and resolve every item against the catalog."""

    def __init__(
        self,
        text_orchestrator: TextExtractionOrchestrator,
        image_orchestrator: ImageExtractionOrchestrator,
        resolver: FoodCatalogResolver,
    ):
        self.text_orchestrator = text_orchestrator
        self.image_orchestrator = image_orchestrator
        self.resolver = resolver

    async def parse_text(self, text: str) -> FoodParseResult:
        outcome = await self.text_orchestrator.parse(text)
        return await self._resolve(outcome, TEXT_DEFAULT_CONFIDENCE)

    async def parse_image(self, image_url: str, hint: str | None = None) -> FoodParseResult:
        outcome = await self.image_orchestrator.parse(image_url, hint)
        return await self._resolve(outcome, IMAGE_DEFAULT_CONFIDENCE)

    async def _resolve(self, outcome: ParseOutcome, default_confidence: float) -> FoodParseResult:
        items = []
        for estimated in outcome.items:
            item = await self.resolve_item(estimated, default_confidence)
            if item is not None:
                items.append(item)
        return FoodParseResult(items=items, non_food_reason=outcome.non_food_reason)

    async def resolve_item(
        self,
        estimated: EstimatedItem,
        default_confidence: float = TEXT_DEFAULT_CONFIDENCE,
    ) -> FoodItem | None:
        """
        Resolve one extracted item.

        Returns:
            FoodItem, or None for an item with an empty name
        """
        name = normalize_name(estimated.name)
        if not name:
            return None

        resolved = await self.resolver.resolve(name)
        return FoodItem(
            name=name,
            quantity=estimated.quantity,
            unit=estimated.unit,
            grams_estimate=clamp_number(estimated.grams_estimate),
            confidence=normalize_confidence(estimated.confidence or default_confidence),
            food_id=resolved.food_id,
            is_estimated=resolved.is_estimated,
            warnings=safety_warnings(name),
        )
