"""
Base class for estimation backends.

A backend only has to implement ``respond``: send a role-tagged message
list and return the decoded JSON object, or None when anything went wrong.
The food-specific operations are built on top of it here, so they behave
the same for every provider.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from nutrilog.models.catalog import NutrientEstimate
from nutrilog.models.food import Classification, EstimatedItem
from nutrilog.utils.normalize import to_number

from . import prompts
from .parsing import ParsedJson

logger = logging.getLogger(__name__)


class EstimationClient(ABC):
    """
    Abstract base class for AI estimation backends.

    None of the operations raise for backend problems: an unreachable,
    failing or unparseable backend yields "no result" (None or an empty
    list).
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider."""
        ...

    @abstractmethod
    async def respond(
        self,
        messages: list[dict[str, Any]],
        *,
        web_search: bool = False,
    ) -> ParsedJson | None:
        """
        Send one request to the backend.

        Args:
            messages: Role-tagged message list
            web_search: Allow the backend to search the web

        Returns:
            Decoded JSON object, or None if the call or decoding failed
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is configured and reachable."""
        return True

    async def close(self) -> None:
        """Release any network resources."""

    async def classify(self, text: str) -> Classification | None:
        """
        Ask whether ``text`` is a food log.

        Returns:
            Classification, or None when the backend gave no usable answer
        """
        parsed = await self.respond(prompts.classifier_messages(text))
        if parsed is None:
            return None
        is_food = parsed.get("is_food")
        reason = str(parsed.get("reason") or "").strip()
        return Classification(
            is_food=is_food if isinstance(is_food, bool) else None,
            reason=reason or None,
        )

    async def extract_items(self, text: str, *, strict_grams: bool = False) -> list[EstimatedItem]:
        """
        Extract food items from free text.

        Args:
            text: Normalized food log
            strict_grams: Demand a positive gram estimate for every item
        """
        parsed = await self.respond(prompts.extraction_messages(text, strict_grams=strict_grams))
        return self._items_from(parsed)

    async def extract_image_items(self, image_url: str, hint: str | None = None) -> list[EstimatedItem]:
        """Extract food items from an image the backend can fetch."""
        if not image_url:
            logger.warning(f"{self.provider_name}: vision call skipped, missing image URL")
            return []
        parsed = await self.respond(prompts.image_messages(image_url, hint))
        return self._items_from(parsed)

    async def research_nutrients(self, name: str, nutrient_names: list[str]) -> list[NutrientEstimate]:
        """
        Research per-100g nutrient amounts for a food, with web search.

        Args:
            name: Food name
            nutrient_names: Catalog nutrient names the answer should use
        """
        parsed = await self.respond(
            prompts.research_messages(name, nutrient_names),
            web_search=True,
        )
        raw = parsed.get("nutrients") if parsed is not None else None
        if not isinstance(raw, list):
            return []

        estimates = []
        for entry in raw:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            unit = entry.get("unit")
            estimates.append(
                NutrientEstimate(
                    name=str(entry["name"]),
                    unit=str(unit) if unit is not None else None,
                    amount_per_100g=to_number(entry.get("amount_per_100g")) or 0.0,
                    confidence=to_number(entry.get("confidence")),
                )
            )
        logger.info(f"Research for {name!r} returned {len(estimates)} nutrients")
        return estimates

    @staticmethod
    def _items_from(parsed: ParsedJson | None) -> list[EstimatedItem]:
        if parsed is None:
            return []
        raw = parsed.get("items")
        if not isinstance(raw, list):
            return []
        return [EstimatedItem.from_raw(item) for item in raw if isinstance(item, dict)]
