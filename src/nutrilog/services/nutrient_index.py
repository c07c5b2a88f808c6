"""
In-memory index of catalog nutrients for matching estimated nutrient names.

The index is loaded from storage on first use and then kept for the life of
the object. Catalog changes made after that are not seen until ``refresh``
is called.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from nutrilog.db.repositories.nutrients import NutrientRepository
from nutrilog.models.catalog import FoodNutrientAmount, Nutrient, NutrientEstimate
from nutrilog.utils.normalize import compact_key, convert_amount, resolve_nutrient_key

logger = logging.getLogger(__name__)

UNMATCHED_SAMPLE_SIZE = 5


@dataclass
class NutrientMapping:
    """Estimates mapped onto catalog nutrients, plus the names that did not match."""

    amounts: list[FoodNutrientAmount] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)


class NutrientIndex:
    """
    Canonical-key lookup over the nutrient catalog.

    Every nutrient is stored under its resolved key and under the compact
    (whitespace-free) form of that key. A later nutrient with the same key
    replaces an earlier one; key order stays the catalog load order, which
    is also the order of the substring scan.
    """

    def __init__(self, repository: NutrientRepository):
        self._repository = repository
        self._lock = asyncio.Lock()
        self._by_key: dict[str, Nutrient] | None = None
        self._by_compact_key: dict[str, Nutrient] = {}
        self._nutrients: list[Nutrient] = []

    @property
    def is_loaded(self) -> bool:
        return self._by_key is not None

    async def _ensure_loaded(self) -> None:
        if self._by_key is not None:
            return
        async with self._lock:
            if self._by_key is None:
                await self._load()

    async def _load(self) -> None:
        nutrients = await self._repository.get_nutrients()
        by_key: dict[str, Nutrient] = {}
        by_compact_key: dict[str, Nutrient] = {}
        for nutrient in nutrients:
            key = resolve_nutrient_key(nutrient.name)
            if not key:
                continue
            by_key[key] = nutrient
            by_compact_key[compact_key(key)] = nutrient
        self._nutrients = list(nutrients)
        self._by_compact_key = by_compact_key
        self._by_key = by_key
        logger.info(f"Loaded {len(nutrients)} nutrients into the index")

    async def refresh(self) -> None:
        """Reload the catalog from storage."""
        async with self._lock:
            await self._load()

    async def nutrient_names(self) -> list[str]:
        """Catalog nutrient names, in load order."""
        await self._ensure_loaded()
        return [nutrient.name for nutrient in self._nutrients]

    async def match(self, name: str) -> Nutrient | None:
        """
        Find the catalog nutrient for an estimated nutrient name.

        Tries the exact canonical key, then the compact key, then the first
        index key that contains or is contained in the canonical key.
        Names that normalize to nothing never match.
        """
        await self._ensure_loaded()
        key = resolve_nutrient_key(name)
        if not key:
            return None

        nutrient = self._by_key.get(key) or self._by_compact_key.get(compact_key(key))
        if nutrient is not None:
            return nutrient

        for index_key, candidate in self._by_key.items():
            if key in index_key or index_key in key:
                return candidate
        return None

    async def map_estimates(self, estimates: list[NutrientEstimate]) -> NutrientMapping:
        """
        Map researched nutrients onto the catalog, converting units.

        Args:
            estimates: Nutrients reported by the research call

        Returns:
            NutrientMapping with per-100g amounts in catalog units
        """
        mapping = NutrientMapping()
        for estimate in estimates:
            target = await self.match(estimate.name)
            if target is None:
                if len(mapping.unmatched) < UNMATCHED_SAMPLE_SIZE:
                    logger.info(
                        f"No match for nutrient: {estimate.name} -> "
                        f"{resolve_nutrient_key(estimate.name)}"
                    )
                mapping.unmatched.append(estimate.name)
                continue
            mapping.amounts.append(
                FoodNutrientAmount(
                    nutrient_id=target.id,
                    amount_per_100g=convert_amount(
                        estimate.amount_per_100g, estimate.unit, target.unit
                    ),
                )
            )

        if mapping.unmatched:
            logger.info(f"Unmapped nutrients: {mapping.unmatched[:10]}")
        logger.info(f"Mapped nutrients: {len(mapping.amounts)}")
        return mapping
