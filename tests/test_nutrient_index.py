"""Unit tests for the nutrient index."""

import pytest

from fakes import FakeNutrientRepository
from nutrilog.models.catalog import Nutrient, NutrientEstimate
from nutrilog.services.nutrient_index import NutrientIndex


@pytest.fixture
def nutrient_repo(catalog_nutrients):
    return FakeNutrientRepository(catalog_nutrients)


@pytest.fixture
def index(nutrient_repo):
    return NutrientIndex(nutrient_repo)


class TestMatch:
    """Tests for NutrientIndex.match."""

    @pytest.mark.asyncio
    async def test_exact_key_through_alias(self, index):
        """Test aliases resolve to the catalog entry."""
        assert (await index.match("Carbohydrate")).id == "carbs"
        assert (await index.match("Vitamin B12 (cobalamin)")).id == "vitamin_b12"

    @pytest.mark.asyncio
    async def test_compact_key(self, index):
        assert (await index.match("VitaminB12")).id == "vitamin_b12"

    @pytest.mark.asyncio
    async def test_substring_match(self, index):
        """Test a partial name matches the first key containing it."""
        assert (await index.match("Sodium")).id == "sodium"
        assert (await index.match("Fat")).id == "fat"

    @pytest.mark.asyncio
    async def test_no_match(self, index):
        assert await index.match("Vitamin D") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "(mg)", None])
    async def test_empty_key_never_matches(self, index, name):
        """Test names that normalize to nothing match no nutrient."""
        assert await index.match(name) is None

    @pytest.mark.asyncio
    async def test_later_duplicate_wins(self):
        repo = FakeNutrientRepository(
            [
                Nutrient(id="fiber_old", name="Fiber", unit="g"),
                Nutrient(id="fiber", name="fiber", unit="g"),
            ]
        )
        index = NutrientIndex(repo)

        assert (await index.match("Fiber")).id == "fiber"


class TestLoading:
    """Tests for lazy loading and refresh."""

    @pytest.mark.asyncio
    async def test_loads_once(self, index, nutrient_repo):
        assert not index.is_loaded

        await index.match("Protein")
        await index.match("Calories")
        names = await index.nutrient_names()

        assert index.is_loaded
        assert nutrient_repo.loads == 1
        assert names[:3] == ["Calories", "Carbohydrates", "Protein"]

    @pytest.mark.asyncio
    async def test_refresh_picks_up_new_nutrients(self, index, nutrient_repo):
        """Test catalog changes are only seen after a refresh."""
        assert await index.match("Vitamin D") is None

        nutrient_repo.nutrients.append(Nutrient(id="vitamin_d", name="Vitamin D", unit="mcg"))
        assert await index.match("Vitamin D") is None

        await index.refresh()
        assert (await index.match("Vitamin D")).id == "vitamin_d"
        assert nutrient_repo.loads == 2


class TestMapEstimates:
    """Tests for NutrientIndex.map_estimates."""

    @pytest.mark.asyncio
    async def test_converts_to_catalog_units(self, index):
        """Test amounts are converted into the unit of the matched nutrient."""
        mapping = await index.map_estimates(
            [
                NutrientEstimate(name="Calories", unit="kcal", amount_per_100g=130),
                NutrientEstimate(name="Sodium", unit="g", amount_per_100g=0.5),
                NutrientEstimate(name="Vitamin B-12", unit="µg", amount_per_100g=2),
                NutrientEstimate(name="Vitamin C", unit="g", amount_per_100g=0.01),
            ]
        )

        amounts = {row.nutrient_id: row.amount_per_100g for row in mapping.amounts}
        assert amounts["calories"] == 130
        assert amounts["sodium"] == 500
        assert amounts["vitamin_b12"] == 2
        assert amounts["vitamin_c"] == pytest.approx(10)
        assert mapping.unmatched == []

    @pytest.mark.asyncio
    async def test_collects_unmatched(self, index):
        mapping = await index.map_estimates(
            [
                NutrientEstimate(name="Protein", unit="g", amount_per_100g=3),
                NutrientEstimate(name="Unobtainium", unit="mg", amount_per_100g=1),
                NutrientEstimate(name="Vitamin D", unit="mcg", amount_per_100g=1),
            ]
        )

        assert [row.nutrient_id for row in mapping.amounts] == ["protein"]
        assert mapping.unmatched == ["Unobtainium", "Vitamin D"]

    @pytest.mark.asyncio
    async def test_negative_amount_clamped(self, index):
        mapping = await index.map_estimates(
            [NutrientEstimate(name="Protein", unit="g", amount_per_100g=-4)]
        )

        assert mapping.amounts[0].amount_per_100g == 0
