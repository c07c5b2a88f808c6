"""Pytest configuration and fixtures."""

import pytest

from fakes import FakeEstimationClient, FakeUnitOfWork
from nutrilog.core.config import Settings
from nutrilog.models.catalog import Nutrient
from nutrilog.services.queue import JobQueue


@pytest.fixture
def settings() -> Settings:
    """Settings with the production defaults, independent of the environment."""
    return Settings(
        _env_file=None,
        xai_auth_token="test-token",
        image_base_url="https://images.test",
        concurrent_user_limit=3,
        concurrency_retry_delay_seconds=15,
        image_max_retries=2,
        min_average_confidence=0.35,
        stale_job_cutoff_minutes=30,
        jobs_retain=500,
        history_size=10,
    )


@pytest.fixture
def catalog_nutrients() -> list[Nutrient]:
    """A small nutrient catalog, in load order."""
    return [
        Nutrient(id="calories", name="Calories", unit="kcal"),
        Nutrient(id="carbs", name="Carbohydrates", unit="g"),
        Nutrient(id="protein", name="Protein", unit="g"),
        Nutrient(id="fat", name="Total Fat", unit="g"),
        Nutrient(id="sodium", name="Sodium, Na", unit="mg"),
        Nutrient(id="vitamin_b12", name="Vitamin B-12", unit="mcg"),
        Nutrient(id="vitamin_c", name="Vitamin C", unit="mg"),
    ]


@pytest.fixture
def uow(catalog_nutrients) -> FakeUnitOfWork:
    return FakeUnitOfWork(catalog_nutrients)


@pytest.fixture
def queue(uow) -> JobQueue:
    return JobQueue(uow.queue, poll_interval=0)


@pytest.fixture
def fake_client() -> FakeEstimationClient:
    return FakeEstimationClient()
