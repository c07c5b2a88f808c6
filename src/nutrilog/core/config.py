"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONCURRENT_USER_LIMIT = 3


class EstimationProvider(str, Enum):
    """Supported AI estimation backends."""
    XAI = "xai"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "nutrilog"

    # Estimation backend
    estimation_provider: EstimationProvider = EstimationProvider.XAI
    xai_auth_token: str = ""
    xai_model: str = "grok-4-1-fast"
    xai_base_url: str = "https://api.x.ai/v1"
    estimation_timeout: float = 60.0
    estimation_temperature: float = 0.2
    estimation_max_output_tokens: int = 1200

    # Uploaded images are fetched by the vision backend from here
    image_base_url: str = ""

    # Job processing
    concurrent_user_limit: int = DEFAULT_CONCURRENT_USER_LIMIT
    concurrency_retry_delay_seconds: int = 15
    image_max_retries: int = 2
    min_average_confidence: float = 0.35
    stale_job_cutoff_minutes: int = 30
    jobs_retain: int = 500
    history_size: int = 10

    # Worker
    worker_concurrency: int = 4
    queue_poll_interval_seconds: float = 1.0
    stale_sweep_interval_minutes: int = 0  # 0 = only sweep after each job

    # App
    log_level: str = "INFO"
    app_name: str = "Nutrilog Worker"
    app_version: str = "1.0.0"

    @field_validator("concurrent_user_limit", mode="before")
    @classmethod
    def _coerce_user_limit(cls, value):
        """Fall back to the default limit for unusable values."""
        try:
            limit = float(value)
        except (TypeError, ValueError):
            return DEFAULT_CONCURRENT_USER_LIMIT
        if limit != limit or limit <= 0 or limit == float("inf"):
            return DEFAULT_CONCURRENT_USER_LIMIT
        return int(limit)

    @property
    def is_estimation_configured(self) -> bool:
        """Check if the selected estimation backend has credentials."""
        if self.estimation_provider == EstimationProvider.XAI:
            return bool(self.xai_auth_token)
        return False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
