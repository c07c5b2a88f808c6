"""
Factory for creating estimation client instances.

Reads configuration from settings and returns the appropriate provider.
"""

import logging
from functools import lru_cache

from nutrilog.core.config import EstimationProvider, get_settings
from nutrilog.core.exceptions import EstimationConfigError

from .base import EstimationClient
from .xai_provider import XAIEstimationClient

logger = logging.getLogger(__name__)


# Supported providers
PROVIDERS = {
    EstimationProvider.XAI: XAIEstimationClient,
}


@lru_cache(maxsize=1)
def get_estimation_client() -> EstimationClient:
    """
    Get the configured estimation client.

    Returns:
        Configured EstimationClient instance

    Raises:
        EstimationConfigError: If the provider is not supported
    """
    settings = get_settings()
    provider = settings.estimation_provider

    logger.info(f"Initializing estimation provider: {provider.value}")

    if provider not in PROVIDERS:
        raise EstimationConfigError(
            message=f"Unknown estimation provider: {provider.value}",
            provider=provider.value,
        )

    if not settings.is_estimation_configured:
        logger.warning(
            f"Estimation provider {provider.value} has no credentials; "
            "every estimation call will return no result"
        )

    if provider == EstimationProvider.XAI:
        return XAIEstimationClient(
            auth_token=settings.xai_auth_token,
            model=settings.xai_model,
            base_url=settings.xai_base_url,
            timeout=settings.estimation_timeout,
            temperature=settings.estimation_temperature,
            max_output_tokens=settings.estimation_max_output_tokens,
        )

    raise EstimationConfigError(
        message=f"Provider {provider.value} is not yet implemented",
        provider=provider.value,
    )


def clear_client_cache():
    """Clear the cached client instance (useful for testing)."""
    get_estimation_client.cache_clear()
