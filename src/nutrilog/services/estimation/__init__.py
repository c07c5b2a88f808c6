"""
Estimation backend: client contract, lenient JSON decoding and providers.
"""

from .base import EstimationClient
from .factory import clear_client_cache, get_estimation_client
from .parsing import ParsedJson, ParseMode, parse_json_response
from .xai_provider import XAIEstimationClient

__all__ = [
    "EstimationClient",
    "ParseMode",
    "ParsedJson",
    "XAIEstimationClient",
    "clear_client_cache",
    "get_estimation_client",
    "parse_json_response",
]
