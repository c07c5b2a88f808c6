"""Core configuration, exceptions and scheduling."""

from .config import EstimationProvider, Settings, get_settings
from .exceptions import (
    EstimationConfigError,
    JobNotFoundError,
    NotFoundError,
    NutrilogError,
    ValidationError,
)

__all__ = [
    "EstimationConfigError",
    "EstimationProvider",
    "JobNotFoundError",
    "NotFoundError",
    "NutrilogError",
    "Settings",
    "ValidationError",
    "get_settings",
]
