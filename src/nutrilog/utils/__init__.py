"""Utility functions."""

from .dates import minutes_ago, today_iso, utc_now
from .normalize import (
    clamp_number,
    convert_amount,
    normalize_confidence,
    normalize_log_text,
    normalize_nutrient_name,
    normalize_unit,
    resolve_nutrient_key,
)

__all__ = [
    "clamp_number",
    "convert_amount",
    "minutes_ago",
    "normalize_confidence",
    "normalize_log_text",
    "normalize_nutrient_name",
    "normalize_unit",
    "resolve_nutrient_key",
    "today_iso",
    "utc_now",
]
