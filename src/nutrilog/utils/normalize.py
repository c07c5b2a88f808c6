"""
Text, nutrient-name and unit normalization.

Everything in here is pure and synchronous: food-log text is reshaped so that
multi-item single-line logs can be segmented, nutrient names are reduced to
canonical keys, and nutrient amounts are converted between mass units.
"""

import math
import re
from typing import Any

# "<number> g|gram|grams <name>" markers inside a food log
GRAM_MARKER = re.compile(r"(\d+(?:\.\d+)?)\s*(g|grams?)\s+", re.IGNORECASE)

SEGMENT_SEPARATOR = re.compile(r",|\sand\s", re.IGNORECASE)

NUTRIENT_ALIASES: dict[str, str] = {
    "vitamin b12": "vitamin b12",
    "vitamin b 12": "vitamin b12",
    "vitamin b6": "vitamin b6",
    "vitamin b 6": "vitamin b6",
    "vitamin a": "vitamin a",
    "vitamin c": "vitamin c",
    "vitamin d": "vitamin d",
    "vitamin e": "vitamin e",
    "vitamin k": "vitamin k",
    "niacin": "niacin",
    "riboflavin": "riboflavin",
    "thiamin": "thiamin",
    "folate": "folate",
    "total fat": "total fat",
    "carbohydrate": "carbohydrates",
    "carbohydrates": "carbohydrates",
    "sugar": "sugar",
    "fiber": "fiber",
    "calories": "calories",
    "alpha linolenic acid": "alpha linolenic acid",
    "linoleic acid": "linoleic acid",
    "coenzyme q10": "coenzyme q10",
    "alpha lipoic acid": "alpha lipoic acid",
    "betaine": "betaine tmg",
    "s methylmethionine": "s methylmethionine",
    "vitamin u": "s methylmethionine",
}

# Each step between g, mg and mcg is a factor of 1000
MASS_SCALE = {"g": 1.0, "mg": 1e3, "mcg": 1e6}

CONFIDENCE_WORDS = (("high", 0.8), ("medium", 0.5), ("low", 0.2))


def to_number(value: Any) -> float | None:
    """Coerce a loosely-typed value to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def clamp_number(value: Any) -> float:
    """Coerce to a finite, non-negative float (0 for anything unusable)."""
    number = to_number(value)
    if number is None:
        return 0.0
    return max(number, 0.0)


def normalize_name(name: Any) -> str:
    """Trim a food name; None becomes an empty string."""
    return str(name or "").strip()


def normalize_confidence(value: Any) -> float:
    """
    Map a model-reported confidence onto [0, 1].

    Words ("high", "medium", "low") map to fixed scores, numbers above 1 are
    read as percentages, anything unusable is 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        lowered = value.strip().lower()
        for word, score in CONFIDENCE_WORDS:
            if word in lowered:
                return score
    number = to_number(value)
    if number is None:
        return 0.0
    if number > 1:
        return min(number / 100, 1.0)
    return max(number, 0.0)


def normalize_log_text(text: Any) -> str:
    """
    Prepare a free-text food log for extraction.

    Line endings are collapsed to ``\\n``. When more than one gram marker
    (``237g``, ``40 grams``) appears, a line break is inserted before each one
    so that "237g whole eggs 40g parmesan" becomes two lines.
    """
    raw = str(text or "").strip()
    if not raw:
        return raw
    normalized = re.sub(r"\r\n?", "\n", raw)
    if len(GRAM_MARKER.findall(normalized)) <= 1:
        return normalized
    with_breaks = GRAM_MARKER.sub(r"\n\1\2 ", normalized)
    with_breaks = re.sub(r"[ \t]+\n", "\n", with_breaks)
    return with_breaks.lstrip("\n").strip()


def has_segment_separators(text: str) -> bool:
    """True when the text lists several foods with commas or "and"."""
    return bool(SEGMENT_SEPARATOR.search(text or ""))


def rewrite_segments(text: str) -> str:
    """Turn commas and the word "and" into line breaks."""
    rewritten = re.sub(r",\s*", "\n", text or "")
    return re.sub(r"\s+and\s+", "\n", rewritten, flags=re.IGNORECASE)


def split_segments(text: str) -> list[str]:
    """Split a log into non-empty segments on lines, commas and "and"."""
    lines = rewrite_segments(text).splitlines()
    return [line.strip() for line in lines if line.strip()]


def normalize_nutrient_name(name: Any) -> str:
    """Lower-case, drop parentheticals and collapse punctuation to spaces."""
    lowered = str(name or "").lower()
    lowered = re.sub(r"\([^)]*\)", "", lowered)
    lowered = re.sub(r"[^a-z0-9]+", " ", lowered)
    return lowered.strip()


def resolve_nutrient_key(name: Any) -> str:
    """Canonical key for a nutrient name, applying the alias table."""
    normalized = normalize_nutrient_name(name)
    return NUTRIENT_ALIASES.get(normalized, normalized)


def compact_key(key: str) -> str:
    """Key with all whitespace removed ("vitamin b12" -> "vitaminb12")."""
    return re.sub(r"\s+", "", key)


def normalize_unit(unit: Any) -> str:
    """
    Classify a free-form unit as mcg, mg, kcal or g.

    Unrecognized units are returned lower-cased, unchanged otherwise.
    """
    value = str(unit or "").lower()
    if "mcg" in value or re.search(r"[µμ]g", value) or "ug" in value:
        return "mcg"
    if "mg" in value:
        return "mg"
    if "kcal" in value or value == "cal":
        return "kcal"
    if "g" in value:
        return "g"
    return value


def convert_amount(amount: Any, from_unit: Any, to_unit: Any) -> float:
    """
    Convert an amount between g, mg and mcg.

    Negative or non-finite amounts become 0. Equal or non-mass units leave
    the value unchanged.
    """
    value = clamp_number(amount)
    if not value:
        return 0.0
    source = normalize_unit(from_unit)
    target = normalize_unit(to_unit)
    if source == target:
        return value
    if source in MASS_SCALE and target in MASS_SCALE:
        return value * MASS_SCALE[target] / MASS_SCALE[source]
    return value
