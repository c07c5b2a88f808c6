"""
Lenient decoding of JSON returned by the estimation backend.

Models asked for strict JSON still wrap it in prose or code fences now and
then. Decoding is tried strictly first, then on the outermost bracketed
span of the text. Either way the caller gets a typed optional result.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ParseMode(str, Enum):
    """How a response body was decoded."""

    STRICT = "strict"
    BRACKET = "bracket"


@dataclass(frozen=True)
class ParsedJson:
    """A decoded JSON object and the mode that produced it."""

    data: dict[str, Any]
    mode: ParseMode

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


def _as_object(value: Any) -> dict[str, Any] | None:
    # A bare array is taken as the item list
    if isinstance(value, list):
        return {"items": value}
    if isinstance(value, dict):
        return value
    return None


def _bracket_spans(text: str) -> list[str]:
    """Outermost ``{...}`` and ``[...]`` spans, earliest opening bracket first."""
    spans = []
    for opener, closer in (("{", "}"), ("[", "]")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            spans.append((start, text[start : end + 1]))
    spans.sort(key=lambda span: span[0])
    return [candidate for _, candidate in spans]


def parse_json_response(text: str | None) -> ParsedJson | None:
    """
    Decode a backend response body.

    Args:
        text: Raw response text

    Returns:
        ParsedJson for an object or array payload, None otherwise
    """
    if not text:
        return None
    trimmed = str(text).strip()
    if not trimmed:
        return None

    try:
        data = _as_object(json.loads(trimmed))
        return ParsedJson(data, ParseMode.STRICT) if data is not None else None
    except json.JSONDecodeError:
        pass

    for candidate in _bracket_spans(trimmed):
        try:
            data = _as_object(json.loads(candidate))
        except json.JSONDecodeError:
            continue
        if data is not None:
            return ParsedJson(data, ParseMode.BRACKET)

    logger.debug(f"Could not extract JSON from response: {trimmed[:200]}")
    return None
