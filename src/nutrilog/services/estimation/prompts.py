"""Prompt and message builders for the estimation backend."""

import json
from typing import Any

Message = dict[str, Any]

ITEM_SCHEMA = {
    "items": [
        {
            "name": "string",
            "quantity": "number",
            "unit": "string",
            "grams_estimate": "number",
            "confidence": "number",
        }
    ]
}

EXTRACTION_SYSTEM_PROMPT = "You are a nutrition parser. Return strict JSON only. Do not include markdown."

EXTRACTION_PROMPT = (
    "Parse this food log into items. Include grams_estimate even if unit is not grams. "
    'Ignore lines like "Meal 1". '
    'If a line looks like "237g whole eggs" treat it as grams + food name. '
    'If the user provides counts like "3 kiwis" or "2 big bananas", estimate grams per item '
    "based on typical averages for that food and size modifiers (small/medium/large/big). "
    "Items may be space-separated; treat each grams value as a new item."
)

STRICT_GRAMS_SUFFIX = " grams_estimate must be a positive number; never return 0."

EXTRACTION_EXAMPLE = {
    "example_input": "Meal 1\n237g whole eggs\n40g parmesan cheese",
    "example_output": {
        "items": [
            {"name": "whole eggs", "quantity": 237, "unit": "g", "grams_estimate": 237, "confidence": 0.9},
            {"name": "parmesan cheese", "quantity": 40, "unit": "g", "grams_estimate": 40, "confidence": 0.9},
        ]
    },
}

CLASSIFIER_SYSTEM_PROMPT = "You classify whether text is a food log. Return strict JSON only."

IMAGE_PROMPT = (
    "Identify foods and estimate portion sizes. Return strict JSON only with items array: "
    "name, quantity, unit, grams_estimate, confidence. "
    "Confidence must be a number between 0 and 1."
)

RESEARCH_SYSTEM_PROMPT = (
    "You are a nutrition researcher. Use web_search to find nutrient data. Return strict JSON only."
)


def extraction_messages(text: str, *, strict_grams: bool = False) -> list[Message]:
    """Messages asking for the items of a free-text food log."""
    instructions = EXTRACTION_PROMPT + (STRICT_GRAMS_SUFFIX if strict_grams else "")
    payload = {"schema": ITEM_SCHEMA, **EXTRACTION_EXAMPLE, "text": text}
    return [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": instructions},
        {"role": "user", "content": json.dumps(payload)},
    ]


def classifier_messages(text: str) -> list[Message]:
    """Messages asking whether ``text`` is a food log at all."""
    payload = {"schema": {"is_food": "boolean", "reason": "string"}, "text": text}
    return [
        {"role": "system", "content": CLASSIFIER_SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(payload)},
    ]


def image_messages(image_url: str, hint: str | None = None) -> list[Message]:
    """Vision request: the image reference followed by the instructions."""
    prompt = IMAGE_PROMPT + (f" User hint: {hint}" if hint else "")
    return [
        {
            "role": "user",
            "content": [
                {"type": "input_image", "image_url": image_url, "detail": "high"},
                {"type": "input_text", "text": prompt},
            ],
        }
    ]


def research_messages(name: str, nutrient_names: list[str]) -> list[Message]:
    """Messages asking for per-100g amounts of the catalog nutrients for a food."""
    payload = {
        "nutrient_list": nutrient_names,
        "schema": {
            "nutrients": [
                {"name": "string", "unit": "string", "amount_per_100g": "number", "confidence": "number"}
            ]
        },
        "name": name,
    }
    return [
        {"role": "system", "content": RESEARCH_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f'Find nutrient amounts per 100g for "{name}". Use sources from the web. '
                "Return numeric amounts and use nutrient names exactly as provided in the nutrient list."
            ),
        },
        {"role": "user", "content": json.dumps(payload)},
    ]
