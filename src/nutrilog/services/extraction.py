"""
Text and image extraction orchestrators.

Text extraction is a cascade of strategies run in order over a shared
``CascadeState``. Each strategy has a precondition (``applies``), a call
(``run``) and an improvement predicate (``improves``); its candidate only
replaces the current items when the predicate holds, so a later stage
never discards information an earlier one produced.

    primary          extract from the normalized text
    segmented_retry  nothing found: retry once on text split at commas / "and"
    strict_grams     some item lacks grams: retry demanding positive grams
    segment_split    one item from a multi-food text: extract each segment
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from nutrilog.models.food import EstimatedItem, ParseOutcome
from nutrilog.utils.normalize import (
    has_segment_separators,
    normalize_log_text,
    rewrite_segments,
    split_segments,
)

from .estimation.base import EstimationClient

logger = logging.getLogger(__name__)

DEFAULT_NON_FOOD_REASON = "No food detected."


@dataclass
class CascadeState:
    """Items extracted so far and the text they were extracted from."""

    text: str
    items: list[EstimatedItem] = field(default_factory=list)
    source_text: str = ""
    applied: list[str] = field(default_factory=list)


@dataclass
class Candidate:
    """Result proposed by one strategy."""

    items: list[EstimatedItem]
    source_text: str


@dataclass(frozen=True)
class ExtractionStrategy:
    name: str
    applies: Callable[[CascadeState], bool]
    run: Callable[[EstimationClient, CascadeState], Awaitable[Candidate]]
    improves: Callable[[CascadeState, Candidate], bool]


def count_missing_grams(items: Sequence[EstimatedItem]) -> int:
    return sum(1 for item in items if not item.has_grams)


def fills_missing_grams(state: CascadeState, candidate: Candidate) -> bool:
    """Candidate keeps every item and has fewer items without grams."""
    return (
        bool(candidate.items)
        and len(candidate.items) >= len(state.items)
        and count_missing_grams(candidate.items) < count_missing_grams(state.items)
    )


def adds_items(state: CascadeState, candidate: Candidate) -> bool:
    return len(candidate.items) > len(state.items)


# primary


async def _run_primary(client: EstimationClient, state: CascadeState) -> Candidate:
    return Candidate(await client.extract_items(state.text), state.text)


# segmented_retry


def _needs_segmented_retry(state: CascadeState) -> bool:
    return not state.items


async def _run_segmented_retry(client: EstimationClient, state: CascadeState) -> Candidate:
    rewritten = rewrite_segments(state.text)
    return Candidate(await client.extract_items(rewritten), rewritten)


# strict_grams


def _needs_strict_grams(state: CascadeState) -> bool:
    return bool(state.items) and count_missing_grams(state.items) > 0


async def _run_strict_grams(client: EstimationClient, state: CascadeState) -> Candidate:
    items = await client.extract_items(state.source_text, strict_grams=True)
    return Candidate(items, state.source_text)


def _strict_grams_improves(state: CascadeState, candidate: Candidate) -> bool:
    return fills_missing_grams(state, candidate) or adds_items(state, candidate)


# segment_split


def _needs_segment_split(state: CascadeState) -> bool:
    return (
        len(state.items) == 1
        and state.source_text == state.text
        and "strict_grams" not in state.applied
        and has_segment_separators(state.text)
    )


async def _run_segment_split(client: EstimationClient, state: CascadeState) -> Candidate:
    collected: list[EstimatedItem] = []
    for segment in split_segments(state.text):
        items = await client.extract_items(segment)
        if items and count_missing_grams(items):
            strict = await client.extract_items(segment, strict_grams=True)
            if strict:
                items = strict
        collected.extend(items)
    return Candidate(collected, state.text)


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    ExtractionStrategy(
        name="primary",
        applies=lambda state: True,
        run=_run_primary,
        improves=lambda state, candidate: bool(candidate.items),
    ),
    ExtractionStrategy(
        name="segmented_retry",
        applies=_needs_segmented_retry,
        run=_run_segmented_retry,
        improves=lambda state, candidate: bool(candidate.items),
    ),
    ExtractionStrategy(
        name="strict_grams",
        applies=_needs_strict_grams,
        run=_run_strict_grams,
        improves=_strict_grams_improves,
    ),
    ExtractionStrategy(
        name="segment_split",
        applies=_needs_segment_split,
        run=_run_segment_split,
        improves=adds_items,
    ),
)


class TextExtractionOrchestrator:
    """Classify, then run the extraction cascade over a free-text food log."""

    def __init__(
        self,
        client: EstimationClient,
        strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
    ):
        self.client = client
        self.strategies = tuple(strategies)

    async def parse(self, text: str) -> ParseOutcome:
        """
        Extract food items from ``text``.

        Returns:
            ParseOutcome with the items, or with a non-food reason and no
            items when the classifier rejects the text
        """
        normalized = normalize_log_text(text)
        if not normalized:
            return ParseOutcome()

        classification = await self.client.classify(normalized)
        if classification is not None and classification.is_food is False:
            reason = classification.reason or DEFAULT_NON_FOOD_REASON
            logger.info(f"Text classified as non-food: {reason}")
            return ParseOutcome(non_food_reason=reason)

        state = CascadeState(text=normalized, source_text=normalized)
        for strategy in self.strategies:
            if not strategy.applies(state):
                continue
            candidate = await strategy.run(self.client, state)
            if strategy.improves(state, candidate):
                state.items = candidate.items
                state.source_text = candidate.source_text
                state.applied.append(strategy.name)

        logger.info(
            f"Extracted {len(state.items)} items (stages: {', '.join(state.applied) or 'none'})"
        )
        return ParseOutcome(items=state.items, stages=state.applied)


class ImageExtractionOrchestrator:
    """
    One vision call; the caption hint goes through the text cascade when the
    image yields nothing.
    """

    def __init__(self, client: EstimationClient, text_orchestrator: TextExtractionOrchestrator):
        self.client = client
        self.text_orchestrator = text_orchestrator

    async def parse(self, image_url: str, hint: str | None = None) -> ParseOutcome:
        items = await self.client.extract_image_items(image_url, hint)
        if items:
            return ParseOutcome(items=items, stages=["vision"])

        if not hint or not hint.strip():
            return ParseOutcome()

        logger.info("Vision call returned no items, falling back to the hint text")
        fallback = await self.text_orchestrator.parse(hint)
        if fallback.non_food_reason:
            # The image itself was not judged; only the hint was
            logger.info(f"Hint classified as non-food: {fallback.non_food_reason}")
        return ParseOutcome(items=fallback.items, stages=["hint", *fallback.stages])
