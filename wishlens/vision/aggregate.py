"""Merge per-tile guesses into one ranked candidate list.

Items proposed by several tiles are the same candidate when they share an
identity key (store host + normalized title). Each extra tile that proposes
it adds one vote to its score; the ranking is by votes, not by any single
tile's own confidence.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from wishlens.constants import TOP_K_CANDIDATES
from wishlens.logging import get_logger
from wishlens.vision.models import CandidateItem, TileResult, TileStatus

_logger = get_logger(__name__)


@dataclass(frozen=True)
class Aggregation:
    items: list[CandidateItem]
    query: str | None
    confidence: float


def _votes_reason(score: int) -> str:
    return "Found in 1 tile" if score == 1 else f"Found in {score} tiles"


def dedupe(items: Sequence[CandidateItem]) -> list[CandidateItem]:
    merged: dict[str, CandidateItem] = {}
    for item in items:
        key = item.identity_key
        existing = merged.get(key)
        if existing is None:
            merged[key] = item.model_copy(update={"score": 1, "reason": item.reason or _votes_reason(1)})
            continue
        score = existing.score + 1
        merged[key] = existing.model_copy(update={"score": score, "reason": _votes_reason(score)})
    return list(merged.values())


def rank(items: Sequence[CandidateItem], limit: int = TOP_K_CANDIDATES) -> list[CandidateItem]:
    return sorted(items, key=lambda item: item.score, reverse=True)[:limit]


def aggregate(results: Sequence[TileResult], limit: int = TOP_K_CANDIDATES) -> Aggregation:
    pool: list[CandidateItem] = []
    query: str | None = None
    total_confidence = 0.0
    confident_tiles = 0

    for result in results:
        if result.status != TileStatus.OK or not result.items:
            continue
        pool.extend(result.items)
        if result.query and not query:
            query = result.query
        if result.confidence is not None:
            total_confidence += result.confidence
            confident_tiles += 1

    items = rank(dedupe(pool), limit)
    _logger.info("Deduplicated %d items to %d candidates", len(pool), len(items))
    return Aggregation(
        items=items,
        query=query,
        confidence=total_confidence / confident_tiles if confident_tiles else 0.0,
    )
