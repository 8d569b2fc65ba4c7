from __future__ import annotations

from collections.abc import Iterable

from ..settings import CollectionLimits, ScoringWeights
from .decompose import decompose
from .scoring import DEFAULT_WEIGHTS, score_item
from .types import AssembledResults, CacheSnapshot, CatalogItem, ScoredItem

DEFAULT_RESULT_LIMITS = CollectionLimits(activities=10, venues=8, destinations=6)

# (minimum result count, confidence), checked top-down
CONFIDENCE_STEPS: tuple[tuple[int, float], ...] = (
    (10, 0.95),
    (5, 0.85),
    (2, 0.75),
    (1, 0.65),
)
NO_RESULTS_CONFIDENCE = 0.4


def confidence_for(total_results: int) -> float:
    """Coarse step proxy from result volume; not a calibrated probability."""
    for minimum, confidence in CONFIDENCE_STEPS:
        if total_results >= minimum:
            return confidence
    return NO_RESULTS_CONFIDENCE


def rank_collection(
    items: Iterable[CatalogItem],
    candidates: list[str],
    limit: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ScoredItem]:
    scored: list[ScoredItem] = []
    for item in items:
        if not item.has_slug:
            continue
        result = score_item(item, "", weights, candidates=candidates)
        if result.score <= 0:
            continue
        scored.append(
            ScoredItem(
                item=item,
                relevance_score=result.score,
                matched_via=result.matched_via,
                matched_terms=result.matched_terms,
            )
        )
    # sorted() is stable, so equal scores keep catalog order
    scored = sorted(scored, key=lambda entry: -entry.relevance_score)
    return scored[: max(0, limit)]


def assemble(
    query: str,
    snapshot: CacheSnapshot,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limits: CollectionLimits = DEFAULT_RESULT_LIMITS,
) -> AssembledResults:
    candidates = decompose(query)
    if not candidates:
        return AssembledResults()
    return AssembledResults(
        activities=rank_collection(snapshot.activities, candidates, limits.activities, weights),
        venues=rank_collection(snapshot.venues, candidates, limits.venues, weights),
        destinations=rank_collection(
            snapshot.destinations, candidates, limits.destinations, weights
        ),
    )
