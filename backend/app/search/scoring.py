from __future__ import annotations

import math
from dataclasses import dataclass

from ..settings import ScoringWeights
from .decompose import combinations, decompose, single_words
from .types import CatalogItem, MatchTier

DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(slots=True)
class ItemFields:
    name: str
    descriptions: tuple[str, ...]
    location: str
    facets: tuple[str, ...]

    @classmethod
    def from_item(cls, item: CatalogItem) -> ItemFields:
        return cls(
            name=item.name.lower(),
            descriptions=tuple(text.lower() for text in (item.description, item.tagline) if text),
            location=item.location.lower(),
            facets=tuple(facet.lower() for facet in item.facets if facet),
        )


@dataclass(frozen=True, slots=True)
class ItemScore:
    score: float
    matched_via: MatchTier | None
    matched_terms: tuple[str, ...] = ()


def _field_hits(
    term: str, fields: ItemFields, weights: tuple[float, float, float, float]
) -> float:
    name_w, description_w, location_w, facet_w = weights
    total = 0.0
    if term in fields.name:
        total += name_w
    if any(term in text for text in fields.descriptions):
        total += description_w
    if fields.location and term in fields.location:
        total += location_w
    for facet in fields.facets:
        if term in facet:
            total += facet_w
    return total


def score_exact(
    phrase: str, fields: ItemFields, weights: ScoringWeights
) -> tuple[float, list[str]]:
    if not phrase:
        return 0.0, []
    total = _field_hits(
        phrase,
        fields,
        (
            weights.name_exact,
            weights.description_exact,
            weights.location_exact,
            weights.facet_exact,
        ),
    )
    if not total:
        return 0.0, []
    return total + weights.exact_bonus, [phrase]


def combination_weight(rank: int, weights: ScoringWeights) -> float:
    return max(
        weights.combination_floor,
        weights.combination_base - weights.combination_decay * rank,
    )


def score_combinations(
    candidates: list[str], fields: ItemFields, weights: ScoringWeights
) -> tuple[float, list[str]]:
    total = 0.0
    matches: list[str] = []
    for rank, combination in enumerate(combinations(candidates)):
        base = combination_weight(rank, weights)
        hit = _field_hits(
            combination,
            fields,
            (
                base * weights.name_combination,
                math.floor(base * weights.description_combination),
                math.floor(base * weights.location_combination),
                math.floor(base * weights.facet_combination),
            ),
        )
        if hit:
            total += hit
            matches.append(combination)
    return total, matches


def score_keywords(
    candidates: list[str], fields: ItemFields, weights: ScoringWeights
) -> tuple[float, list[str]]:
    total = 0.0
    matches: list[str] = []
    for word in single_words(candidates):
        hit = _field_hits(
            word,
            fields,
            (
                weights.name_keyword,
                weights.description_keyword,
                weights.location_keyword,
                weights.facet_keyword,
            ),
        )
        if hit:
            total += hit
            matches.append(word)
    return total, matches


def saturate(raw: float, ceiling: float) -> float:
    """Map [0, inf) onto [0, ceiling) keeping order."""
    if raw <= 0:
        return 0.0
    return ceiling * raw / (raw + ceiling)


def score_item(
    item: CatalogItem,
    query: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    candidates: list[str] | None = None,
) -> ItemScore:
    """Tiered relevance of one catalog item for a query.

    Items without an exact-phrase hit are squeezed below ``weights.exact_floor``
    so combination and keyword evidence can never outrank an exact match.
    """
    candidates = decompose(query) if candidates is None else candidates
    if not candidates:
        return ItemScore(0.0, None)
    fields = ItemFields.from_item(item)

    exact_score, exact_terms = score_exact(candidates[0], fields, weights)
    combo_score, combo_terms = score_combinations(candidates, fields, weights)
    keyword_score, keyword_terms = score_keywords(candidates, fields, weights)
    terms = tuple(dict.fromkeys([*exact_terms, *combo_terms, *keyword_terms]))

    if exact_score:
        return ItemScore(exact_score + combo_score + keyword_score, MatchTier.EXACT, terms)
    raw = combo_score + keyword_score
    if not raw:
        return ItemScore(0.0, None)
    tier = MatchTier.COMBINATION if combo_score else MatchTier.KEYWORD
    return ItemScore(saturate(raw, weights.exact_floor), tier, terms)


def score(item: CatalogItem, query: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    return score_item(item, query, weights).score
