from __future__ import annotations

import hashlib
import time
from collections.abc import Callable
from typing import Any

import sentry_sdk

from ..logging_config import get_logger
from ..metrics import search_duration_seconds, search_requests_total, search_results_returned
from ..openai_async import OpenAIGenerator
from ..schemas import ScoredItemView, SearchResult
from ..settings import CollectionLimits, ScoringWeights, Settings
from .assemble import DEFAULT_RESULT_LIMITS, assemble, confidence_for
from .cache import CatalogCache
from .narrative import NarrativeResponder
from .scoring import DEFAULT_WEIGHTS
from .suggestions import suggest
from .types import AssembledResults, CatalogSource, TextGenerator

logger = get_logger(__name__)

DEFAULT_MAX_QUERY_LENGTH = 500
UNAVAILABLE_CONFIDENCE = 0.3
UNAVAILABLE_ANSWER = (
    "I apologize, but I'm having trouble searching right now. Please contact our team "
    "directly for personalized team building recommendations, or browse our categories "
    "to find the perfect activity for your team."
)
UNAVAILABLE_SUGGESTIONS = (
    "Contact our team directly",
    "Browse activity categories",
    "View our popular options",
)


class InvalidQueryError(ValueError):
    """Raised for a missing, blank, non-string or over-long query."""


def query_fingerprint(query: str) -> str:
    return hashlib.sha256(query.strip().lower().encode("utf-8")).hexdigest()[:12]


def validate_query(query: Any, max_length: int = DEFAULT_MAX_QUERY_LENGTH) -> str:
    if not isinstance(query, str):
        raise InvalidQueryError("query must be a string")
    cleaned = query.strip()
    if not cleaned:
        raise InvalidQueryError("query must not be blank")
    if max_length > 0 and len(cleaned) > max_length:
        raise InvalidQueryError(f"query must be at most {max_length} characters")
    return cleaned


class SearchEngine:
    """Answer one free-text query against a single catalog snapshot.

    The snapshot is taken once; ranking finishes before the narrative and the
    suggestions are computed, and all three read that same snapshot.
    """

    def __init__(
        self,
        cache: CatalogCache,
        responder: NarrativeResponder | None = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        limits: CollectionLimits = DEFAULT_RESULT_LIMITS,
        *,
        max_query_length: int = DEFAULT_MAX_QUERY_LENGTH,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.cache = cache
        self.responder = responder or NarrativeResponder()
        self.weights = weights
        self.limits = limits
        self.max_query_length = max_query_length
        self._clock = clock

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int(round((self._clock() - started) * 1000)))

    async def search(self, query: Any) -> SearchResult:
        query = validate_query(query, self.max_query_length)
        started = self._clock()
        query_fp = query_fingerprint(query)
        sentry_sdk.add_breadcrumb(category="search", message="query", data={"query_fp": query_fp})
        snapshot = await self.cache.get_snapshot()

        # an empty snapshot that never loaded means the catalog is unreachable;
        # a loaded but empty catalog is an ordinary zero-match search
        if snapshot.is_empty and not snapshot.loaded:
            sentry_sdk.add_breadcrumb(
                category="search",
                message="catalog_unavailable",
                level="warning",
                data={"query_fp": query_fp},
            )
            result = SearchResult(
                answer=UNAVAILABLE_ANSWER,
                suggestions=list(UNAVAILABLE_SUGGESTIONS),
                used_generative_answer=False,
                confidence=UNAVAILABLE_CONFIDENCE,
                total_results=0,
                elapsed_ms=self._elapsed_ms(started),
                degraded=True,
            )
            self._record(query, result, answer="unavailable", started=started)
            return result

        ranked = assemble(query, snapshot, self.weights, self.limits)
        narrative = await self.responder.respond(query, snapshot)
        suggestions = suggest(query, snapshot)
        result = self._build(ranked, narrative.text, narrative.generated, suggestions, started)
        self._record(
            query,
            result,
            answer="generated" if narrative.generated else "fallback",
            started=started,
        )
        return result

    def _build(
        self,
        ranked: AssembledResults,
        answer: str,
        generated: bool,
        suggestions: list[str],
        started: float,
    ) -> SearchResult:
        total = ranked.total
        return SearchResult(
            answer=answer,
            activities=[ScoredItemView.from_scored(entry) for entry in ranked.activities],
            venues=[ScoredItemView.from_scored(entry) for entry in ranked.venues],
            destinations=[ScoredItemView.from_scored(entry) for entry in ranked.destinations],
            suggestions=suggestions,
            used_generative_answer=generated,
            confidence=confidence_for(total),
            total_results=total,
            elapsed_ms=self._elapsed_ms(started),
        )

    def _record(self, query: str, result: SearchResult, *, answer: str, started: float) -> None:
        search_requests_total.labels(answer=answer).inc()
        search_duration_seconds.observe(max(0.0, self._clock() - started))
        search_results_returned.observe(result.total_results)
        logger.info(
            "search_completed",
            query_fp=query_fingerprint(query),
            query_length=len(query),
            activities=len(result.activities),
            venues=len(result.venues),
            destinations=len(result.destinations),
            total_results=result.total_results,
            confidence=result.confidence,
            used_generative_answer=result.used_generative_answer,
            degraded=result.degraded,
            elapsed_ms=result.elapsed_ms,
        )

    async def aclose(self) -> None:
        for collaborator in (self.cache.source, self.responder.generator):
            close = getattr(collaborator, "aclose", None)
            if close is not None:
                await close()


def build_engine(
    config: Settings,
    *,
    source: CatalogSource | None = None,
    generator: TextGenerator | None = None,
) -> SearchEngine:
    """Wire an engine from settings; collaborators default to the HTTP clients."""
    if source is None:
        # catalog_source imports this package for row mapping
        from ..catalog_source import SupabaseCatalogSource

        source = SupabaseCatalogSource(config)
    if generator is None and (config.OPENAI_API_KEY or "").strip():
        generator = OpenAIGenerator(config)

    cache = CatalogCache(
        source,
        ttl_seconds=config.SEARCH_CACHE_TTL_SECONDS,
        limits=config.fetch_limits,
        fetch_timeout=config.SEARCH_CATALOG_FETCH_TIMEOUT_SECONDS,
        retry_seconds=config.SEARCH_CATALOG_RETRY_SECONDS,
    )
    responder = NarrativeResponder(
        generator,
        timeout=config.OPENAI_TIMEOUT_SECONDS,
        context_max_chars=config.SEARCH_CONTEXT_MAX_CHARS,
    )
    return SearchEngine(
        cache,
        responder,
        weights=config.parsed_search_weights,
        limits=config.result_limits,
        max_query_length=config.SEARCH_MAX_QUERY_LENGTH,
    )
