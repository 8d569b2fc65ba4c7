from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .search.types import ScoredItem


class SearchRequest(BaseModel):
    """Inbound search payload.

    ``query`` is accepted loosely here and validated by the engine, so that a
    missing, blank or non-string query maps to a 400 rather than a schema error.
    """

    query: Any = None


class ScoredItemView(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: Literal["activity", "venue", "destination"]
    slug: str
    description: str = ""
    tagline: str = ""
    location: str = ""
    facets: list[str] = Field(default_factory=list)
    image: str | None = None
    duration: str | None = None
    group_size: str | None = None
    activity_type: str | None = None
    region: str | None = None
    relevance_score: float
    matched_via: Literal["exact", "combination", "keyword"] | None = None
    matched_terms: list[str] = Field(default_factory=list)

    @classmethod
    def from_scored(cls, scored: ScoredItem) -> ScoredItemView:
        item = scored.item
        return cls(
            id=item.id,
            name=item.name,
            kind=item.kind,
            slug=item.slug or "",
            description=item.description,
            tagline=item.tagline,
            location=item.location,
            facets=list(item.facets),
            image=item.image,
            duration=item.duration,
            group_size=item.group_size,
            activity_type=item.activity_type,
            region=item.region,
            relevance_score=round(scored.relevance_score, 4),
            matched_via=scored.matched_via.value if scored.matched_via else None,
            matched_terms=list(scored.matched_terms),
        )


class SearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    answer: str
    activities: list[ScoredItemView] = Field(default_factory=list)
    venues: list[ScoredItemView] = Field(default_factory=list)
    destinations: list[ScoredItemView] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    used_generative_answer: bool = False
    confidence: float = Field(ge=0.0, le=1.0)
    total_results: int = Field(ge=0)
    elapsed_ms: int = Field(ge=0)
    degraded: bool = False


class CatalogStatus(BaseModel):
    loaded: bool
    fresh: bool
    age_seconds: float | None = None
    ttl_seconds: float
    counts: dict[str, int] = Field(default_factory=dict)
    last_error: str | None = None


class GenerationStatus(BaseModel):
    configured: bool
    model: str | None = None
    circuit_open: bool = False


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    service: str
    version: str
    timestamp: float
    catalog: CatalogStatus
    llm: GenerationStatus
