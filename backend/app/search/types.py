from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Protocol

ItemKind = Literal["activity", "venue", "destination"]


class MatchTier(str, Enum):
    EXACT = "exact"
    COMBINATION = "combination"
    KEYWORD = "keyword"


@dataclass(frozen=True)
class CatalogItem:
    id: str
    name: str
    kind: ItemKind
    slug: str | None = None
    description: str = ""
    tagline: str = ""
    location: str = ""
    # amenities for venues, activity tags for activities
    facets: tuple[str, ...] = ()
    image: str | None = None
    duration: str | None = None
    group_size: str | None = None
    activity_type: str | None = None
    region: str | None = None

    @property
    def has_slug(self) -> bool:
        return bool((self.slug or "").strip())


@dataclass(frozen=True)
class ScoredItem:
    item: CatalogItem
    relevance_score: float
    matched_via: MatchTier | None = None
    matched_terms: tuple[str, ...] = ()


@dataclass(frozen=True)
class CacheSnapshot:
    activities: tuple[CatalogItem, ...] = ()
    venues: tuple[CatalogItem, ...] = ()
    destinations: tuple[CatalogItem, ...] = ()
    # epoch seconds; 0.0 means the catalog was never loaded successfully
    fetched_at: float = 0.0

    @property
    def item_count(self) -> int:
        return len(self.activities) + len(self.venues) + len(self.destinations)

    @property
    def loaded(self) -> bool:
        return self.fetched_at > 0

    @property
    def is_empty(self) -> bool:
        return self.item_count == 0

    def collections(self) -> dict[str, tuple[CatalogItem, ...]]:
        return {
            "activities": self.activities,
            "venues": self.venues,
            "destinations": self.destinations,
        }


EMPTY_SNAPSHOT = CacheSnapshot()


@dataclass
class AssembledResults:
    activities: list[ScoredItem] = field(default_factory=list)
    venues: list[ScoredItem] = field(default_factory=list)
    destinations: list[ScoredItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.activities) + len(self.venues) + len(self.destinations)


@dataclass(frozen=True)
class NarrativeAnswer:
    text: str
    generated: bool


class CatalogSource(Protocol):
    """Read-only bulk access to the catalog data service."""

    async def list_activities(self, limit: int) -> Sequence[CatalogItem]: ...

    async def list_venues(self, limit: int) -> Sequence[CatalogItem]: ...

    async def list_destinations(self, limit: int) -> Sequence[CatalogItem]: ...


class TextGenerator(Protocol):
    """Language-model capability used for narrative answers."""

    async def generate(self, instruction: str, context: str) -> str: ...
