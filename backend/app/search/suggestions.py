from __future__ import annotations

from collections.abc import Iterable

from .decompose import keywords
from .types import CacheSnapshot

MAX_SUGGESTIONS = 6
MAX_LOCATION_SUGGESTIONS = 3

# trigger words -> themed follow-up queries
KEYWORD_TOPICS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("virtual", "online", "remote"),
        (
            "Virtual team building games",
            "Online team activities",
            "Remote team engagement",
            "Virtual escape rooms",
        ),
    ),
    (
        ("outdoor", "adventure", "nature"),
        (
            "Adventure team building",
            "Outdoor corporate events",
            "Nature-based activities",
            "Team building resorts",
        ),
    ),
    (
        ("indoor", "conference"),
        (
            "Indoor team activities",
            "Conference room games",
            "Workshop activities",
            "Meeting room team building",
        ),
    ),
    (
        ("cooking", "food"),
        (
            "Cooking team building",
            "Culinary workshops",
            "Food-based activities",
            "Chef team challenges",
        ),
    ),
    (
        ("sports", "physical"),
        (
            "Sports team building",
            "Physical activities",
            "Athletic challenges",
            "Competitive team games",
        ),
    ),
)

GENERIC_SUGGESTIONS = (
    "Virtual team building games",
    "Outdoor team activities",
    "Corporate team outing venues",
    "Team building workshops",
    "Leadership development programs",
)

# words that appear in almost every suggestion and never count as "already searched"
DOMAIN_WORDS = frozenset(
    {"team", "teams", "building", "activity", "activities", "corporate", "games", "events"}
)


def _distinct(values: Iterable[str | None]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        text = (value or "").strip()
        key = text.lower()
        if not text or key in seen:
            continue
        seen.add(key)
        out.append(text)
    return out


def facet_suggestions(query: str, snapshot: CacheSnapshot) -> list[str]:
    """Topics from activity types and locations not already named in the query."""
    query_lower = query.lower()
    out: list[str] = []
    for activity_type in _distinct(item.activity_type for item in snapshot.activities):
        if activity_type.lower() not in query_lower:
            out.append(f"{activity_type} team building activities")

    locations = _distinct(
        [
            *(item.location for item in snapshot.venues),
            *(item.region for item in snapshot.destinations),
        ]
    )
    for location in locations[:MAX_LOCATION_SUGGESTIONS]:
        if location.lower() not in query_lower:
            out.append(f"Team building in {location}")
    return out


def keyword_topic_suggestions(query: str) -> list[str]:
    words = set(keywords(query))
    out: list[str] = []
    for triggers, topics in KEYWORD_TOPICS:
        if words.intersection(triggers):
            out.extend(topics)
    return out


def suggest(query: str, snapshot: CacheSnapshot, limit: int = MAX_SUGGESTIONS) -> list[str]:
    """Related queries, facet-derived first, then keyword topics, then filler.

    Candidates that repeat a distinctive word the user already typed are
    skipped, as are case-insensitive duplicates.
    """
    covered = {word for word in keywords(query) if word not in DOMAIN_WORDS}
    candidates = [
        *facet_suggestions(query, snapshot),
        *keyword_topic_suggestions(query),
        *GENERIC_SUGGESTIONS,
    ]
    out: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        key = candidate.lower()
        if key in seen or covered.intersection(key.replace("-", " ").split()):
            continue
        seen.add(key)
        out.append(candidate)
        if len(out) >= limit:
            break
    return out
