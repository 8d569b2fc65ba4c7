"""Conversational answer for a query, generated or deterministic."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import sentry_sdk

from ..metrics import generation_requests_total
from .decompose import keywords
from .prompts import SEARCH_ANSWER_PROMPT, PromptTemplate
from .types import CacheSnapshot, CatalogItem, NarrativeAnswer, TextGenerator

logger = logging.getLogger(__name__)

DEFAULT_GENERATION_TIMEOUT_SECONDS = 15.0
DEFAULT_CONTEXT_MAX_CHARS = 12_000
TRUNCATION_MARKER = "\n[catalog truncated]"

NO_MATCH_TEMPLATE = (
    "I couldn't find exact matches for \"{query}\", but don't worry! Our team building "
    "experts can help you find the perfect activities. We have 350+ unique experiences "
    "including virtual activities, outdoor adventures, and creative workshops. "
    "Contact us to discuss your specific needs!"
)
CLOSING_LINE = "Explore the options below or contact our team for personalized recommendations!"


def _join(parts: Iterable[str | None]) -> str:
    return " - ".join(part or "" for part in parts)


def activity_line(item: CatalogItem) -> str:
    return "Activity: " + _join(
        [
            item.name,
            item.tagline,
            item.description,
            f"Type: {item.activity_type or ''}",
            f"Duration: {item.duration or ''}",
            f"Group: {item.group_size or ''}",
            f"Slug: {item.slug or ''}",
        ]
    )


def venue_line(item: CatalogItem) -> str:
    return "Venue: " + _join(
        [
            item.name,
            item.tagline,
            item.description,
            f"Location: {item.location}",
            f"Facilities: {', '.join(item.facets)}",
            f"Slug: {item.slug or ''}",
        ]
    )


def destination_line(item: CatalogItem) -> str:
    return "Destination: " + _join(
        [
            item.name,
            item.description,
            f"Region: {item.region or item.location}",
            f"Slug: {item.slug or ''}",
        ]
    )


def build_context(
    snapshot: CacheSnapshot, query: str, max_chars: int = DEFAULT_CONTEXT_MAX_CHARS
) -> str:
    """Render the catalog as grouped plain-text lines followed by the query.

    The catalog body is cut at ``max_chars``; the query line is always kept.
    """
    sections = [
        ("ACTIVITIES", snapshot.activities, activity_line),
        ("VENUES", snapshot.venues, venue_line),
        ("DESTINATIONS", snapshot.destinations, destination_line),
    ]
    blocks = ["CATALOG DATA:"]
    for title, items, render in sections:
        lines = "\n".join(render(item) for item in items)
        blocks.append(f"{title} ({len(items)} available):\n{lines}")
    body = "\n\n".join(blocks)
    if max_chars > 0 and len(body) > max_chars:
        body = body[:max_chars].rstrip() + TRUNCATION_MARKER
    return f'{body}\n\nSEARCH QUERY: "{query}"'


def _searchable(item: CatalogItem) -> str:
    extra = item.activity_type if item.kind == "activity" else item.location
    if item.kind == "destination":
        extra = item.region or item.location
    return " ".join(
        part for part in (item.name, item.tagline, item.description, extra or "") if part
    ).lower()


def _matching(items: Iterable[CatalogItem], phrase: str, words: list[str]) -> list[CatalogItem]:
    matches = []
    for item in items:
        text = _searchable(item)
        if (phrase and phrase in text) or any(word in text for word in words):
            matches.append(item)
    return matches


def fallback_answer(query: str, snapshot: CacheSnapshot) -> str:
    """Deterministic answer built from simple containment counts."""
    phrase = " ".join(query.lower().split())
    words = keywords(query)
    activities = _matching(snapshot.activities, phrase, words)
    venues = _matching(snapshot.venues, phrase, words)
    destinations = _matching(snapshot.destinations, phrase, words)
    total = len(activities) + len(venues) + len(destinations)
    if total == 0:
        return NO_MATCH_TEMPLATE.format(query=query)

    parts = [f'Great! I found {total} options for "{query}".']
    if activities:
        top = activities[0]
        parts.append(
            f'We have {len(activities)} activities including "{top.name}" which is '
            f"perfect for {top.group_size or 'teams'}."
        )
    if venues:
        top = venues[0]
        parts.append(
            f'Plus {len(venues)} venues like "{top.name}" in '
            f"{top.location or 'premium locations'}."
        )
    if destinations:
        top = destinations[0]
        parts.append(f"We also cover {len(destinations)} destinations including {top.name}.")
    parts.append(CLOSING_LINE)
    return " ".join(parts)


class NarrativeResponder:
    """Produce the answer text for a query against one snapshot.

    ``respond`` never raises: a missing generator, a timeout, an upstream error
    or blank output all yield the deterministic fallback.
    """

    def __init__(
        self,
        generator: TextGenerator | None = None,
        template: PromptTemplate = SEARCH_ANSWER_PROMPT,
        *,
        timeout: float = DEFAULT_GENERATION_TIMEOUT_SECONDS,
        context_max_chars: int = DEFAULT_CONTEXT_MAX_CHARS,
    ) -> None:
        self.generator = generator
        self.template = template
        self.timeout = timeout
        self.context_max_chars = context_max_chars

    @property
    def generative(self) -> bool:
        return self.generator is not None

    async def respond(self, query: str, snapshot: CacheSnapshot) -> NarrativeAnswer:
        if self.generator is None:
            generation_requests_total.labels(result="skipped").inc()
            return NarrativeAnswer(fallback_answer(query, snapshot), generated=False)

        instruction = self.template.render(query)
        context = build_context(snapshot, query, self.context_max_chars)
        try:
            text = await asyncio.wait_for(
                self.generator.generate(instruction, context), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.info("Narrative generation timed out after %.1fs; using fallback", self.timeout)
            return self._fallback(query, snapshot, "timeout")
        except Exception as exc:  # noqa: BLE001
            logger.info("Narrative generation failed (%s); using fallback", exc)
            return self._fallback(query, snapshot, "error")

        if not isinstance(text, str) or not text.strip():
            logger.info("Narrative generation returned empty text; using fallback")
            return self._fallback(query, snapshot, "empty")

        generation_requests_total.labels(result="ok").inc()
        return NarrativeAnswer(text.strip(), generated=True)

    def _fallback(self, query: str, snapshot: CacheSnapshot, reason: str) -> NarrativeAnswer:
        generation_requests_total.labels(result=reason).inc()
        sentry_sdk.add_breadcrumb(
            category="search",
            message="narrative_fallback",
            level="warning",
            data={"reason": reason, "template": self.template.version},
        )
        return NarrativeAnswer(fallback_answer(query, snapshot), generated=False)
