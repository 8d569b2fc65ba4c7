from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from .types import CatalogItem

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_FACILITY_SPLIT_RE = re.compile(r"[,;.]+")

HTML_ENTITIES = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&#039;": "'",
}
_ENTITY_RE = re.compile("|".join(re.escape(entity) for entity in HTML_ENTITIES))


def _clean_once(text: str) -> str:
    text = _TAG_RE.sub("", text)
    text = _ENTITY_RE.sub(lambda match: HTML_ENTITIES[match.group(0)], text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_text(raw: Any) -> str:
    """Reduce stored rich text to plain search text.

    Decoding entities can reveal new markup (``&lt;b&gt;``), so passes repeat
    until the text stops changing.
    """
    if not raw or not isinstance(raw, str):
        return ""
    text = raw
    while True:
        cleaned = _clean_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


def _to_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


def _dedupe(seq: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in seq:
        key = item.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(item.strip())
    return out


def split_facilities(raw: Any) -> list[str]:
    """Split a rich-text facilities blurb into individual amenities."""
    parts: list[str] = []
    for value in _to_list(raw):
        text = normalize_text(value if isinstance(value, str) else str(value))
        parts.extend(part.strip() for part in _FACILITY_SPLIT_RE.split(text))
    return _dedupe(part for part in parts if part)


def _tag_values(raw: Any) -> list[str]:
    values: list[str] = []
    for value in _to_list(raw):
        if isinstance(value, str):
            values.extend(normalize_text(piece) for piece in value.split(","))
        elif value is not None:
            values.append(normalize_text(str(value)))
    return [value for value in values if value]


def _optional(value: Any) -> str | None:
    text = normalize_text(value) if isinstance(value, str) else ""
    return text or None


def _slug(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def activity_from_row(row: dict[str, Any]) -> CatalogItem:
    activity_type = _optional(row.get("activity_type"))
    facets = _dedupe(
        [
            *([activity_type] if activity_type else []),
            *_tag_values(row.get("activity_main_tag")),
            *_tag_values(row.get("tags")),
        ]
    )
    return CatalogItem(
        id=str(row.get("id") or row.get("slug") or ""),
        name=normalize_text(row.get("name")) or "Untitled activity",
        kind="activity",
        slug=_slug(row.get("slug")),
        description=normalize_text(row.get("description")),
        tagline=normalize_text(row.get("tagline")),
        location=normalize_text(row.get("location")),
        facets=tuple(facets),
        image=row.get("main_image"),
        duration=_optional(row.get("duration")),
        group_size=_optional(row.get("group_size")),
        activity_type=activity_type,
    )


def venue_from_row(row: dict[str, Any]) -> CatalogItem:
    location = normalize_text(row.get("location")) or normalize_text(
        row.get("location_plain_text")
    )
    capacity = row.get("max_capacity")
    return CatalogItem(
        id=str(row.get("id") or row.get("slug") or ""),
        name=normalize_text(row.get("name") or row.get("title")) or "Untitled venue",
        kind="venue",
        slug=_slug(row.get("slug")),
        description=normalize_text(row.get("stay_description") or row.get("description")),
        tagline=normalize_text(row.get("tagline")),
        location=location,
        facets=tuple(split_facilities(row.get("facilities"))),
        image=row.get("stay_image") or row.get("image_url"),
        group_size=f"Up to {capacity} people" if capacity else None,
    )


def destination_from_row(row: dict[str, Any]) -> CatalogItem:
    region = _optional(row.get("region"))
    return CatalogItem(
        id=str(row.get("id") or row.get("slug") or ""),
        name=normalize_text(row.get("name")) or "Untitled destination",
        kind="destination",
        slug=_slug(row.get("slug")),
        description=normalize_text(
            row.get("description") or row.get("destination_description")
        ),
        location=region or "",
        image=row.get("destination_main_image") or row.get("destination_image"),
        region=region,
    )
