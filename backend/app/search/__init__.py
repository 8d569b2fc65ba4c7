"""Catalog search: decomposition, tiered scoring, ranking and narrative answers."""

from .cache import CatalogCache
from .engine import InvalidQueryError, SearchEngine, build_engine
from .narrative import NarrativeResponder

__all__ = [
    "CatalogCache",
    "InvalidQueryError",
    "NarrativeResponder",
    "SearchEngine",
    "build_engine",
]
