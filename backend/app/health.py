"""Health reporting for the search service and its upstreams."""

from __future__ import annotations

import time
from typing import Any

from .logging_config import SERVICE_NAME, SERVICE_VERSION
from .search import SearchEngine


class HealthChecker:
    """Summarise catalog cache state and generation availability.

    Health never triggers a catalog fetch; it reports what the cache holds.
    """

    def check(self, engine: SearchEngine | None) -> dict[str, Any]:
        if engine is None:
            return {
                "status": "degraded",
                "service": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "timestamp": time.time(),
                "catalog": {
                    "loaded": False,
                    "fresh": False,
                    "age_seconds": None,
                    "ttl_seconds": 0.0,
                    "counts": {},
                    "last_error": "engine not initialised",
                },
                "llm": {"configured": False, "model": None, "circuit_open": False},
            }

        catalog = engine.cache.status()
        generator = engine.responder.generator
        llm = {
            "configured": generator is not None,
            "model": getattr(generator, "model", None),
            "circuit_open": bool(getattr(generator, "circuit_open", lambda: False)()),
        }
        # a stale snapshot is still served, so only an empty one degrades the service
        has_items = any(catalog["counts"].values())
        return {
            "status": "ok" if has_items or catalog["last_error"] is None else "degraded",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": time.time(),
            "catalog": catalog,
            "llm": llm,
        }


health_checker = HealthChecker()

__all__ = ["HealthChecker", "health_checker"]
