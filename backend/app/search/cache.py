"""Time-bounded in-memory snapshot of the catalog collections."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

import sentry_sdk

from ..metrics import catalog_refresh_total, catalog_snapshot_items
from ..settings import CollectionLimits
from .types import EMPTY_SNAPSHOT, CacheSnapshot, CatalogItem, CatalogSource

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_FETCH_LIMITS = CollectionLimits(activities=100, venues=50, destinations=30)
DEFAULT_FETCH_TIMEOUT_SECONDS = 8.0
DEFAULT_RETRY_SECONDS = 30.0


class CatalogCache:
    """Serve one consistent catalog snapshot per call, refreshing on expiry.

    A refresh replaces the snapshot reference in one assignment, so callers
    never see collections from two different refreshes. When a refresh fails
    the previous snapshot is served however old it is; without one, whatever
    loaded is served stamped as never-fetched so the next call retries.

    Callers queued behind a refresh take that attempt's outcome rather than
    starting their own, and a stale snapshot kept after a failed refresh is
    served without fetching until `retry_seconds` have passed.
    """

    def __init__(
        self,
        source: CatalogSource,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        limits: CollectionLimits = DEFAULT_FETCH_LIMITS,
        fetch_timeout: float | None = DEFAULT_FETCH_TIMEOUT_SECONDS,
        retry_seconds: float = DEFAULT_RETRY_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._ttl = ttl_seconds
        self._limits = limits
        self._fetch_timeout = fetch_timeout
        self._retry_seconds = retry_seconds
        self._clock = clock
        self._snapshot: CacheSnapshot | None = None
        self._refresh_lock = asyncio.Lock()
        self._last_error: str | None = None
        self._attempts = 0
        self._retry_at = 0.0

    @property
    def source(self) -> CatalogSource:
        return self._source

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _is_fresh(self, snapshot: CacheSnapshot | None) -> bool:
        if snapshot is None or snapshot.fetched_at <= 0:
            return False
        return self._clock() - snapshot.fetched_at < self._ttl

    def _backing_off(self, snapshot: CacheSnapshot | None) -> bool:
        return snapshot is not None and self._clock() < self._retry_at

    def _servable(self, snapshot: CacheSnapshot | None) -> bool:
        return self._is_fresh(snapshot) or self._backing_off(snapshot)

    async def get_snapshot(self) -> CacheSnapshot:
        snapshot = self._snapshot
        if self._servable(snapshot):
            return snapshot  # type: ignore[return-value]
        attempt = self._attempts
        async with self._refresh_lock:
            snapshot = self._snapshot
            # a refresh finished while we waited; share its outcome
            if self._attempts != attempt and snapshot is not None:
                return snapshot
            if self._servable(snapshot):
                return snapshot  # type: ignore[return-value]
            try:
                return await self._refresh()
            finally:
                self._attempts += 1

    async def _fetch_all(self) -> list[Any]:
        gathered = asyncio.gather(
            self._source.list_activities(self._limits.activities),
            self._source.list_venues(self._limits.venues),
            self._source.list_destinations(self._limits.destinations),
            return_exceptions=True,
        )
        if self._fetch_timeout is None:
            return await gathered
        return await asyncio.wait_for(gathered, timeout=self._fetch_timeout)

    async def _refresh(self) -> CacheSnapshot:
        names = ("activities", "venues", "destinations")
        try:
            outcomes = await self._fetch_all()
        except asyncio.TimeoutError:
            outcomes = [
                TimeoutError(f"catalog fetch exceeded {self._fetch_timeout}s") for _ in names
            ]

        loaded: dict[str, tuple[CatalogItem, ...]] = {}
        failures: dict[str, BaseException] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failures[name] = outcome
            else:
                loaded[name] = _as_items(outcome)

        if not failures:
            snapshot = CacheSnapshot(
                activities=loaded["activities"],
                venues=loaded["venues"],
                destinations=loaded["destinations"],
                fetched_at=self._clock(),
            )
            self._store(snapshot)
            self._last_error = None
            self._retry_at = 0.0
            catalog_refresh_total.labels(result="ok").inc()
            logger.info(
                "Catalog snapshot refreshed (activities=%s venues=%s destinations=%s)",
                len(snapshot.activities),
                len(snapshot.venues),
                len(snapshot.destinations),
            )
            return snapshot

        self._last_error = "; ".join(f"{name}: {exc}" for name, exc in failures.items())
        logger.warning("Catalog refresh failed for %s: %s", sorted(failures), self._last_error)
        sentry_sdk.add_breadcrumb(
            category="catalog",
            message="refresh_failed",
            level="warning",
            data={"collections": sorted(failures), "stale": self._snapshot is not None},
        )

        previous = self._snapshot
        if previous is not None and (previous.loaded or not previous.is_empty):
            self._retry_at = self._clock() + self._retry_seconds
            catalog_refresh_total.labels(result="stale").inc()
            return previous

        catalog_refresh_total.labels(result="partial" if loaded else "failed").inc()
        snapshot = CacheSnapshot(
            activities=loaded.get("activities", ()),
            venues=loaded.get("venues", ()),
            destinations=loaded.get("destinations", ()),
            fetched_at=0.0,
        )
        self._store(snapshot)
        return snapshot

    def _store(self, snapshot: CacheSnapshot) -> None:
        self._snapshot = snapshot
        for name, items in snapshot.collections().items():
            catalog_snapshot_items.labels(collection=name).set(len(items))

    def invalidate(self) -> None:
        self._snapshot = None
        self._retry_at = 0.0

    def age_seconds(self) -> float | None:
        snapshot = self._snapshot
        if snapshot is None or snapshot.fetched_at <= 0:
            return None
        return max(0.0, self._clock() - snapshot.fetched_at)

    def status(self) -> dict[str, Any]:
        snapshot = self._snapshot or EMPTY_SNAPSHOT
        age = self.age_seconds()
        return {
            "loaded": self._snapshot is not None and snapshot.fetched_at > 0,
            "fresh": self._is_fresh(self._snapshot),
            "age_seconds": round(age, 1) if age is not None else None,
            "ttl_seconds": self._ttl,
            "counts": {name: len(items) for name, items in snapshot.collections().items()},
            "last_error": self._last_error,
        }


def _as_items(values: Sequence[CatalogItem] | None) -> tuple[CatalogItem, ...]:
    return tuple(values or ())
