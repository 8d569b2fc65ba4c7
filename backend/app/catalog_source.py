"""Read-only catalog access over the Supabase REST interface."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx

from .search.normalize import activity_from_row, destination_from_row, venue_from_row
from .search.types import CatalogItem
from .settings import Settings, settings

logger = logging.getLogger(__name__)

ACTIVITIES_TABLE = "activities"
VENUES_TABLE = "stays"
DESTINATIONS_TABLE = "destinations"


class CatalogUnavailable(RuntimeError):
    """Raised when the catalog data service cannot be reached or answers badly."""


class SupabaseCatalogSource:
    """Bulk list calls against ``{SUPABASE_URL}/rest/v1/{table}``."""

    def __init__(
        self,
        config: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return self._config.catalog_configured

    def _headers(self) -> dict[str, str]:
        if not self.configured:
            raise CatalogUnavailable("SUPABASE_URL / SUPABASE_ANON_KEY not configured")
        key = self._config.SUPABASE_ANON_KEY or ""
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Accept": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            async with self._client_lock:
                if self._client is None:
                    base_url = (self._config.SUPABASE_URL or "").rstrip("/") + "/rest/v1"
                    self._client = httpx.AsyncClient(
                        base_url=base_url,
                        timeout=httpx.Timeout(self._config.CATALOG_TIMEOUT_SECONDS),
                        transport=self._transport,
                    )
        return self._client

    async def fetch_rows(self, table: str, limit: int) -> list[dict[str, Any]]:
        headers = self._headers()
        client = await self._get_client()
        params = {"select": "*", "limit": str(max(0, limit))}
        try:
            response = await client.get(f"/{table}", params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise CatalogUnavailable(f"{table}: request failed: {exc}") from exc
        if response.status_code >= 400:
            raise CatalogUnavailable(
                f"{table}: catalog error {response.status_code}: {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogUnavailable(f"{table}: invalid JSON from catalog") from exc
        if not isinstance(payload, list):
            raise CatalogUnavailable(f"{table}: expected a list of rows")
        return [row for row in payload if isinstance(row, dict)]

    async def _list(
        self, table: str, limit: int, mapper: Callable[[dict[str, Any]], CatalogItem]
    ) -> list[CatalogItem]:
        rows = await self.fetch_rows(table, limit)
        items = [mapper(row) for row in rows]
        logger.debug("Fetched %s rows from %s", len(items), table)
        return items

    async def list_activities(self, limit: int) -> list[CatalogItem]:
        return await self._list(ACTIVITIES_TABLE, limit, activity_from_row)

    async def list_venues(self, limit: int) -> list[CatalogItem]:
        return await self._list(VENUES_TABLE, limit, venue_from_row)

    async def list_destinations(self, limit: int) -> list[CatalogItem]:
        return await self._list(DESTINATIONS_TABLE, limit, destination_from_row)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
