"""Cached geodata lookups for the live request path.

Every lookup derives its key, probes the cache, and on miss calls one
upstream adapter. Adapter errors propagate to the caller untouched.
"""

import logging
from typing import Any

from wayvora.config import settings
from wayvora.integrations.nominatim import NominatimClient
from wayvora.integrations.ollama import OllamaClient
from wayvora.integrations.overpass import OverpassClient, PoiQuery
from wayvora.services import cache_keys
from wayvora.services.cache_aside import CacheAccessor
from wayvora.services.ttl_policy import TTLClass

logger = logging.getLogger(__name__)


class GeoDataService:
    """Cache-aside wrapper around Nominatim, Overpass and Ollama."""

    def __init__(
        self,
        accessor: CacheAccessor,
        nominatim: NominatimClient,
        overpass: OverpassClient,
        ollama: OllamaClient | None = None,
        cell_size: float | None = None,
    ):
        self.accessor = accessor
        self.nominatim = nominatim
        self.overpass = overpass
        self.ollama = ollama
        self.cell_size = cell_size if cell_size is not None else settings.grid_cell_size

    async def search_places(self, query: str, limit: int = 5) -> list[dict[str, Any]]:
        """Forward geocoding, cached under the normalized query."""
        key = cache_keys.geocode_key(query, limit)

        async def fetch() -> list[dict[str, Any]]:
            results = await self.nominatim.search(query, limit)
            return [r.model_dump() for r in results]

        value, hit = await self.accessor.get_or_fetch(key, TTLClass.GEOCODING, fetch)
        logger.info("Place search | hit=%s | results=%d | query=%s", hit, len(value), query[:80])
        return value

    async def reverse_geocode(self, lat: float, lng: float, zoom: int = 18) -> dict[str, Any]:
        key = cache_keys.reverse_key(lat, lng, zoom)
        value, _ = await self.accessor.get_or_fetch(
            key, TTLClass.GEOCODING, lambda: self.nominatim.reverse(lat, lng, zoom),
        )
        return value

    def poi_key(self, query: "PoiQuery | str") -> str:
        if isinstance(query, PoiQuery):
            return query.cache_key(self.cell_size)
        return cache_keys.poi_key_for_text(query, self.cell_size)

    async def fetch_pois(self, query: "PoiQuery | str") -> dict[str, Any]:
        """POIs for a structured query, or for raw Overpass QL from a client."""
        key = self.poi_key(query)
        text = query.text if isinstance(query, PoiQuery) else query

        value, hit = await self.accessor.get_or_fetch(
            key, TTLClass.POI, lambda: self.overpass.query(text),
        )
        logger.info("POI fetch | hit=%s | elements=%d | key=%s", hit, len(value.get("elements", [])), key)
        return value

    # ═══════════════ LLM TEXT ═══════════════

    async def _generate(self, key: str, ttl_class: TTLClass, prompt: str, system: str | None) -> str:
        if self.ollama is None:
            raise RuntimeError("no LLM client configured")
        value, hit = await self.accessor.get_or_fetch(
            key, ttl_class, lambda: self.ollama.chat(prompt, system),
        )
        logger.info("LLM text | hit=%s | class=%s | key=%s", hit, ttl_class.value, key)
        return value

    async def neighborhood_fact(
        self,
        city: str,
        neighborhood: str,
        prompt: str,
        system: str | None = None,
    ) -> str:
        """Derived fact text for a neighborhood; long-lived once generated."""
        key = cache_keys.neighborhood_fact_key(city, neighborhood)
        return await self._generate(key, TTLClass.DERIVED_FACT, prompt, system)

    async def travel_tips(
        self,
        poi_name: str,
        category: str,
        prompt: str,
        system: str | None = None,
    ) -> str:
        """Visitor tips for one POI, shared by every user asking about it."""
        key = cache_keys.travel_tips_key(poi_name, category)
        return await self._generate(key, TTLClass.TRAVEL_TIPS, prompt, system)

    async def recommendations(
        self,
        selected_pois: list[dict],
        preferences: str,
        prompt: str,
        system: str | None = None,
    ) -> str:
        """Trip recommendations keyed on the selected POIs and the user's preferences.

        POI dicts hash by content, so field order does not matter; list order does.
        """
        key = cache_keys.recommendations_key(selected_pois, preferences)
        return await self._generate(key, TTLClass.RECOMMENDATIONS, prompt, system)
