"""Nominatim (OpenStreetMap) geocoding integration.

Docs: https://nominatim.org/release-docs/latest/api/Search/
Usage policy: max 1 request/second and an identifying User-Agent.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wayvora.config import settings
from wayvora.integrations.errors import UpstreamResponseError
from wayvora.integrations.http import request_json

logger = logging.getLogger(__name__)

SERVICE = "Nominatim"


class GeocodeResult(BaseModel):
    """One Nominatim search hit."""
    display_name: str
    lat: float
    lng: float
    place_type: str = "city"
    address: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_nominatim(cls, raw: dict[str, Any]) -> "GeocodeResult":
        return cls(
            display_name=raw.get("display_name", ""),
            lat=float(raw["lat"]),
            lng=float(raw["lon"]),
            place_type=raw.get("type") or "city",
            address=raw.get("address") or {},
        )


class GeocodedCity(BaseModel):
    """A free-text city query resolved to coordinates."""
    model_config = ConfigDict(frozen=True)

    query: str
    display_name: str
    lat: float
    lng: float
    place_type: str = "city"
    country: str = ""

    @classmethod
    def from_result(cls, query: str, result: GeocodeResult) -> "GeocodedCity":
        return cls(
            query=query,
            display_name=result.display_name,
            lat=result.lat,
            lng=result.lng,
            place_type=result.place_type,
            country=str(result.address.get("country", "")),
        )


class NominatimClient:
    """Async client for the Nominatim search and reverse endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ):
        self.base_url = (base_url or settings.nominatim_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.nominatim_timeout_seconds
        self.headers = {
            "User-Agent": user_agent or settings.user_agent,
            "Accept": "application/json",
        }

    async def search(self, query: str, limit: int = 5) -> list[GeocodeResult]:
        """Forward-geocode free text. An empty list is a valid outcome."""
        params = {
            "q": query,
            "format": "json",
            "limit": str(limit),
            "addressdetails": "1",
            "extratags": "1",
        }
        data = await request_json(
            SERVICE, "GET", f"{self.base_url}/search",
            timeout=self.timeout, headers=self.headers, params=params,
        )
        if not isinstance(data, list):
            raise UpstreamResponseError(SERVICE, "search response is not a list")

        try:
            results = [GeocodeResult.from_nominatim(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamResponseError(SERVICE, f"unusable search result: {str(e)[:100]}") from e

        logger.info("Nominatim search | results=%d | query=%s", len(results), query[:80])
        return results

    async def reverse(self, lat: float, lng: float, zoom: int = 18) -> dict[str, Any]:
        """Reverse-geocode a coordinate. Nominatim reports "not found" as {"error": ...}."""
        params = {
            "lat": str(lat),
            "lon": str(lng),
            "format": "json",
            "zoom": str(zoom),
            "addressdetails": "1",
        }
        data = await request_json(
            SERVICE, "GET", f"{self.base_url}/reverse",
            timeout=self.timeout, headers=self.headers, params=params,
        )
        if not isinstance(data, dict):
            raise UpstreamResponseError(SERVICE, "reverse response is not an object")
        return data

    async def geocode_city(self, query: str, limit: int = 5) -> GeocodedCity | None:
        """First search hit as a GeocodedCity, or None when nothing matches."""
        results = await self.search(query, limit)
        if not results:
            return None
        return GeocodedCity.from_result(query, results[0])
