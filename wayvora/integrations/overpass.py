"""Overpass API integration — POI queries in Overpass QL.

Docs: https://wiki.openstreetmap.org/wiki/Overpass_API
"""

import logging
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, computed_field

from wayvora.config import settings
from wayvora.integrations.errors import UpstreamResponseError
from wayvora.integrations.http import request_json
from wayvora.services.cache_keys import grid_key, sorted_categories
from wayvora.utils.poi_categories import ALL_CATEGORIES, POICategory, render_poi_query

logger = logging.getLogger(__name__)

SERVICE = "Overpass"

MAX_RADIUS_METERS = 1500


class PoiQuery(BaseModel):
    """Structured POI search plus the Overpass QL it generates."""
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    radius: int
    categories: tuple[POICategory, ...]

    @computed_field
    @property
    def text(self) -> str:
        return render_poi_query(self.lat, self.lng, self.radius, self.categories)

    def cache_key(self, cell_size: float | None = None) -> str:
        return grid_key(
            self.lat, self.lng, self.radius, self.categories,
            cell_size if cell_size is not None else settings.grid_cell_size,
        )


def build_query(
    lat: float,
    lng: float,
    radius: int = MAX_RADIUS_METERS,
    categories: Iterable["str | POICategory"] = ALL_CATEGORIES,
) -> PoiQuery:
    """Build the POI query for a search circle.

    Radius is capped at 1500 m. The origin is rounded to the six decimals the
    query text carries so the structured key and the text key agree.
    """
    if radius <= 0:
        raise ValueError("radius must be positive")
    return PoiQuery(
        lat=round(lat, 6),
        lng=round(lng, 6),
        radius=min(int(radius), MAX_RADIUS_METERS),
        categories=sorted_categories(categories),
    )


class OverpassClient:
    """Async client for the Overpass interpreter endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ):
        self.base_url = (base_url or settings.overpass_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.overpass_timeout_seconds
        self.headers = {"User-Agent": user_agent or settings.user_agent}

    async def query(self, query_text: str) -> dict[str, Any]:
        """Run raw Overpass QL. ``{"elements": []}`` is a valid outcome."""
        data = await request_json(
            SERVICE, "POST", f"{self.base_url}/interpreter",
            timeout=self.timeout, headers=self.headers, data={"data": query_text},
        )
        if not isinstance(data, dict) or not isinstance(data.get("elements", []), list):
            raise UpstreamResponseError(SERVICE, "response has no elements list")
        data.setdefault("elements", [])
        logger.info("Overpass query | elements=%d", len(data["elements"]))
        return data

    async def fetch_pois(self, query: PoiQuery) -> dict[str, Any]:
        return await self.query(query.text)
