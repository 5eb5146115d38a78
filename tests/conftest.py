"""Shared test fixtures and fakes (no Redis or network required)."""

import asyncio

import pytest

from wayvora.integrations.nominatim import GeocodeResult
from wayvora.orchestrator.failures import FailureStore
from wayvora.orchestrator.warmer import CacheWarmer
from wayvora.services.cache import CacheStore
from wayvora.services.cache_aside import CacheAccessor
from wayvora.services.ttl_policy import TTLClass, TTLPolicy

TTLS = {
    TTLClass.GEOCODING: 86400,
    TTLClass.POI: 3600,
    TTLClass.DERIVED_FACT: 604800,
    TTLClass.TRAVEL_TIPS: 3600,
    TTLClass.RECOMMENDATIONS: 1800,
    TTLClass.USER_SNAPSHOT: 300,
}

PLACES = {
    "Paris, France": (48.8566, 2.3522, "France"),
    "Tokyo, Japan": (35.6762, 139.6503, "Japan"),
    "Lisbon, Portugal": (38.7223, -9.1393, "Portugal"),
}

SAMPLE_POIS = {
    "version": 0.6,
    "elements": [
        {"type": "node", "id": 1, "lat": 48.857, "lon": 2.352, "tags": {"amenity": "cafe", "name": "Café A"}},
        {"type": "node", "id": 2, "lat": 48.858, "lon": 2.353, "tags": {"tourism": "museum", "name": "Musée B"}},
    ],
}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


class FakeNominatim:
    """Resolves names from a fixed table; unknown names yield no results."""

    def __init__(self, places: dict | None = None):
        self.places = dict(PLACES if places is None else places)
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.reverse_calls: list[tuple] = []
        self.gate: asyncio.Event | None = None

    async def search(self, query: str, limit: int = 5) -> list[GeocodeResult]:
        self.calls.append(query)
        if self.gate is not None:
            await self.gate.wait()
        if query in self.errors:
            raise self.errors[query]
        if query not in self.places:
            return []
        lat, lng, country = self.places[query]
        return [GeocodeResult(display_name=query, lat=lat, lng=lng, address={"country": country})]

    async def reverse(self, lat: float, lng: float, zoom: int = 18) -> dict:
        self.reverse_calls.append((lat, lng, zoom))
        if lat == 0 and lng == 0:
            return {"error": "Unable to geocode"}
        return {"display_name": "Rue de Rivoli, Paris", "lat": str(lat), "lon": str(lng)}


class FakeOverpass:
    """Plays back a script of responses/exceptions, then a default payload."""

    def __init__(self, default: dict | None = None):
        self.default = SAMPLE_POIS if default is None else default
        self.script: list = []
        self.calls: list[str] = []

    async def query(self, query_text: str) -> dict:
        self.calls.append(query_text)
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return {"version": self.default.get("version"), "elements": list(self.default["elements"])}

    async def fetch_pois(self, query) -> dict:
        return await self.query(query.text)


class FakeOllama:
    def __init__(self, reply: str = "Le Marais is a historic district."):
        self.reply = reply
        self.calls: list[str] = []

    async def chat(self, prompt: str, system: str | None = None) -> str:
        self.calls.append(prompt)
        return self.reply


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return CacheStore(fallback=True, timer=clock)


@pytest.fixture
def policy():
    return TTLPolicy(TTLS)


@pytest.fixture
def accessor(store, policy):
    return CacheAccessor(store, policy)


@pytest.fixture
def nominatim():
    return FakeNominatim()


@pytest.fixture
def overpass():
    return FakeOverpass()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def failure_store(tmp_path):
    return FailureStore(tmp_path / "warm_failures.json")


@pytest.fixture
def make_warmer(accessor, nominatim, overpass, failure_store, sleep):
    """Factory for a CacheWarmer wired to fakes with distinct pacing values."""

    def _make(**overrides) -> CacheWarmer:
        options = dict(
            cities=["Paris, France", "Tokyo, Japan"],
            geocode_delay=1.0,
            poi_delay=2.0,
            phase_gap=3.0,
            poi_max_attempts=3,
            poi_backoff=[10.0, 20.0, 40.0],
            min_fresh_fraction=0.5,
            radius=1500,
            categories=["restaurant", "cafe", "museum", "park", "attraction"],
            geocode_limit=5,
            cell_size=0.01,
            sleep=sleep,
        )
        options.update(overrides)
        return CacheWarmer(accessor, nominatim, overpass, failure_store, **options)

    return _make
