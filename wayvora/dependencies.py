"""Service wiring — one explicit graph per process instead of module singletons."""

from fastapi import Request

from wayvora.config import Settings, settings
from wayvora.integrations.nominatim import NominatimClient
from wayvora.integrations.ollama import OllamaClient
from wayvora.integrations.overpass import OverpassClient
from wayvora.orchestrator.failures import FailureStore
from wayvora.orchestrator.jobs import WarmJobManager
from wayvora.orchestrator.warmer import CacheWarmer
from wayvora.services.cache import CacheStore
from wayvora.services.cache_aside import CacheAccessor
from wayvora.services.geodata import GeoDataService
from wayvora.services.ttl_policy import TTLPolicy


class Services:
    """Store, accessor, upstream clients, warmer and job manager."""

    def __init__(
        self,
        store: CacheStore,
        accessor: CacheAccessor,
        geodata: GeoDataService,
        failure_store: FailureStore,
        warmer: CacheWarmer,
        jobs: WarmJobManager,
    ):
        self.store = store
        self.accessor = accessor
        self.geodata = geodata
        self.failure_store = failure_store
        self.warmer = warmer
        self.jobs = jobs

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "Services":
        store = CacheStore(
            config.redis_url,
            fallback=config.cache_memory_fallback,
            fallback_maxsize=config.cache_memory_maxsize,
        )
        accessor = CacheAccessor(store, TTLPolicy.from_settings(config))
        nominatim = NominatimClient(config.nominatim_url, config.nominatim_timeout_seconds, config.user_agent)
        overpass = OverpassClient(config.overpass_url, config.overpass_timeout_seconds, config.user_agent)
        ollama = OllamaClient(
            config.ollama_base_url, config.ollama_model,
            config.ollama_timeout_seconds, config.ollama_max_retries,
        )
        geodata = GeoDataService(accessor, nominatim, overpass, ollama, cell_size=config.grid_cell_size)
        failure_store = FailureStore(config.warm_failure_file)
        warmer = CacheWarmer(
            accessor, nominatim, overpass, failure_store,
            geocode_delay=config.warm_geocode_delay_seconds,
            poi_delay=config.warm_poi_delay_seconds,
            phase_gap=config.warm_phase_gap_seconds,
            poi_max_attempts=config.warm_poi_max_attempts,
            poi_backoff=config.warm_poi_backoff_seconds,
            min_fresh_fraction=config.warm_min_fresh_fraction,
            radius=config.warm_radius_meters,
            categories=config.warm_categories,
            geocode_limit=config.warm_geocode_limit,
            cell_size=config.grid_cell_size,
        )
        return cls(store, accessor, geodata, failure_store, warmer, WarmJobManager(warmer))


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the app's service graph."""
    return request.app.state.services
