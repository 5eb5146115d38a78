"""Warm-cache orchestrator — two-phase pre-warming of geocoding and POI caches.

Flow per city:
  pending → geocode → geocoded | geocode_failed
  geocoded → POI fetch → poi_cached | poi_failed

Phase 1 geocodes every city, paced at Nominatim's 1 request/second. Phase 2
builds the POI query for each geocoded city and fetches it with retry on
transient upstream errors, paced more slowly. Upstream calls are strictly
sequential; both services block clients that hammer them.

A city failure never aborts the batch. Failures are written to the failure
file at the end of the run; ``retry_failed`` re-runs exactly that subset.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable

from pydantic import ValidationError

from wayvora.config import settings
from wayvora.integrations.errors import UpstreamError
from wayvora.integrations.nominatim import GeocodedCity, GeocodeResult, NominatimClient
from wayvora.integrations.overpass import OverpassClient, build_query
from wayvora.orchestrator.failures import FailurePersistenceError, FailureStore
from wayvora.orchestrator.schemas import (
    CityOutcome,
    StepResult,
    StepStatus,
    WarmMode,
    WarmRun,
)
from wayvora.services import cache_keys
from wayvora.services.cache_aside import CacheAccessor
from wayvora.services.ttl_policy import TTLClass
from wayvora.utils.cities import CITIES

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class WarmRunInProgressError(Exception):
    """A warm run is already active on this orchestrator."""


class _Pacer:
    """Fixed delay between consecutive upstream calls of one phase."""

    def __init__(self, delay: float, sleep: Sleep):
        self._delay = delay
        self._sleep = sleep
        self.calls = 0

    async def wait(self):
        if self.calls and self._delay > 0:
            await self._sleep(self._delay)
        self.calls += 1


class CacheWarmer:
    """Drives warm runs. One run at a time per instance."""

    def __init__(
        self,
        accessor: CacheAccessor,
        nominatim: NominatimClient,
        overpass: OverpassClient,
        failure_store: FailureStore,
        *,
        cities: Iterable[str] | None = None,
        geocode_delay: float | None = None,
        poi_delay: float | None = None,
        phase_gap: float | None = None,
        poi_max_attempts: int | None = None,
        poi_backoff: list[float] | None = None,
        min_fresh_fraction: float | None = None,
        radius: int | None = None,
        categories: list[str] | None = None,
        geocode_limit: int | None = None,
        cell_size: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.accessor = accessor
        self.nominatim = nominatim
        self.overpass = overpass
        self.failure_store = failure_store
        self.default_cities = list(cities) if cities is not None else list(CITIES)

        self.geocode_delay = settings.warm_geocode_delay_seconds if geocode_delay is None else geocode_delay
        self.poi_delay = settings.warm_poi_delay_seconds if poi_delay is None else poi_delay
        self.phase_gap = settings.warm_phase_gap_seconds if phase_gap is None else phase_gap
        self.poi_max_attempts = poi_max_attempts or settings.warm_poi_max_attempts
        self.poi_backoff = list(poi_backoff if poi_backoff is not None else settings.warm_poi_backoff_seconds)
        self.min_fresh_fraction = (
            settings.warm_min_fresh_fraction if min_fresh_fraction is None else min_fresh_fraction
        )
        self.radius = radius or settings.warm_radius_meters
        self.categories = list(categories or settings.warm_categories)
        self.geocode_limit = geocode_limit or settings.warm_geocode_limit
        self.cell_size = cell_size if cell_size is not None else settings.grid_cell_size

        self._sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    # ═══════════════ ENTRY POINTS ═══════════════

    async def run(
        self,
        cities: Iterable[str] | None = None,
        mode: WarmMode = WarmMode.FULL,
        skip_existing: bool = False,
    ) -> WarmRun:
        """Warm the given cities (default: curated list)."""
        names = list(cities) if cities else list(self.default_cities)
        return await self._execute(names, WarmMode(mode), skip_existing, retry_failed_only=False)

    async def retry_failed(
        self,
        mode: WarmMode = WarmMode.FULL,
        skip_existing: bool = False,
    ) -> WarmRun:
        """Re-run only the cities recorded in the failure file."""
        names = self.failure_store.failed_names()
        if not names:
            logger.info("Warm retry | no recorded failures")
            run = WarmRun(mode=WarmMode(mode), skip_existing=skip_existing, retry_failed_only=True)
            run.finished_at = datetime.now(timezone.utc)
            return run
        return await self._execute(names, WarmMode(mode), skip_existing, retry_failed_only=True)

    async def _execute(
        self,
        names: list[str],
        mode: WarmMode,
        skip_existing: bool,
        retry_failed_only: bool,
    ) -> WarmRun:
        if self._lock.locked():
            raise WarmRunInProgressError("a warm run is already in progress")

        async with self._lock:
            run = WarmRun.for_cities(
                names, mode=mode, skip_existing=skip_existing, retry_failed_only=retry_failed_only,
            )
            logger.info(
                "Warm run start | id=%s | mode=%s | cities=%d | skip_existing=%s | retry=%s",
                run.id, mode.value, len(names), skip_existing, retry_failed_only,
            )

            geocode_calls = 0
            if mode.geocodes:
                geocode_calls = await self._geocode_phase(run)

            if mode.fetches_pois:
                if geocode_calls and self.phase_gap > 0:
                    await self._sleep(self.phase_gap)
                await self._poi_phase(run)

            run.finished_at = datetime.now(timezone.utc)
            self._persist_failures(run)
            logger.info("Warm run complete | id=%s | %s", run.id, run.summary())
            return run

    def _persist_failures(self, run: WarmRun):
        failures = run.failures
        try:
            if failures:
                self.failure_store.save(failures)
            elif run.retry_failed_only:
                self.failure_store.clear()
        except FailurePersistenceError as e:
            logger.error("Warm run %s | failure file not persisted | %s", run.id, str(e)[:200])
            raise

    # ═══════════════ PHASE 1: GEOCODING ═══════════════

    async def _geocode_phase(self, run: WarmRun) -> int:
        pacer = _Pacer(self.geocode_delay, self._sleep)
        for outcome in run.cities:
            await self._warm_geocode(outcome, run.skip_existing, pacer)
        return pacer.calls

    async def _warm_geocode(self, outcome: CityOutcome, skip_existing: bool, pacer: _Pacer):
        key = cache_keys.geocode_key(outcome.name, self.geocode_limit)

        if skip_existing and await self.accessor.is_fresh(key, TTLClass.GEOCODING, self.min_fresh_fraction):
            outcome.geocode = StepResult(status=StepStatus.SKIPPED, reason="fresh in cache")
            logger.info("Geocode skipped (fresh) | city=%s", outcome.name)
            return

        await pacer.wait()
        try:
            results = await self.nominatim.search(outcome.name, self.geocode_limit)
        except UpstreamError as e:
            outcome.geocode = StepResult(status=StepStatus.FAILED, reason=str(e)[:200], attempts=1)
            logger.warning("Geocode failed | city=%s | %s", outcome.name, str(e)[:200])
            return

        if not results:
            outcome.geocode = StepResult(status=StepStatus.FAILED, reason="not found", attempts=1)
            logger.warning("Geocode failed | city=%s | not found", outcome.name)
            return

        payload = [r.model_dump() for r in results]
        if not await self.accessor.write_if_cacheable(key, payload, TTLClass.GEOCODING):
            outcome.geocode = StepResult(status=StepStatus.FAILED, reason="cache write failed", attempts=1)
            return

        outcome.city = GeocodedCity.from_result(outcome.name, results[0])
        outcome.geocode = StepResult(status=StepStatus.SUCCESS, attempts=1)
        logger.info(
            "Geocoded | city=%s | (%.4f, %.4f) | %s",
            outcome.name, outcome.city.lat, outcome.city.lng, outcome.city.country,
        )

    async def cached_city(self, name: str) -> GeocodedCity | None:
        """Coordinates for ``name`` from the geocoding cache, if present."""
        cached = await self.accessor.read(cache_keys.geocode_key(name, self.geocode_limit))
        if not isinstance(cached, list) or not cached:
            return None
        try:
            return GeocodedCity.from_result(name, GeocodeResult.model_validate(cached[0]))
        except ValidationError as e:
            logger.warning("Cached geocode unusable | city=%s | %s", name, str(e)[:100])
            return None

    # ═══════════════ PHASE 2: POI ═══════════════

    async def _poi_phase(self, run: WarmRun):
        pacer = _Pacer(self.poi_delay, self._sleep)
        for outcome in run.cities:
            if outcome.geocode is not None and outcome.geocode.status is StepStatus.FAILED:
                continue
            await self._warm_pois(outcome, run.skip_existing, pacer)

    def _backoff(self, attempt: int) -> float:
        if not self.poi_backoff:
            return 0.0
        return self.poi_backoff[min(attempt - 1, len(self.poi_backoff) - 1)]

    async def _warm_pois(self, outcome: CityOutcome, skip_existing: bool, pacer: _Pacer):
        city = outcome.city or await self.cached_city(outcome.name)
        if city is None:
            outcome.poi = StepResult(status=StepStatus.FAILED, reason="no cached coordinates")
            logger.warning("POI warm failed | city=%s | no cached coordinates", outcome.name)
            return
        outcome.city = city

        query = build_query(city.lat, city.lng, self.radius, self.categories)
        key = query.cache_key(self.cell_size)
        outcome.poi_key = key

        if skip_existing and await self.accessor.is_fresh(key, TTLClass.POI, self.min_fresh_fraction):
            outcome.poi = StepResult(status=StepStatus.SKIPPED, reason="fresh in cache")
            logger.info("POI skipped (fresh) | city=%s | key=%s", outcome.name, key)
            return

        await pacer.wait()
        attempts = 0
        while True:
            attempts += 1
            try:
                data = await self.overpass.fetch_pois(query)
                break
            except UpstreamError as e:
                if e.transient and attempts < self.poi_max_attempts:
                    wait = self._backoff(attempts)
                    logger.warning(
                        "POI fetch retry | city=%s | attempt=%d/%d | backoff=%.0fs | %s",
                        outcome.name, attempts, self.poi_max_attempts, wait, str(e)[:200],
                    )
                    await self._sleep(wait)
                    continue
                outcome.poi = StepResult(status=StepStatus.FAILED, reason=str(e)[:200], attempts=attempts)
                logger.warning(
                    "POI warm failed | city=%s | attempts=%d | %s", outcome.name, attempts, str(e)[:200],
                )
                return

        elements = data.get("elements") or []
        if not elements:
            outcome.poi = StepResult(status=StepStatus.FAILED, reason="no POIs found", attempts=attempts)
            logger.warning("POI warm failed | city=%s | no POIs found", outcome.name)
            return

        if not await self.accessor.write_if_cacheable(key, data, TTLClass.POI):
            outcome.poi = StepResult(status=StepStatus.FAILED, reason="cache write failed", attempts=attempts)
            return

        outcome.poi = StepResult(status=StepStatus.SUCCESS, attempts=attempts)
        logger.info("POI cached | city=%s | elements=%d | key=%s", outcome.name, len(elements), key)
