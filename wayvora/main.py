"""Wayvora backend — FastAPI application entry point.

Proxies Overpass / Nominatim through the cache and exposes the warm-cache job.
"""

import logging
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from wayvora.config import LOG_FORMAT, settings
from wayvora.dependencies import Services, get_services
from wayvora.integrations.errors import UpstreamError, UpstreamStatusError, UpstreamTimeoutError
from wayvora.orchestrator.failures import FailurePersistenceError
from wayvora.orchestrator.schemas import WarmRequest
from wayvora.orchestrator.warmer import WarmRunInProgressError

logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
logger = logging.getLogger("wayvora")


# ═══════════════ RATE LIMITER ═══════════════

class RateLimiter:
    """Fixed-window rate limiter by IP."""

    def __init__(self, max_requests: int, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window = window_seconds
        self._hits: dict[str, list[float]] = defaultdict(list)

    def is_limited(self, ip: str) -> bool:
        now = time.monotonic()
        window_start = now - self.window
        hits = self._hits[ip]
        # Remove expired entries
        self._hits[ip] = [t for t in hits if t > window_start]
        if len(self._hits[ip]) >= self.max_requests:
            return True
        self._hits[ip].append(now)
        return False


def _client_ip(request: Request) -> str:
    client_ip = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"
    return client_ip


def enforce_rate_limit(request: Request):
    if request.app.state.rate_limiter.is_limited(_client_ip(request)):
        raise HTTPException(status_code=429, detail="Too many API requests, please slow down.")


def _upstream_error_response(e: UpstreamError) -> JSONResponse:
    if isinstance(e, UpstreamTimeoutError):
        status = 504
    elif isinstance(e, UpstreamStatusError) and e.status_code:
        status = e.status_code
    else:
        status = 503
    return JSONResponse(status_code=status, content={"error": f"{e.service} API unavailable: {e}"})


# ═══════════════ REQUEST BODIES ═══════════════

class OverpassProxyRequest(BaseModel):
    query: str = Field(min_length=1)


# ═══════════════ APP ═══════════════

def create_app(services: Services | None = None) -> FastAPI:
    services = services or Services.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Wayvora backend starting")
        redis_ok = await services.store.connect()
        logger.info("Redis: %s", "connected" if redis_ok else "unavailable (using in-memory fallback)")
        services.jobs.start_schedule(settings.warm_schedule_hours)

        yield

        await services.jobs.shutdown()
        await services.store.disconnect()
        logger.info("Wayvora backend shutting down")

    app = FastAPI(
        title="Wayvora API",
        description="Geodata proxy cache and warm-cache jobs",
        version="2.0.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.rate_limiter = RateLimiter(settings.rate_limit_per_minute)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI):

    @app.get("/health")
    async def health(svc: Services = Depends(get_services)):
        redis_ok = await svc.accessor.healthy()
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": {"redis": "connected" if redis_ok else "disconnected"},
        }

    # ─── proxy ───

    @app.post("/api/proxy/overpass", dependencies=[Depends(enforce_rate_limit)])
    async def proxy_overpass(body: OverpassProxyRequest, svc: Services = Depends(get_services)):
        try:
            return await svc.geodata.fetch_pois(body.query)
        except UpstreamError as e:
            logger.error("Proxy Overpass error | %s", str(e)[:200])
            return _upstream_error_response(e)

    @app.get("/api/proxy/nominatim/search", dependencies=[Depends(enforce_rate_limit)])
    async def proxy_nominatim_search(
        q: str = Query(min_length=1),
        limit: int = Query(default=5, ge=1, le=50),
        svc: Services = Depends(get_services),
    ):
        try:
            return await svc.geodata.search_places(q, limit)
        except UpstreamError as e:
            logger.error("Proxy Nominatim search error | %s", str(e)[:200])
            return _upstream_error_response(e)

    @app.get("/api/proxy/nominatim/reverse", dependencies=[Depends(enforce_rate_limit)])
    async def proxy_nominatim_reverse(
        lat: float = Query(ge=-90, le=90),
        lon: float = Query(ge=-180, le=180),
        zoom: int = Query(default=18, ge=0, le=18),
        svc: Services = Depends(get_services),
    ):
        try:
            return await svc.geodata.reverse_geocode(lat, lon, zoom)
        except UpstreamError as e:
            logger.error("Proxy Nominatim reverse error | %s", str(e)[:200])
            return _upstream_error_response(e)

    # ─── cache admin ───

    @app.delete("/api/cache/clear")
    async def clear_cache(pattern: str | None = None, svc: Services = Depends(get_services)):
        deleted = await svc.accessor.clear(pattern)
        logger.info("Cache cleared | pattern=%s | deleted=%d", pattern or "all", deleted)
        return {
            "success": True,
            "deletedCount": deleted,
            "pattern": pattern or "all",
            "message": f"Cleared {deleted} cached entries",
        }

    @app.get("/api/cache/stats")
    async def cache_stats(svc: Services = Depends(get_services)):
        return await svc.accessor.stats()

    @app.get("/api/cache/failures")
    async def warm_failures(svc: Services = Depends(get_services)):
        try:
            report = svc.failure_store.load()
        except FailurePersistenceError as e:
            return JSONResponse(status_code=500, content={"error": str(e)[:300]})
        if report is None:
            return {"timestamp": None, "failures": []}
        return report.model_dump(mode="json")

    # ─── warm jobs ───

    @app.post("/api/cache/warm")
    async def start_warm(body: WarmRequest, svc: Services = Depends(get_services)):
        try:
            snapshot = svc.jobs.start(body)
        except WarmRunInProgressError as e:
            return JSONResponse(status_code=409, content={"error": str(e)})
        return JSONResponse(status_code=202, content=snapshot.model_dump(mode="json"))

    @app.get("/api/cache/warm")
    async def list_warm_jobs(svc: Services = Depends(get_services)):
        return [s.model_dump(mode="json") for s in svc.jobs.list()]

    @app.get("/api/cache/warm/{job_id}")
    async def get_warm_job(job_id: str, svc: Services = Depends(get_services)):
        snapshot = svc.jobs.get(job_id)
        if snapshot is None:
            return JSONResponse(status_code=404, content={"error": f"Unknown warm job {job_id}"})
        return snapshot.model_dump(mode="json")

    @app.delete("/api/cache/warm/{job_id}")
    async def cancel_warm_job(job_id: str, svc: Services = Depends(get_services)):
        if not await svc.jobs.cancel(job_id):
            return JSONResponse(status_code=404, content={"error": f"No running warm job {job_id}"})
        return svc.jobs.get(job_id).model_dump(mode="json")


app = create_app()
