"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


class Settings(BaseSettings):
    """Central configuration — reads from environment / .env file."""

    # Redis
    redis_url: str = "redis://localhost:6379"
    cache_memory_fallback: bool = True
    cache_memory_maxsize: int = 1024

    # Upstreams
    overpass_url: str = "https://overpass-api.de/api"
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3"
    user_agent: str = "Wayvora/1.0"

    overpass_timeout_seconds: float = 60.0
    nominatim_timeout_seconds: float = 30.0
    ollama_timeout_seconds: float = 30.0
    ollama_max_retries: int = 1

    # Cache TTLs (seconds)
    cache_ttl_geocoding: int = 86400            # 24 hours
    cache_ttl_poi: int = 3600                   # 1 hour
    cache_ttl_derived_fact: int = 604800        # 7 days
    cache_ttl_travel_tips: int = 3600           # 1 hour
    cache_ttl_recommendations: int = 1800       # 30 minutes
    cache_ttl_user_snapshot: int = 300          # 5 minutes

    # Cache keys
    grid_cell_size: float = 0.01

    # Warm job
    warm_geocode_delay_seconds: float = 1.0     # Nominatim allows 1 req/sec
    warm_poi_delay_seconds: float = 5.0
    warm_phase_gap_seconds: float = 5.0
    warm_poi_max_attempts: int = 3
    warm_poi_backoff_seconds: list[float] = [5.0, 30.0, 60.0]
    warm_min_fresh_fraction: float = 0.5
    warm_radius_meters: int = 1500
    warm_categories: list[str] = ["restaurant", "cafe", "museum", "park", "attraction"]
    warm_geocode_limit: int = 5
    warm_failure_file: Path = Path("data/warm_failures.json")
    warm_schedule_hours: float = 0.0            # 0 disables periodic warming

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    allowed_origins: str = "*"
    rate_limit_per_minute: int = 30
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def cors_origins(self) -> list[str]:
        if self.allowed_origins == "*":
            return ["*"]
        return [o.strip() for o in self.allowed_origins.split(",")]


settings = Settings()
