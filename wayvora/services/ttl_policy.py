"""TTL policy — one constant time-to-live per data class.

The table is built once from settings and is read-only afterwards. Nothing
computes a TTL from content; every write looks its class up here.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from wayvora.config import Settings, settings


class TTLClass(str, Enum):
    GEOCODING = "geocoding"              # place coordinates, stable for days
    POI = "poi"                          # venue sets, drift within hours
    DERIVED_FACT = "derived_fact"        # evergreen text about a place
    TRAVEL_TIPS = "travel_tips"
    RECOMMENDATIONS = "recommendations"
    USER_SNAPSHOT = "user_snapshot"      # passport/stamps, near real-time


class TTLPolicy:
    """Read-only data-class → TTL-seconds mapping."""

    def __init__(self, ttls: Mapping[TTLClass, int]):
        missing = [c.value for c in TTLClass if c not in ttls]
        if missing:
            raise ValueError(f"TTL policy missing classes: {', '.join(missing)}")
        for ttl_class, ttl in ttls.items():
            if ttl <= 0:
                raise ValueError(f"TTL for {ttl_class.value} must be positive, got {ttl}")
        self._ttls = MappingProxyType(dict(ttls))

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "TTLPolicy":
        return cls({
            TTLClass.GEOCODING: config.cache_ttl_geocoding,
            TTLClass.POI: config.cache_ttl_poi,
            TTLClass.DERIVED_FACT: config.cache_ttl_derived_fact,
            TTLClass.TRAVEL_TIPS: config.cache_ttl_travel_tips,
            TTLClass.RECOMMENDATIONS: config.cache_ttl_recommendations,
            TTLClass.USER_SNAPSHOT: config.cache_ttl_user_snapshot,
        })

    @property
    def table(self) -> Mapping[TTLClass, int]:
        return self._ttls

    def ttl_for(self, ttl_class: TTLClass) -> int:
        return self._ttls[TTLClass(ttl_class)]

    def min_fresh_ttl(self, ttl_class: TTLClass, fraction: float) -> int:
        """Remaining TTL below which an entry of this class counts as stale."""
        if not 0 <= fraction <= 1:
            raise ValueError("fraction must be within [0, 1]")
        return int(self.ttl_for(ttl_class) * fraction)
