"""Tests for the TTL policy table."""

import pytest

from wayvora.config import Settings
from wayvora.services.ttl_policy import TTLClass, TTLPolicy

from conftest import TTLS


class TestDefaults:
    def test_settings_table(self):
        policy = TTLPolicy.from_settings(Settings(_env_file=None))
        assert policy.ttl_for(TTLClass.GEOCODING) == 86400      # 24h
        assert policy.ttl_for(TTLClass.POI) == 3600             # 1h
        assert policy.ttl_for(TTLClass.DERIVED_FACT) == 604800  # 7 days
        assert policy.ttl_for(TTLClass.TRAVEL_TIPS) == 3600
        assert policy.ttl_for(TTLClass.RECOMMENDATIONS) == 1800
        assert policy.ttl_for(TTLClass.USER_SNAPSHOT) == 300

    def test_geocoding_outlives_poi(self, policy):
        assert policy.ttl_for(TTLClass.GEOCODING) > policy.ttl_for(TTLClass.POI)

    def test_lookup_by_name(self, policy):
        assert policy.ttl_for("poi") == 3600


class TestValidation:
    def test_missing_class(self):
        ttls = dict(TTLS)
        del ttls[TTLClass.POI]
        with pytest.raises(ValueError, match="poi"):
            TTLPolicy(ttls)

    def test_non_positive(self):
        ttls = dict(TTLS)
        ttls[TTLClass.USER_SNAPSHOT] = 0
        with pytest.raises(ValueError):
            TTLPolicy(ttls)

    def test_table_is_read_only(self, policy):
        with pytest.raises(TypeError):
            policy.table[TTLClass.POI] = 1

    def test_source_mapping_changes_do_not_leak(self):
        ttls = dict(TTLS)
        policy = TTLPolicy(ttls)
        ttls[TTLClass.POI] = 1
        assert policy.ttl_for(TTLClass.POI) == 3600


class TestMinFreshTTL:
    def test_half_of_geocoding(self, policy):
        assert policy.min_fresh_ttl(TTLClass.GEOCODING, 0.5) == 43200

    def test_bounds(self, policy):
        assert policy.min_fresh_ttl(TTLClass.POI, 0) == 0
        assert policy.min_fresh_ttl(TTLClass.POI, 1) == 3600

    def test_out_of_range_fraction(self, policy):
        with pytest.raises(ValueError):
            policy.min_fresh_ttl(TTLClass.POI, 1.5)
