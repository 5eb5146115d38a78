"""Tests for cache key derivation — hash keys and grid keys."""

import pytest

from wayvora.integrations.overpass import build_query
from wayvora.services import cache_keys
from wayvora.utils.poi_categories import POICategory


class TestHashKeys:
    def test_deterministic(self):
        assert cache_keys.hash_key("nominatim", "paris") == cache_keys.hash_key("nominatim", "paris")

    def test_different_text(self):
        assert cache_keys.hash_key("nominatim", "paris") != cache_keys.hash_key("nominatim", "tokyo")

    def test_different_class(self):
        assert cache_keys.hash_key("nominatim", "paris") != cache_keys.hash_key("overpass", "paris")

    def test_shape(self):
        key = cache_keys.hash_key("nominatim", "paris")
        namespace, data_class, digest = key.split(":")
        assert namespace == "wayvora"
        assert data_class == "nominatim"
        assert len(digest) == 32
        int(digest, 16)

    def test_raw_text_not_normalized(self):
        assert cache_keys.hash_key("nominatim", "Paris") != cache_keys.hash_key("nominatim", "paris")

    def test_empty_text_rejected(self):
        with pytest.raises(ValueError):
            cache_keys.hash_key("nominatim", "")


class TestGridCell:
    def test_floor_not_round(self):
        assert cache_keys.grid_cell(48.8599) == "48.85"
        assert cache_keys.grid_cell(2.3522) == "2.35"

    def test_exact_boundary_stays_in_own_cell(self):
        assert cache_keys.grid_cell(0.29) == "0.29"
        assert cache_keys.grid_cell(48.86) == "48.86"

    def test_negative_values_floor_downwards(self):
        assert cache_keys.grid_cell(-9.1393) == "-9.14"
        assert cache_keys.grid_cell(-0.001) == "-0.01"

    def test_zero_has_no_sign(self):
        assert cache_keys.grid_cell(-0.0) == "0.00"
        assert cache_keys.grid_cell(0.004) == "0.00"

    def test_custom_cell_size(self):
        assert cache_keys.grid_cell(48.8566, 0.1) == "48.8"

    def test_invalid_cell_size(self):
        with pytest.raises(ValueError):
            cache_keys.grid_cell(1.0, 0)


class TestGridKeys:
    def test_format(self):
        key = cache_keys.grid_key(48.8566, 2.3522, 1500, ["museum", "cafe"])
        assert key == "wayvora:overpass:48.85,2.35:1500:cafe,museum"

    def test_category_order_independent(self):
        a = cache_keys.grid_key(48.8566, 2.3522, 1500, ["museum", "cafe", "park"])
        b = cache_keys.grid_key(48.8566, 2.3522, 1500, ["park", "museum", "cafe"])
        assert a == b

    def test_duplicate_categories_collapse(self):
        a = cache_keys.grid_key(48.8566, 2.3522, 1500, ["cafe", "cafe"])
        b = cache_keys.grid_key(48.8566, 2.3522, 1500, [POICategory.CAFE])
        assert a == b

    def test_same_cell_shares_key(self):
        a = cache_keys.grid_key(48.8566, 2.3522, 1500, ["cafe"])
        b = cache_keys.grid_key(48.8501, 2.3599, 1500, ["cafe"])
        assert a == b

    def test_neighbor_cell_differs(self):
        a = cache_keys.grid_key(48.8599, 2.3522, 1500, ["cafe"])
        b = cache_keys.grid_key(48.8600, 2.3522, 1500, ["cafe"])
        assert a != b

    def test_radius_is_part_of_key(self):
        a = cache_keys.grid_key(48.8566, 2.3522, 1000, ["cafe"])
        b = cache_keys.grid_key(48.8566, 2.3522, 1500, ["cafe"])
        assert a != b

    def test_integral_float_radius(self):
        assert cache_keys.grid_key(1.0, 1.0, 1500.0, ["cafe"]).endswith(":1500:cafe")

    @pytest.mark.parametrize("lat,lng", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_out_of_range(self, lat, lng):
        with pytest.raises(ValueError):
            cache_keys.grid_key(lat, lng, 1500, ["cafe"])

    def test_empty_categories(self):
        with pytest.raises(ValueError):
            cache_keys.grid_key(48.8566, 2.3522, 1500, [])

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            cache_keys.grid_key(48.8566, 2.3522, 1500, ["casino"])

    def test_non_positive_radius(self):
        with pytest.raises(ValueError):
            cache_keys.grid_key(48.8566, 2.3522, 0, ["cafe"])


class TestExtraction:
    def test_recovers_generated_query(self):
        query = build_query(48.8566, 2.3522, 1500, ["park", "cafe"])
        params = cache_keys.extract_grid_params(query.text)
        assert params is not None
        assert params.lat == 48.8566
        assert params.lng == 2.3522
        assert params.radius == 1500
        assert params.categories == (POICategory.CAFE, POICategory.PARK)

    def test_text_key_matches_structured_key(self):
        query = build_query(35.6762, 139.6503)
        assert cache_keys.poi_key_for_text(query.text) == query.cache_key(0.01)

    def test_unrecognized_text(self):
        assert cache_keys.extract_grid_params('[out:json];node["name"="Louvre"];out;') is None
        assert cache_keys.extract_grid_params("") is None

    def test_unknown_tag(self):
        text = 'node["amenity"="bank"](around:500,48.85,2.35);'
        assert cache_keys.extract_grid_params(text) is None

    def test_disagreeing_origins(self):
        text = (
            'node["amenity"="cafe"](around:500,48.85,2.35);'
            'node["amenity"="restaurant"](around:500,40.71,-74.00);'
        )
        assert cache_keys.extract_grid_params(text) is None

    def test_fallback_is_hash_key(self):
        text = '[out:json];node["name"="Louvre"];out;'
        assert cache_keys.poi_key_for_text(text) == cache_keys.hash_key("overpass", text)

    def test_surrounding_whitespace_ignored(self):
        query = build_query(48.8566, 2.3522, 1500, ["cafe"])
        assert cache_keys.poi_key_for_text(f"\n{query.text}\n") == query.cache_key(0.01)

    def test_partial_category_not_merged(self):
        text = build_query(48.8566, 2.3522, 1500, ["attraction"]).text.replace(
            '  node["tourism"="attraction"](around:1500,48.856600,2.352200);\n', "",
        )
        assert 'node["tourism"="viewpoint"]' in text
        assert cache_keys.extract_grid_params(text) is None
        assert cache_keys.poi_key_for_text(text) == cache_keys.hash_key("overpass", text)

    def test_short_hand_query_not_merged(self):
        text = '[out:json];(node["tourism"="viewpoint"](around:1500,48.8566,2.3522););out body;'
        assert cache_keys.poi_key_for_text(text) != build_query(48.8566, 2.3522, 1500, ["attraction"]).cache_key(0.01)

    def test_extra_filter_not_merged(self):
        text = build_query(48.8566, 2.3522, 1500, ["cafe", "restaurant"]).text.replace(
            'node["amenity"="restaurant"]', 'node["amenity"="restaurant"]["cuisine"="italian"]',
        )
        assert cache_keys.extract_grid_params(text) is None

    def test_different_output_clause_not_merged(self):
        text = build_query(48.8566, 2.3522, 1500, ["cafe"]).text.replace("out body center 30;", "out count;")
        assert cache_keys.extract_grid_params(text) is None

    def test_different_element_type_not_merged(self):
        text = build_query(48.8566, 2.3522, 1500, ["restaurant"]).text.replace(
            'node["amenity"="restaurant"]', 'way["amenity"="restaurant"]',
        )
        assert cache_keys.extract_grid_params(text) is None

    def test_fractional_radius_not_merged(self):
        text = build_query(48.8566, 2.3522, 1500, ["cafe"]).text.replace("around:1500,", "around:1500.5,")
        assert cache_keys.extract_grid_params(text) is None

    @pytest.mark.parametrize("lat,lng", [(0.00001, 2.3522), (-0.00001, -0.00002), (48.85661234, 2.35229999)])
    def test_small_and_precise_coordinates(self, lat, lng):
        query = build_query(lat, lng, 1500, ["cafe"])
        assert "e-" not in query.text
        params = cache_keys.extract_grid_params(query.text)
        assert params is not None
        assert (params.lat, params.lng) == (query.lat, query.lng)
        assert cache_keys.poi_key_for_text(query.text) == query.cache_key(0.01)


class TestNamedKeys:
    def test_geocode_key_normalizes(self):
        assert cache_keys.geocode_key("  Paris,   FRANCE ") == cache_keys.geocode_key("paris, france")

    def test_geocode_key_includes_limit(self):
        assert cache_keys.geocode_key("paris", 5) != cache_keys.geocode_key("paris", 1)

    def test_geocode_key_namespace(self):
        assert cache_keys.geocode_key("paris").startswith("wayvora:nominatim:")

    def test_user_keys(self):
        assert cache_keys.user_keys("42") == [
            "wayvora:passport:42",
            "wayvora:stamps:42",
            "wayvora:badges:42",
        ]

    def test_neighborhood_key(self):
        key = cache_keys.neighborhood_fact_key("Paris", " Le  Marais")
        assert key == "wayvora:ai:neighborhood:paris:le marais"

    def test_travel_tips_key(self):
        key = cache_keys.travel_tips_key("Musée du Louvre", "Museum")
        assert key == "wayvora:ai:tips:museum:musée du louvre"

    def test_reverse_key_precision(self):
        assert cache_keys.reverse_key(48.8566, 2.3522) == cache_keys.reverse_key(48.85660001, 2.35220001)
        assert cache_keys.reverse_key(48.8566, 2.3522, 18) != cache_keys.reverse_key(48.8566, 2.3522, 10)

    def test_recommendations_key_order_of_dict_fields(self):
        a = cache_keys.recommendations_key([{"name": "Louvre", "type": "museum"}], "art")
        b = cache_keys.recommendations_key([{"type": "museum", "name": "Louvre"}], "art")
        assert a == b

    def test_namespace_pattern(self):
        assert cache_keys.namespace_pattern() == "wayvora:*"
        assert cache_keys.namespace_pattern("overpass") == "wayvora:overpass:*"
