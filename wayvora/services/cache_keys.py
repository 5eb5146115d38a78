"""Cache key derivation.

Two discriminator strategies:
  - hash keys:  "wayvora:{class}:{md5 hex}" for arbitrary query text
  - grid keys:  "wayvora:overpass:{latCell},{lngCell}:{radius}:{categories}"

Grid keys snap the query origin to a fixed cell (floor, not round) so nearby
map-panning queries share one entry. A query on a cell boundary is not merged
with its neighbor cell.

Hash keys do not normalize their input. Callers canonicalize text first
(see ``normalize_place``).
"""

import hashlib
import json
import re
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Iterable, NamedTuple

from wayvora.utils.poi_categories import TAG_TO_CATEGORY, POICategory, parse_category, render_poi_query

NAMESPACE = "wayvora"
DEFAULT_CELL_SIZE = 0.01

OVERPASS = "overpass"
NOMINATIM = "nominatim"
AI = "ai"
PASSPORT = "passport"
STAMPS = "stamps"
BADGES = "badges"

DATA_CLASSES = (OVERPASS, NOMINATIM, AI, PASSPORT, STAMPS, BADGES)


class GridParams(NamedTuple):
    lat: float
    lng: float
    radius: float
    categories: tuple[POICategory, ...]


def make_key(data_class: str, *parts: str) -> str:
    """Compose ``{namespace}:{data_class}:{part}:{part}...``."""
    if not data_class:
        raise ValueError("data_class must be non-empty")
    return ":".join([NAMESPACE, data_class, *parts])


def hash_key(data_class: str, text: str) -> str:
    """Content-hash key over the raw UTF-8 bytes of ``text``."""
    if not text:
        raise ValueError("cannot derive a hash key from empty text")
    digest = hashlib.md5(text.encode("utf-8")).hexdigest()
    return make_key(data_class, digest)


def normalize_place(text: str) -> str:
    """Canonical form of a free-text place query: trimmed, lowercased, single-spaced."""
    return " ".join(text.split()).lower()


# ═══════════════ GRID KEYS ═══════════════


def _decimal(value: float | str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}") from None


def grid_cell(value: float, cell_size: float = DEFAULT_CELL_SIZE) -> str:
    """Floor ``value`` to its cell and render it with the cell's precision.

    Decimal arithmetic keeps boundary values (0.29 / 0.01) in the right cell.
    """
    cell = _decimal(cell_size)
    if cell <= 0:
        raise ValueError("cell_size must be positive")
    index = (_decimal(value) / cell).to_integral_value(rounding=ROUND_FLOOR)
    places = max(0, -cell.normalize().as_tuple().exponent)
    snapped = index * cell
    rendered = f"{snapped:.{places}f}"
    # floor(-0.0) renders as "-0.00"
    if _decimal(rendered) == 0:
        rendered = f"{Decimal(0):.{places}f}"
    return rendered


def _format_radius(radius: float) -> str:
    if radius <= 0:
        raise ValueError("radius must be positive")
    if float(radius).is_integer():
        return str(int(radius))
    return str(radius)


def sorted_categories(categories: Iterable["str | POICategory"]) -> tuple[POICategory, ...]:
    """Deduplicated categories in lexicographic order of their names."""
    parsed = {parse_category(c) for c in categories}
    if not parsed:
        raise ValueError("at least one category is required")
    return tuple(sorted(parsed, key=lambda c: c.value))


def grid_key(
    lat: float,
    lng: float,
    radius: float,
    categories: Iterable["str | POICategory"],
    cell_size: float = DEFAULT_CELL_SIZE,
) -> str:
    """Grid key for a POI search around (lat, lng)."""
    if not -90 <= lat <= 90:
        raise ValueError(f"latitude out of range: {lat}")
    if not -180 <= lng <= 180:
        raise ValueError(f"longitude out of range: {lng}")

    cats = ",".join(c.value for c in sorted_categories(categories))
    origin = f"{grid_cell(lat, cell_size)},{grid_cell(lng, cell_size)}"
    return make_key(OVERPASS, origin, _format_radius(radius), cats)


# ═══════════════ QUERY-TO-GRID EXTRACTION ═══════════════

_NUMBER = r"-?\d+(?:\.\d+)?"
_SELECTOR_RE = re.compile(
    r'(node|way|relation|nwr)\s*\[\s*"([^"]+)"\s*=\s*"([^"]+)"\s*\]\s*'
    rf"\(\s*around\s*:\s*({_NUMBER})\s*,\s*({_NUMBER})\s*,\s*({_NUMBER})\s*\)"
)


def extract_grid_params(query_text: str) -> GridParams | None:
    """Recover (origin, radius, categories) from generated Overpass QL.

    The text must be exactly what the POI query builder renders for the
    recovered parameters. Extra filters, other element types, a different
    output clause or a partial category all return None so the caller falls
    back to a hash key.
    """
    if not query_text:
        return None

    matches = _SELECTOR_RE.findall(query_text)
    if not matches:
        return None

    origins = set()
    categories = set()
    for _, tag_key, tag_value, radius, lat, lng in matches:
        category = TAG_TO_CATEGORY.get((tag_key, tag_value))
        if category is None:
            return None
        origins.add((float(radius), float(lat), float(lng)))
        categories.add(category)

    if len(origins) != 1:
        return None

    radius, lat, lng = origins.pop()
    if radius <= 0 or not radius.is_integer():
        return None
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        return None

    params = GridParams(lat, lng, int(radius), tuple(sorted(categories, key=lambda c: c.value)))
    if render_poi_query(*params) != query_text.strip():
        return None
    return params


def poi_key_for_text(query_text: str, cell_size: float = DEFAULT_CELL_SIZE) -> str:
    """POI key for raw query text: grid key when recognizable, else content hash."""
    params = extract_grid_params(query_text)
    if params is None:
        return hash_key(OVERPASS, query_text)
    return grid_key(params.lat, params.lng, params.radius, params.categories, cell_size)


# ═══════════════ NAMED KEYS ═══════════════


def geocode_key(query: str, limit: int = 5) -> str:
    return hash_key(NOMINATIM, f"search|{normalize_place(query)}|{limit}")


def reverse_key(lat: float, lng: float, zoom: int = 18) -> str:
    return hash_key(NOMINATIM, f"reverse|{lat:.6f}|{lng:.6f}|{zoom}")


def neighborhood_fact_key(city: str, neighborhood: str) -> str:
    return make_key(AI, "neighborhood", normalize_place(city), normalize_place(neighborhood))


def travel_tips_key(poi_name: str, category: str) -> str:
    return make_key(AI, "tips", category.lower(), normalize_place(poi_name)[:30])


def recommendations_key(selected_pois: list[dict], preferences: str = "") -> str:
    payload = json.dumps(selected_pois, sort_keys=True, ensure_ascii=False) + preferences
    return make_key(AI, "recs", hashlib.md5(payload.encode("utf-8")).hexdigest())


def passport_key(user_id: str) -> str:
    return make_key(PASSPORT, str(user_id))


def stamps_key(user_id: str) -> str:
    return make_key(STAMPS, str(user_id))


def badges_key(user_id: str) -> str:
    return make_key(BADGES, str(user_id))


def user_keys(user_id: str) -> list[str]:
    return [passport_key(user_id), stamps_key(user_id), badges_key(user_id)]


def namespace_pattern(data_class: str | None = None) -> str:
    """Glob pattern matching every key, or every key of one data class."""
    if data_class:
        return f"{NAMESPACE}:{data_class}:*"
    return f"{NAMESPACE}:*"
