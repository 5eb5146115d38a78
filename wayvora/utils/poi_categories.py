"""POI categories and the Overpass selectors each one expands to."""

from enum import Enum


class POICategory(str, Enum):
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    MUSEUM = "museum"
    PARK = "park"
    ATTRACTION = "attraction"


# (element type, tag key, tag value) per category, in query order
CATEGORY_SELECTORS: dict[POICategory, list[tuple[str, str, str]]] = {
    POICategory.RESTAURANT: [("node", "amenity", "restaurant")],
    POICategory.CAFE: [("node", "amenity", "cafe")],
    POICategory.MUSEUM: [
        ("node", "tourism", "museum"),
        ("way", "tourism", "museum"),
    ],
    POICategory.PARK: [
        ("node", "leisure", "park"),
        ("way", "leisure", "park"),
    ],
    POICategory.ATTRACTION: [
        ("node", "tourism", "attraction"),
        ("node", "tourism", "viewpoint"),
    ],
}

# Reverse lookup used when recovering categories from generated query text
TAG_TO_CATEGORY: dict[tuple[str, str], POICategory] = {
    (key, value): category
    for category, selectors in CATEGORY_SELECTORS.items()
    for _, key, value in selectors
}

ALL_CATEGORIES: tuple[POICategory, ...] = tuple(POICategory)

RESULT_LIMIT = 30


def render_poi_query(
    lat: float,
    lng: float,
    radius: int,
    categories: "tuple[POICategory, ...]",
) -> str:
    """Overpass QL for a POI search circle.

    Coordinates use fixed six-decimal precision so the text never carries an
    exponent and always parses back to the same origin.
    """
    around = f"(around:{radius},{lat:.6f},{lng:.6f});"
    clauses = [
        f'{element}["{key}"="{value}"]{around}'
        for category in categories
        for element, key, value in CATEGORY_SELECTORS[category]
    ]
    body = "\n  ".join(clauses)
    return (
        "[out:json][timeout:25];\n"
        "(\n"
        f"  {body}\n"
        ");\n"
        f"out body center {RESULT_LIMIT};\n"
        ">;\n"
        "out skel qt;"
    )


def parse_category(value: "str | POICategory") -> POICategory:
    """Coerce a category name to ``POICategory``. Raises ValueError if unknown."""
    if isinstance(value, POICategory):
        return value
    try:
        return POICategory(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown POI category: {value!r}") from None
