"""
Listing-query side of the location filter.

Listing screens (home, search, category) fetch rows from a PostgREST-style backend:
- `bounding_box_filters()` turns the store's box into `column=gte.x` / `column=lte.y`
  query params so the backend discards far-away rows cheaply,
- `filter_nearby()` applies the exact radius predicate to whatever came back.

The box is only a pre-filter (it over-approximates the circle and does not wrap at
the antimeridian), so the post-filter uses the exact distance alone.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from geofilter.core.geo import BoundingBox
from geofilter.location.store import LocationFilterStore

T = TypeVar("T")


def bounding_box_filters(
    box: BoundingBox | None,
    *,
    lat_column: str = "location_lat",
    lon_column: str = "location_lon",
) -> list[tuple[str, str]]:
    """PostgREST range filters for `box` (empty when there is no geo constraint)."""
    if box is None:
        return []
    return [
        (lat_column, f"gte.{box.min_lat}"),
        (lat_column, f"lte.{box.max_lat}"),
        (lon_column, f"gte.{box.min_lon}"),
        (lon_column, f"lte.{box.max_lon}"),
    ]


def row_latlon(row: dict[str, Any], *, lat_key: str = "location_lat", lon_key: str = "location_lon") -> tuple[float, float] | None:
    lat = row.get(lat_key)
    lon = row.get(lon_key)
    if lat is None or lon is None:
        return None
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None


def filter_nearby(
    store: LocationFilterStore,
    rows: Iterable[T],
    *,
    get_latlon: Callable[[T], tuple[float, float] | None] = row_latlon,  # type: ignore[assignment]
) -> list[T]:
    """Keep rows inside the active radius.

    With no active filter every row is kept, including rows without coordinates;
    with an active filter such rows are dropped.
    """
    items = list(rows)
    if not store.is_active:
        return items

    out: list[T] = []
    for item in items:
        latlon = get_latlon(item)
        if latlon is None:
            continue
        if store.is_within_radius(*latlon):
            out.append(item)
    return out
