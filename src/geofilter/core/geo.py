from __future__ import annotations
from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt

"""
Geospatial helpers.

A tiny geometry layer for radius filtering: great-circle distance, a rectangular
pre-filter box and the "is the radius small enough to filter at all" predicate.
No GIS dependencies.
"""

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.32
UNBOUNDED_RADIUS_KM = 100.0
POLE_EPSILON_KM = 1e-9


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned lat/lon rectangle used as a cheap pre-filter."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def as_dict(self) -> dict[str, float]:
        return {
            "minLat": self.min_lat,
            "maxLat": self.max_lat,
            "minLon": self.min_lon,
            "maxLon": self.max_lon,
        }


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute great-circle distance in kilometers (Haversine)."""
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)

    h = sin(dlat / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlon / 2) ** 2
    # Rounding can push h slightly outside [0, 1] near antipodes.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * atan2(sqrt(h), sqrt(1 - h))


def bounding_box(lat: float, lon: float, radius_km: float) -> BoundingBox:
    """Return a box that over-approximates the circle of `radius_km` around (lat, lon).

    The box is only a pre-filter: callers still apply `distance_km` for the final
    inclusion decision.
    """
    lat_delta = radius_km / KM_PER_DEGREE_LAT

    # Degrees of longitude shrink with latitude. At the poles cos() only reaches ~6e-17
    # in floating point, so the pole is detected by latitude and a small epsilon.
    km_per_degree_lon = KM_PER_DEGREE_LAT * cos(radians(lat))
    if abs(lat) < 90 and km_per_degree_lon > POLE_EPSILON_KM:
        lon_delta = radius_km / km_per_degree_lon
    else:
        lon_delta = radius_km / KM_PER_DEGREE_LAT

    return BoundingBox(
        min_lat=lat - lat_delta,
        max_lat=lat + lat_delta,
        min_lon=lon - lon_delta,
        max_lon=lon + lon_delta,
    )


def is_filter_active(radius_km: float, *, unbounded_km: float = UNBOUNDED_RADIUS_KM) -> bool:
    """Return False when the radius is large enough to mean "no geographic restriction"."""
    return radius_km < unbounded_km
