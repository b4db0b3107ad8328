"""
Radius <-> map zoom conversion (Web Mercator).

The location picker draws the search radius as a fixed-size circle overlay on top
of a slippy map. Changing the radius therefore means changing the zoom level so
that the circle covers the requested distance.
"""

from __future__ import annotations

import math

# Ground resolution (meters per pixel) of a 256px tile at zoom 0 on the equator.
EQUATOR_METERS_PER_PIXEL = 156543.03392

MIN_ZOOM = 5.0
MAX_ZOOM = 18.0
RADIUS_MIN_KM = 1.0
RADIUS_MAX_KM = 200.0


def circle_radius_px(width: float, height: float, *, fraction: float = 0.35) -> float:
    """Pixel radius of the overlay circle for a map viewport."""
    return min(float(width), float(height)) * fraction


def meters_per_pixel(zoom: float, lat: float) -> float:
    return EQUATOR_METERS_PER_PIXEL * math.cos(math.radians(lat)) / (2 ** zoom)


def radius_at_zoom(zoom: float, lat: float, circle_px: float) -> float:
    """Return the radius (km) the overlay circle covers at `zoom`."""
    return circle_px * meters_per_pixel(zoom, lat) / 1000


def zoom_for_radius(radius_km: float, lat: float, circle_px: float) -> float:
    """Return the (fractional) zoom at which the overlay circle covers `radius_km`."""
    if radius_km <= 0:
        raise ValueError("radius_km must be > 0")
    cos_lat = math.cos(math.radians(lat))
    return math.log2(circle_px * EQUATOR_METERS_PER_PIXEL * cos_lat / (radius_km * 1000))


def clamp_zoom(zoom: float, *, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    return min(max_zoom, max(min_zoom, zoom))


def max_zoom_for(lat: float, circle_px: float, *, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    """Deepest useful zoom: the one where the circle shows a 1 km radius."""
    return clamp_zoom(zoom_for_radius(1.0, lat, circle_px), min_zoom=min_zoom, max_zoom=max_zoom)


def clamp_radius(radius_km: float, *, min_km: float = RADIUS_MIN_KM, max_km: float = RADIUS_MAX_KM) -> float:
    """Clamp a slider value to the picker's radius range."""
    return min(max_km, max(min_km, float(radius_km)))
