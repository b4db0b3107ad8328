"""
API routes.

Endpoints:
- GET    `/api/location-filter`: current filter (what "searching near X" shows).
- PUT    `/api/location-filter`: replace the filter (name, coordinates, radius).
- DELETE `/api/location-filter`: reset to the default filter.
- GET    `/api/location-filter/bbox`: query pre-filter box (`null` when unbounded).
- GET    `/api/location-filter/contains`: exact in-radius check for one point.
- GET    `/api/geocode/search`, `/api/geocode/reverse`: location picker lookups.
- GET    `/api/map/zoom`: radius -> map zoom for the picker overlay.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, HTTPException, Query, Request

from geofilter.config.settings import Settings
from geofilter.core import zoom
from geofilter.domain.models import (
    BoundingBoxOut,
    ContainsOut,
    Coordinates,
    LocationFilterOut,
    LocationFilterUpdate,
    PlaceCandidate,
)
from geofilter.geocoding.nominatim import GeocodingError, NominatimClient
from geofilter.location.store import LocationFilterStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _store(request: Request) -> LocationFilterStore:
    return request.app.state.store


def _geocoder(request: Request) -> NominatimClient:
    return request.app.state.geocoder


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _filter_out(store: LocationFilterStore) -> LocationFilterOut:
    current = store.get()
    return LocationFilterOut(
        name=current.name,
        latitude=current.coordinates.latitude,
        longitude=current.coordinates.longitude,
        radius_km=current.radius_km,
        is_active=store.is_active,
        has_custom_location=store.has_custom_location,
        is_loading=store.is_loading,
    )


@router.get("/api/location-filter", response_model=LocationFilterOut)
def get_location_filter(request: Request) -> LocationFilterOut:
    return _filter_out(_store(request))


@router.put("/api/location-filter", response_model=LocationFilterOut)
async def put_location_filter(request: Request, body: LocationFilterUpdate) -> LocationFilterOut:
    """Replace the active filter; persistence happens in the background."""
    store = _store(request)
    try:
        store.update(body.name, (body.latitude, body.longitude), body.radius_km)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e
    return _filter_out(store)


@router.delete("/api/location-filter", response_model=LocationFilterOut)
async def delete_location_filter(request: Request) -> LocationFilterOut:
    store = _store(request)
    store.clear()
    return _filter_out(store)


@router.get("/api/location-filter/bbox", response_model=BoundingBoxOut | None)
def get_bounding_box(request: Request) -> BoundingBoxOut | None:
    box = _store(request).bounding_box()
    return BoundingBoxOut.from_box(box) if box is not None else None


@router.get("/api/location-filter/contains", response_model=ContainsOut)
def get_contains(
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
) -> ContainsOut:
    return ContainsOut(latitude=lat, longitude=lon, within_radius=_store(request).is_within_radius(lat, lon))


@router.get("/api/geocode/search", response_model=list[PlaceCandidate])
async def get_geocode_search(request: Request, q: str = Query(..., max_length=200)) -> list[PlaceCandidate]:
    try:
        return await _geocoder(request).search(q)
    except (httpx.HTTPError, GeocodingError) as e:
        logger.warning("Place search failed: %s", e)
        raise HTTPException(
            status_code=502,
            detail={"code": "GEOCODING_ERROR", "message": str(e)},
        ) from e


@router.get("/api/geocode/reverse")
async def get_geocode_reverse(
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
) -> dict:
    """Return a place name; falls back to the placeholder name when the lookup fails."""
    settings = _settings(request)
    try:
        name = await _geocoder(request).reverse(lat, lon)
        fallback = False
    except (httpx.HTTPError, GeocodingError) as e:
        logger.warning("Reverse geocode failed: %s", e)
        name = settings.geocoding.fallback_name
        fallback = True
    coords = Coordinates(latitude=lat, longitude=lon)
    return {"name": name, "coordinates": coords.model_dump(), "fallback": fallback}


@router.get("/api/map/zoom")
def get_map_zoom(
    request: Request,
    radius_km: float = Query(..., gt=0),
    lat: float = Query(..., ge=-89.9, le=89.9),
    width: float = Query(390, gt=0),
    height: float = Query(600, gt=0),
) -> dict:
    """Zoom level at which the picker's circle overlay spans `radius_km`."""
    picker = _settings(request).picker
    radius = zoom.clamp_radius(radius_km, min_km=picker.radius_min_km, max_km=picker.radius_max_km)
    px = zoom.circle_radius_px(width, height, fraction=picker.circle_fraction)
    return {
        "radius_km": radius,
        "zoom": zoom.clamp_zoom(zoom.zoom_for_radius(radius, lat, px), min_zoom=picker.min_zoom, max_zoom=picker.max_zoom),
        "max_zoom": zoom.max_zoom_for(lat, px, min_zoom=picker.min_zoom, max_zoom=picker.max_zoom),
    }
