"""
Domain models (Pydantic).

These types are the contract between the location filter and its collaborators:
- `Coordinates` and `LocationFilter`: the filter state and its persisted JSON layout
- `PlaceCandidate`: one forward-geocoding hit shown in the location picker
- `LocationFilterUpdate` / `BoundingBoxOut` / `ContainsOut`: API payloads

The persisted record is `{"name", "coordinates": {"latitude", "longitude"}, "radiusKm"}`.
Validation is strict (no string->number coercion, no extra keys) because a record
that does not match exactly must be treated as absent.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from geofilter.core.geo import BoundingBox


class Coordinates(BaseModel):
    """A geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude: float = Field(..., ge=-90, le=90, strict=True, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, strict=True, allow_inf_nan=False)


class LocationFilter(BaseModel):
    """The active geographic filter: a named center and a radius in km."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: str = Field(..., min_length=1, strict=True)
    coordinates: Coordinates
    radius_km: float = Field(..., alias="radiusKm", gt=0, strict=True, allow_inf_nan=False)

    @field_validator("name")
    @classmethod
    def _reject_blank_name(cls, name: str) -> str:
        if not name.strip():
            raise ValueError("name must not be blank")
        return name

    def to_json(self) -> str:
        """Serialize to the persisted layout."""
        return self.model_dump_json(by_alias=True)


class PlaceCandidate(BaseModel):
    """A place returned by a forward search."""

    place_id: str
    display_name: str
    coordinates: Coordinates

    @property
    def short_name(self) -> str:
        return self.display_name.split(",")[0].strip() or self.display_name


class LocationFilterUpdate(BaseModel):
    """Request body for replacing the location filter."""

    name: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(..., gt=0)


class LocationFilterOut(BaseModel):
    name: str
    latitude: float
    longitude: float
    radius_km: float
    is_active: bool
    has_custom_location: bool
    is_loading: bool


class BoundingBoxOut(BaseModel):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @classmethod
    def from_box(cls, box: BoundingBox) -> "BoundingBoxOut":
        return cls(min_lat=box.min_lat, max_lat=box.max_lat, min_lon=box.min_lon, max_lon=box.max_lon)


class ContainsOut(BaseModel):
    latitude: float
    longitude: float
    within_radius: bool
