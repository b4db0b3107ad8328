# src/geofilter/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/geofilter/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `GEOFILTER_STORAGE_PATH`, `GEOFILTER_LOG_LEVEL`)
- an external YAML file via `GEOFILTER_CONFIG_PATH`

Design rule:
- The default city, radii and geocoding endpoints live in YAML, not in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from geofilter.core.env import load_env_file

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `geofilter.config`."""
    text = resources.files("geofilter.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "geofilter"
    log_level: str = "INFO"


class StorageSettings(BaseModel):
    path: str = ".cache/geofilter/state.json"
    location_key: str = "geofilter:location_filter"


class DefaultLocationSettings(BaseModel):
    name: str = "Damascus"
    latitude: float = Field(33.5138, ge=-90, le=90)
    longitude: float = Field(36.2765, ge=-180, le=180)
    radius_km: float = Field(25, gt=0)


class LocationSettings(BaseModel):
    default: DefaultLocationSettings = Field(default_factory=DefaultLocationSettings)
    auto_detect_radius_km: float = Field(10, gt=0)
    unbounded_radius_km: float = Field(100, gt=0)


class GeocodingSettings(BaseModel):
    base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "geofilter/0.1.0 (+https://local)"
    accept_language: str = "ar"
    timeout_seconds: float = Field(10, gt=0)
    fallback_name: str = "Current location"
    search_country_suffix: str = ""
    search_limit: int = Field(5, ge=1, le=50)
    # min_lon, min_lat, max_lon, max_lat
    search_viewbox: tuple[float, float, float, float] | None = None


class PickerSettings(BaseModel):
    radius_min_km: float = Field(1, gt=0)
    radius_max_km: float = Field(200, gt=0)
    min_zoom: float = 5
    max_zoom: float = 18
    circle_fraction: float = Field(0.35, gt=0, le=1)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    picker: PickerSettings = Field(default_factory=PickerSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_env_file()
    data = dict(data)
    storage_path = os.getenv("GEOFILTER_STORAGE_PATH")
    if storage_path:
        data.setdefault("storage", {})["path"] = storage_path

    log_level = os.getenv("GEOFILTER_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    base_url = os.getenv("GEOFILTER_GEOCODING_BASE_URL")
    if base_url:
        data.setdefault("geocoding", {})["base_url"] = base_url

    user_agent = os.getenv("GEOFILTER_USER_AGENT")
    if user_agent:
        data.setdefault("geocoding", {})["user_agent"] = user_agent

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_env_file()
    config_path = os.getenv("GEOFILTER_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
