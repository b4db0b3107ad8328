"""
Geocoding client (OpenStreetMap Nominatim).

Two lookups back the location picker and auto-detection:
- reverse: coordinates -> a short, localized place name ("Aleppo", "حلب")
- search: free-text query -> up to N candidate places inside the country viewbox

Nominatim's usage policy expects a descriptive User-Agent and a low request rate;
the User-Agent comes from settings and every call is a single request.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from geofilter.config.settings import GeocodingSettings
from geofilter.core.http import get_json
from geofilter.domain.models import Coordinates, PlaceCandidate

logger = logging.getLogger(__name__)

# Most specific settlement first; a county is better than the raw display string.
_ADDRESS_NAME_KEYS = ("city", "town", "village", "suburb", "county")


class GeocodingError(RuntimeError):
    """Raised when a geocoding response carries no usable place name."""


class ReverseGeocoder(Protocol):
    async def lookup(self, latitude: float, longitude: float) -> str: ...


def place_name_from_reverse(payload: Any) -> str | None:
    """Pick the display name from a `/reverse` JSON payload (or None)."""
    if not isinstance(payload, dict):
        return None
    address = payload.get("address")
    if isinstance(address, dict):
        for key in _ADDRESS_NAME_KEYS:
            value = address.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    display_name = payload.get("display_name")
    if isinstance(display_name, str):
        first = display_name.split(",")[0].strip()
        if first:
            return first
    return None


class NominatimClient:
    """Reverse and forward geocoding against a Nominatim instance."""

    def __init__(self, settings: GeocodingSettings):
        self._settings = settings

    def _url(self, path: str) -> str:
        return f"{self._settings.base_url.rstrip('/')}/{path}"

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._settings.user_agent}

    async def reverse(self, latitude: float, longitude: float) -> str:
        """Return a localized place name for the coordinates.

        Raises:
            httpx.HTTPError: On transport errors, timeouts or non-2xx status codes.
            GeocodingError: If the response has no usable name field.
        """
        params = {
            "lat": f"{latitude:.6f}",
            "lon": f"{longitude:.6f}",
            "format": "json",
            "accept-language": self._settings.accept_language,
        }
        logger.info("Reverse geocoding lat=%.4f lon=%.4f", latitude, longitude)
        payload = await get_json(
            self._url("reverse"),
            params=params,
            headers=self._headers(),
            timeout_seconds=self._settings.timeout_seconds,
        )
        name = place_name_from_reverse(payload)
        if name is None:
            raise GeocodingError(f"no place name for {latitude:.4f},{longitude:.4f}")
        return name

    async def lookup(self, latitude: float, longitude: float) -> str:
        return await self.reverse(latitude, longitude)

    async def search(self, query: str) -> list[PlaceCandidate]:
        """Forward search restricted to the configured country viewbox."""
        q = query.strip()
        if not q:
            return []
        suffix = self._settings.search_country_suffix.strip()
        params: dict[str, Any] = {
            "q": f"{q},{suffix}" if suffix else q,
            "format": "json",
            "limit": self._settings.search_limit,
            "accept-language": self._settings.accept_language,
        }
        if self._settings.search_viewbox:
            params["bounded"] = 1
            params["viewbox"] = ",".join(str(v) for v in self._settings.search_viewbox)

        logger.info("Searching places for %r", q)
        payload = await get_json(
            self._url("search"),
            params=params,
            headers=self._headers(),
            timeout_seconds=self._settings.timeout_seconds,
        )
        if not isinstance(payload, list):
            raise GeocodingError("search response is not a list")

        out: list[PlaceCandidate] = []
        for row in payload:
            if not isinstance(row, dict):
                continue
            try:
                out.append(
                    PlaceCandidate(
                        place_id=str(row["place_id"]),
                        display_name=str(row["display_name"]),
                        coordinates=Coordinates(
                            latitude=float(row["lat"]),
                            longitude=float(row["lon"]),
                        ),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return out
