"""
One-shot automatic location detection.

On first launch (no saved filter) the app tries to center the filter on the device:
permission -> current position -> reverse-geocoded name -> `store.update(..., 10 km)`.

Rules:
- never overrides a saved or previously detected filter (`has_custom_location`),
- runs at most once per detector, even when `run()` is called concurrently,
- never raises: a refused permission, a missing position or a failed lookup all
  leave the store as it was (a failed lookup only costs the pretty name).
"""

from __future__ import annotations

import logging
from enum import Enum

from geofilter.config.settings import Settings, get_settings
from geofilter.core.result import Err, attempt, recover
from geofilter.geocoding.nominatim import ReverseGeocoder
from geofilter.location.position import Accuracy, PermissionStatus, PositionProvider
from geofilter.location.store import LocationFilterStore

logger = logging.getLogger(__name__)


class DetectorState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    DETECTING = "detecting"
    DONE = "done"


class DetectionOutcome(str, Enum):
    DETECTED = "detected"
    SKIPPED_CUSTOM_LOCATION = "skipped_custom_location"
    SKIPPED_ALREADY_RAN = "skipped_already_ran"
    PERMISSION_DENIED = "permission_denied"
    FAILED = "failed"


class AutoLocationDetector:
    def __init__(
        self,
        store: LocationFilterStore,
        positions: PositionProvider,
        geocoder: ReverseGeocoder,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self._store = store
        self._positions = positions
        self._geocoder = geocoder
        self._radius_km = settings.location.auto_detect_radius_km
        self._fallback_name = settings.geocoding.fallback_name
        self._attempted = False
        self._state = DetectorState.IDLE
        self._outcome: DetectionOutcome | None = None

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def outcome(self) -> DetectionOutcome | None:
        """Outcome of the detection attempt (None until one finished)."""
        return self._outcome

    async def run(self) -> DetectionOutcome:
        if self._store.is_loading:
            self._state = DetectorState.WAITING
            await self._store.wait_loaded()

        # No await between the checks and setting the latch.
        if self._store.has_custom_location:
            if not self._attempted:
                self._state = DetectorState.DONE
            return DetectionOutcome.SKIPPED_CUSTOM_LOCATION
        if self._attempted:
            return DetectionOutcome.SKIPPED_ALREADY_RAN
        self._attempted = True
        self._state = DetectorState.DETECTING

        try:
            outcome = await self._detect()
        except Exception:
            logger.exception("Auto location detection failed")
            outcome = DetectionOutcome.FAILED
        self._outcome = outcome
        self._state = DetectorState.DONE
        return outcome

    async def _detect(self) -> DetectionOutcome:
        permission = await attempt("request location permission", self._positions.request_permission)
        if isinstance(permission, Err):
            recover(permission, None, log=logger)
            return DetectionOutcome.FAILED
        if permission.value != PermissionStatus.GRANTED:
            logger.info("Location permission %s, keeping %r", permission.value, self._store.get().name)
            return DetectionOutcome.PERMISSION_DENIED

        position = await attempt(
            "get current position",
            lambda: self._positions.get_current_position(Accuracy.BALANCED),
        )
        coords = recover(position, None, log=logger)
        if coords is None:
            return DetectionOutcome.FAILED

        name = await attempt(
            "reverse geocode",
            lambda: self._geocoder.lookup(coords.latitude, coords.longitude),
        )
        place_name = recover(name, self._fallback_name, log=logger)
        if not isinstance(place_name, str) or not place_name.strip():
            place_name = self._fallback_name

        # The user may have picked a location while the lookup was in flight.
        if self._store.has_custom_location:
            logger.info("Location chosen during detection, keeping %r", self._store.get().name)
            return DetectionOutcome.SKIPPED_CUSTOM_LOCATION

        self._store.update(place_name, coords, self._radius_km)
        logger.info(
            "Auto-detected location: %s (%.4f, %.4f)", place_name, coords.latitude, coords.longitude
        )
        return DetectionOutcome.DETECTED
