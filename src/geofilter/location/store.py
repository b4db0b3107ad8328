"""
Location filter state.

`LocationFilterStore` owns the single active `LocationFilter` for a session:
- reads are synchronous and always answer from memory,
- writes apply to memory first (`apply_in_memory`) and are then persisted in the
  background (`persist`); a failed write is logged and never rolled back,
- the persisted record is loaded once on startup; anything malformed counts as absent.

Construct one store at startup and pass it to consumers; there is no module-level
instance.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

from pydantic import ValidationError

from geofilter.config.settings import Settings, get_settings
from geofilter.core import geo
from geofilter.core.result import Result, attempt, recover
from geofilter.core.storage import KeyValueStore
from geofilter.domain.models import Coordinates, LocationFilter

logger = logging.getLogger(__name__)

Listener = Callable[[LocationFilter], None]


def default_location_filter(settings: Settings) -> LocationFilter:
    d = settings.location.default
    return LocationFilter(
        name=d.name,
        coordinates=Coordinates(latitude=d.latitude, longitude=d.longitude),
        radius_km=d.radius_km,
    )


def parse_persisted(raw: str | None) -> LocationFilter | None:
    """Decode a persisted record; None for absent or malformed records."""
    if raw is None:
        return None
    try:
        return LocationFilter.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed persisted location filter (%d errors)", exc.error_count())
        return None
    except TypeError:
        logger.warning("Ignoring persisted location filter of type %s", type(raw).__name__)
        return None


def _as_coordinates(value: Coordinates | tuple[float, float]) -> Coordinates:
    if isinstance(value, Coordinates):
        return value
    lat, lon = value
    return Coordinates(latitude=lat, longitude=lon)


class LocationFilterStore:
    def __init__(self, kv: KeyValueStore, settings: Settings | None = None):
        settings = settings or get_settings()
        self._kv = kv
        self._key = settings.storage.location_key
        self._unbounded_km = settings.location.unbounded_radius_km
        self._default = default_location_filter(settings)

        self._current = self._default
        self._has_custom = False
        self._loading = True
        self._load_task: asyncio.Future[None] | None = None
        self._pending: set[asyncio.Task[Any]] = set()
        self._listeners: list[Listener] = []

    @property
    def default(self) -> LocationFilter:
        return self._default

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def has_custom_location(self) -> bool:
        return self._has_custom

    @property
    def is_active(self) -> bool:
        return geo.is_filter_active(self._current.radius_km, unbounded_km=self._unbounded_km)

    def get(self) -> LocationFilter:
        return self._current

    def current_filter(self) -> LocationFilter:
        return self._current

    # Loading

    async def load(self) -> None:
        """Restore the persisted filter. Runs once; later calls await the same load."""
        if not self._loading:
            return
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load_once())
        await self._load_task

    async def wait_loaded(self) -> None:
        await self.load()

    async def _load_once(self) -> None:
        try:
            result = await attempt("read location filter", lambda: self._kv.get(self._key))
            restored = parse_persisted(recover(result, None, log=logger))
            # An update issued while loading is newer than anything on disk.
            if restored is not None and not self._has_custom:
                self.apply_in_memory(restored, custom=True)
                logger.info("Restored location filter %r (%.0f km)", restored.name, restored.radius_km)
        finally:
            self._loading = False

    # Writes

    def apply_in_memory(self, location_filter: LocationFilter, *, custom: bool) -> None:
        """Replace the in-memory filter; this is what every read sees from now on."""
        self._current = location_filter
        self._has_custom = custom
        for listener in list(self._listeners):
            try:
                listener(location_filter)
            except Exception:
                logger.exception("Location filter listener failed")

    async def persist(self, location_filter: LocationFilter | None) -> Result[None]:
        """Best-effort durable write (`None` removes the record)."""
        if location_filter is None:
            result = await attempt("remove location filter", lambda: self._kv.remove(self._key))
        else:
            payload = location_filter.to_json()
            result = await attempt("save location filter", lambda: self._kv.set(self._key, payload))
        recover(result, None, log=logger)
        return result

    def update(
        self,
        name: str,
        coordinates: Coordinates | tuple[float, float],
        radius_km: float,
    ) -> LocationFilter:
        """Replace the whole filter now and persist it in the background.

        Raises:
            ValueError: If the name, coordinates or radius are invalid.
        """
        location_filter = LocationFilter(
            name=name, coordinates=_as_coordinates(coordinates), radius_km=radius_km
        )
        self.apply_in_memory(location_filter, custom=True)
        self._schedule(self.persist(location_filter))
        return location_filter

    def clear(self) -> LocationFilter:
        """Reset to the default filter and drop the persisted record."""
        self.apply_in_memory(self._default, custom=False)
        self._schedule(self.persist(None))
        return self._default

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous caller without an event loop: finish the write inline.
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def flush(self) -> None:
        """Wait for background persistence started so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with every new filter; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Queries

    def is_within_radius(self, lat: float, lon: float) -> bool:
        if not self.is_active:
            return True
        center = self._current.coordinates
        return geo.distance_km(center.latitude, center.longitude, lat, lon) <= self._current.radius_km

    def bounding_box(self) -> geo.BoundingBox | None:
        """Pre-filter box for remote queries, or None when no geo constraint applies."""
        if not self.is_active:
            return None
        center = self._current.coordinates
        return geo.bounding_box(center.latitude, center.longitude, self._current.radius_km)
