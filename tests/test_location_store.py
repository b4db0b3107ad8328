import asyncio
import json
import random

import pytest

from geofilter.config.settings import get_settings
from geofilter.core.geo import distance_km
from geofilter.core.storage import JsonFileStore, MemoryStore
from geofilter.domain.models import Coordinates, LocationFilter
from geofilter.location.store import LocationFilterStore

KEY = get_settings().storage.location_key


class _BrokenStore:
    """Every call fails, like a full disk or corrupted storage backend."""

    async def get(self, key):
        raise OSError("read failed")

    async def set(self, key, value):
        raise OSError("write failed")

    async def remove(self, key):
        raise OSError("remove failed")


def _loaded_store(kv=None) -> LocationFilterStore:
    store = LocationFilterStore(kv if kv is not None else MemoryStore(), get_settings())
    asyncio.run(store.load())
    return store


def test_default_filter_is_damascus_25km():
    store = LocationFilterStore(MemoryStore(), get_settings())
    current = store.get()
    assert store.is_loading is True
    assert current.name == "Damascus"
    assert (current.coordinates.latitude, current.coordinates.longitude) == (33.5138, 36.2765)
    assert current.radius_km == 25
    assert store.has_custom_location is False


def test_load_without_record_keeps_default():
    store = _loaded_store()
    assert store.is_loading is False
    assert store.has_custom_location is False
    assert store.get() == store.default


def test_load_restores_valid_record():
    record = {"name": "حلب", "coordinates": {"latitude": 36.2021, "longitude": 37.1343}, "radiusKm": 15}
    store = _loaded_store(MemoryStore({KEY: json.dumps(record, ensure_ascii=False)}))
    assert store.has_custom_location is True
    assert store.get().name == "حلب"
    assert store.get().radius_km == 15


@pytest.mark.parametrize(
    "raw",
    [
        json.dumps({"name": "X"}),
        json.dumps({"name": "", "coordinates": {"latitude": 1, "longitude": 2}, "radiusKm": 5}),
        json.dumps({"name": "X", "coordinates": {"latitude": 1, "longitude": 2}, "radiusKm": 0}),
        json.dumps({"name": "X", "coordinates": {"latitude": 1, "longitude": 2}, "radiusKm": "5"}),
        json.dumps({"name": "X", "coordinates": {"latitude": 91, "longitude": 2}, "radiusKm": 5}),
        json.dumps({"name": "X", "coordinates": {"latitude": 1}, "radiusKm": 5}),
        json.dumps({"name": "X", "coordinates": {"latitude": 1, "longitude": 2}, "radiusKm": 5, "v": 2}),
        json.dumps({"name": "X", "coordinates": {"latitude": 1, "longitude": 2}, "radius": 5}),
        json.dumps(["X", 1, 2, 5]),
        "not json",
        "",
    ],
)
def test_malformed_record_falls_back_to_default(raw):
    store = _loaded_store(MemoryStore({KEY: raw}))
    assert store.is_loading is False
    assert store.has_custom_location is False
    assert store.get().name == "Damascus"


def test_read_failure_falls_back_to_default():
    store = _loaded_store(_BrokenStore())
    assert store.is_loading is False
    assert store.has_custom_location is False
    assert store.get() == store.default


def test_load_runs_once_even_when_called_concurrently():
    calls = []

    class _CountingStore(MemoryStore):
        async def get(self, key):
            calls.append(key)
            await asyncio.sleep(0)
            return await super().get(key)

    store = LocationFilterStore(_CountingStore(), get_settings())

    async def scenario():
        await asyncio.gather(store.load(), store.load(), store.wait_loaded())
        await store.load()

    asyncio.run(scenario())
    assert calls == [KEY]


def test_update_is_visible_immediately_and_persisted():
    kv = MemoryStore()
    store = _loaded_store(kv)

    async def scenario():
        updated = store.update("Aleppo", Coordinates(latitude=36.2, longitude=37.13), 30)
        # Visible before the background write had a chance to run.
        assert store.get() == updated
        assert store.has_custom_location is True
        await store.flush()

    asyncio.run(scenario())
    assert store.get() == LocationFilter(
        name="Aleppo", coordinates=Coordinates(latitude=36.2, longitude=37.13), radius_km=30
    )
    saved = json.loads(kv.snapshot()[KEY])
    assert saved == {"name": "Aleppo", "coordinates": {"latitude": 36.2, "longitude": 37.13}, "radiusKm": 30.0}


def test_update_without_running_loop_persists_inline():
    kv = MemoryStore()
    store = _loaded_store(kv)
    store.update("Homs", (34.73, 36.71), 12)
    assert KEY in kv.snapshot()
    assert store.get().name == "Homs"


def test_update_accepts_tuple_coordinates_and_rejects_invalid_input():
    store = _loaded_store()
    store.update("Homs", (34.73, 36.71), 12)
    assert store.get().coordinates == Coordinates(latitude=34.73, longitude=36.71)

    for name, coords, radius in [("", (1, 2), 5), ("X", (1, 2), 0), ("X", (95, 2), 5), ("X", (1, 2), -3)]:
        with pytest.raises(ValueError):
            store.update(name, coords, radius)
    assert store.get().name == "Homs"


def test_persisted_filter_survives_a_new_store():
    kv = MemoryStore()
    _loaded_store(kv).update("Latakia", (35.52, 35.78), 20)
    store = _loaded_store(kv)
    assert store.has_custom_location is True
    assert store.get().name == "Latakia"


def test_corrupt_state_file_is_replaced_by_the_next_update(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{truncated", encoding="utf-8")

    async def scenario():
        store = LocationFilterStore(JsonFileStore(path), get_settings())
        await store.load()
        assert store.get() == store.default
        store.update("Homs", (34.73, 36.71), 12)
        await store.flush()

    asyncio.run(scenario())

    reloaded = _loaded_store(JsonFileStore(path))
    assert reloaded.has_custom_location is True
    assert reloaded.get().name == "Homs"
    assert reloaded.get().radius_km == 12


def test_write_failure_keeps_in_memory_value(caplog):
    store = LocationFilterStore(_BrokenStore(), get_settings())

    async def scenario():
        await store.load()
        store.update("Tartus", (34.89, 35.89), 8)
        await store.flush()
        store.clear()
        await store.flush()

    with caplog.at_level("WARNING"):
        asyncio.run(scenario())
    assert store.get() == store.default
    assert "save location filter failed" in caplog.text
    assert "remove location filter failed" in caplog.text


def test_write_failure_does_not_roll_back_update():
    store = _loaded_store(_BrokenStore())

    async def scenario():
        store.update("Tartus", (34.89, 35.89), 8)
        await store.flush()

    asyncio.run(scenario())
    assert store.get().name == "Tartus"
    assert store.has_custom_location is True


def test_persist_returns_a_result():
    store = _loaded_store(_BrokenStore())
    result = asyncio.run(store.persist(store.default))
    assert result.ok is False
    assert isinstance(result.error, OSError)

    ok = asyncio.run(_loaded_store().persist(None))
    assert ok.ok is True


def test_clear_resets_to_default_and_removes_record():
    kv = MemoryStore()
    store = _loaded_store(kv)
    store.update("Aleppo", (36.2, 37.13), 30)
    store.clear()
    assert store.get() == store.default
    assert store.get().name == "Damascus"
    assert store.has_custom_location is False
    assert KEY not in kv.snapshot()


def test_update_during_load_is_not_overwritten_by_the_saved_record():
    record = {"name": "Old", "coordinates": {"latitude": 1.0, "longitude": 2.0}, "radiusKm": 5}

    class _SlowStore(MemoryStore):
        release: asyncio.Event

        async def get(self, key):
            await self.release.wait()
            return await super().get(key)

    kv = _SlowStore({KEY: json.dumps(record)})
    store = LocationFilterStore(kv, get_settings())

    async def scenario():
        kv.release = asyncio.Event()
        loading = asyncio.ensure_future(store.load())
        await asyncio.sleep(0)
        store.update("New", (3.0, 4.0), 6)
        kv.release.set()
        await loading
        await store.flush()

    asyncio.run(scenario())
    assert store.get().name == "New"


def test_subscribers_see_every_change_and_can_unsubscribe():
    store = _loaded_store()
    seen = []
    unsubscribe = store.subscribe(lambda f: seen.append(f.name))

    def broken(_):
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    store.update("Hama", (35.13, 36.75), 10)
    store.clear()
    unsubscribe()
    store.update("Idlib", (35.93, 36.63), 10)
    assert seen == ["Hama", "Damascus"]


def test_is_within_radius_matches_direct_distance():
    store = _loaded_store()
    rng = random.Random(2024)
    for _ in range(40):
        center = (rng.uniform(30, 38), rng.uniform(34, 43))
        radius = rng.uniform(1, 99)
        store.update("P", center, radius)
        point = (center[0] + rng.uniform(-1, 1), center[1] + rng.uniform(-1, 1))
        expected = distance_km(*center, *point) <= radius
        assert store.is_within_radius(*point) is expected


def test_unbounded_radius_includes_everything_and_has_no_box():
    store = _loaded_store()
    store.update("Syria", (34.8, 38.9), 100)
    assert store.is_active is False
    assert store.bounding_box() is None
    rng = random.Random(5)
    for _ in range(20):
        assert store.is_within_radius(rng.uniform(-90, 90), rng.uniform(-180, 180)) is True


def test_bounding_box_follows_current_filter():
    store = _loaded_store()
    box = store.bounding_box()
    assert box is not None
    assert box.min_lat < 33.5138 < box.max_lat
    store.update("Aleppo", (36.2, 37.13), 10)
    box2 = store.bounding_box()
    assert box2.min_lat < 36.2 < box2.max_lat
    assert (box2.max_lat - box2.min_lat) < (box.max_lat - box.min_lat)
