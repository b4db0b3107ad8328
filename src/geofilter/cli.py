"""
geofilter CLI entrypoint.

For local demos and debugging without the app: inspect and change the saved
location filter, run auto-detection against a given position, and try the
geocoding lookups. State lives in the JSON file configured by `storage.path`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from geofilter.config.settings import Settings, get_settings
from geofilter.core import zoom
from geofilter.core.env import resolve_storage_path
from geofilter.core.logging import configure_logging
from geofilter.core.storage import JsonFileStore
from geofilter.domain.models import Coordinates
from geofilter.geocoding.nominatim import NominatimClient
from geofilter.location.detector import AutoLocationDetector
from geofilter.location.position import PermissionStatus, StaticPositionProvider
from geofilter.location.store import LocationFilterStore


def _print_filter(store: LocationFilterStore, as_json: bool) -> None:
    current = store.get()
    if as_json:
        payload = {
            **json.loads(current.to_json()),
            "isActive": store.is_active,
            "hasCustomLocation": store.has_custom_location,
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return
    scope = f"{current.radius_km:g} km" if store.is_active else "unbounded"
    origin = "saved" if store.has_custom_location else "default"
    print(
        f"{current.name} ({current.coordinates.latitude:.4f}, {current.coordinates.longitude:.4f})"
        f"  radius={scope}  [{origin}]"
    )


async def _open_store(settings: Settings) -> LocationFilterStore:
    store = LocationFilterStore(JsonFileStore(resolve_storage_path(settings.storage.path)), settings)
    await store.load()
    return store


async def _cmd_show(args: argparse.Namespace, settings: Settings) -> int:
    store = await _open_store(settings)
    _print_filter(store, args.json)
    return 0


async def _cmd_set(args: argparse.Namespace, settings: Settings) -> int:
    store = await _open_store(settings)
    store.update(args.name, (args.lat, args.lon), args.radius)
    await store.flush()
    _print_filter(store, args.json)
    return 0


async def _cmd_clear(args: argparse.Namespace, settings: Settings) -> int:
    store = await _open_store(settings)
    store.clear()
    await store.flush()
    _print_filter(store, args.json)
    return 0


async def _cmd_bbox(args: argparse.Namespace, settings: Settings) -> int:
    store = await _open_store(settings)
    box = store.bounding_box()
    print(json.dumps(box.as_dict() if box is not None else None, indent=2))
    return 0


async def _cmd_within(args: argparse.Namespace, settings: Settings) -> int:
    store = await _open_store(settings)
    inside = store.is_within_radius(args.lat, args.lon)
    print("yes" if inside else "no")
    return 0 if inside else 1


async def _cmd_detect(args: argparse.Namespace, settings: Settings) -> int:
    store = await _open_store(settings)
    coords = None
    if args.lat is not None and args.lon is not None:
        coords = Coordinates(latitude=args.lat, longitude=args.lon)
    permission = PermissionStatus.DENIED if args.deny else PermissionStatus.GRANTED
    detector = AutoLocationDetector(
        store,
        StaticPositionProvider(coords, permission=permission),
        NominatimClient(settings.geocoding),
        settings,
    )
    outcome = await detector.run()
    await store.flush()
    print(f"outcome: {outcome.value}")
    _print_filter(store, args.json)
    return 0


async def _cmd_search(args: argparse.Namespace, settings: Settings) -> int:
    places = await NominatimClient(settings.geocoding).search(args.query)
    if args.json:
        print(json.dumps([p.model_dump(mode="json") for p in places], ensure_ascii=False, indent=2))
        return 0
    for i, place in enumerate(places, start=1):
        c = place.coordinates
        print(f"{i:>2}. {place.short_name}  ({c.latitude:.4f}, {c.longitude:.4f})  {place.display_name}")
    return 0


async def _cmd_zoom(args: argparse.Namespace, settings: Settings) -> int:
    picker = settings.picker
    radius = zoom.clamp_radius(args.radius, min_km=picker.radius_min_km, max_km=picker.radius_max_km)
    px = zoom.circle_radius_px(args.width, args.height, fraction=picker.circle_fraction)
    z = zoom.clamp_zoom(zoom.zoom_for_radius(radius, args.lat, px), min_zoom=picker.min_zoom, max_zoom=picker.max_zoom)
    max_z = zoom.max_zoom_for(args.lat, px, min_zoom=picker.min_zoom, max_zoom=picker.max_zoom)
    print(f"radius={radius:g} km zoom={z:.2f} max_zoom={max_z:.2f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the geofilter CLI."""
    parser = argparse.ArgumentParser(prog="geofilter")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print the current location filter.")
    show.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    show.set_defaults(func=_cmd_show)

    st = sub.add_parser("set", help="Replace the location filter.")
    st.add_argument("--name", required=True)
    st.add_argument("--lat", required=True, type=float)
    st.add_argument("--lon", required=True, type=float)
    st.add_argument("--radius", required=True, type=float, help="Radius in km (>= 100 disables filtering)")
    st.add_argument("--json", action="store_true")
    st.set_defaults(func=_cmd_set)

    clr = sub.add_parser("clear", help="Reset to the default location filter.")
    clr.add_argument("--json", action="store_true")
    clr.set_defaults(func=_cmd_clear)

    bbox = sub.add_parser("bbox", help="Print the query bounding box (null when unbounded).")
    bbox.set_defaults(func=_cmd_bbox)

    within = sub.add_parser("within", help="Exit 0 if the point is inside the radius, 1 otherwise.")
    within.add_argument("--lat", required=True, type=float)
    within.add_argument("--lon", required=True, type=float)
    within.set_defaults(func=_cmd_within)

    det = sub.add_parser("detect", help="Run auto-detection with a fixed device position.")
    det.add_argument("--lat", type=float, default=None)
    det.add_argument("--lon", type=float, default=None)
    det.add_argument("--deny", action="store_true", help="Simulate a refused location permission")
    det.add_argument("--json", action="store_true")
    det.set_defaults(func=_cmd_detect)

    search = sub.add_parser("search", help="Search places by name.")
    search.add_argument("query")
    search.add_argument("--json", action="store_true")
    search.set_defaults(func=_cmd_search)

    zm = sub.add_parser("zoom", help="Map zoom level for a radius at a latitude.")
    zm.add_argument("--radius", required=True, type=float)
    zm.add_argument("--lat", required=True, type=float)
    zm.add_argument("--width", type=float, default=390)
    zm.add_argument("--height", type=float, default=600)
    zm.set_defaults(func=_cmd_zoom)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m geofilter.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(asyncio.run(func(args, get_settings())))


if __name__ == "__main__":
    raise SystemExit(main())
