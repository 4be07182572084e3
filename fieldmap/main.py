"""Command line entry point: geocoding, routing, track replay and style listing."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .errors import InvalidCoordinateError
from .models import Coordinate, GeocodeResult, PositionFix, RouteResult
from .registry import MapSessionRegistry
from .surface.folium_surface import FoliumSurface
from .tracking import ReplayLocationProvider

LOGGER = logging.getLogger(__name__)

_ROUTE_MAP_ID = "route-preview"
_TRACK_MAP_ID = "track-replay"


def _setup_logging(verbose: bool = False) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


def _geocode_payload(result: GeocodeResult) -> Dict[str, Any]:
    return {
        "lon": result.coordinate.lon,
        "lat": result.coordinate.lat,
        "display_name": result.display_name,
        "address": asdict(result.address),
    }


def _route_payload(route: RouteResult) -> Dict[str, Any]:
    return {
        "distance_m": route.distance_m,
        "duration_s": route.duration_s,
        "coordinates": [list(point) for point in route.coordinates],
    }


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _cmd_geocode(registry: MapSessionRegistry, args: argparse.Namespace) -> int:
    result = registry.geocode_address(args.address)
    if result is None:
        _emit(None)
        return 1
    _emit(_geocode_payload(result))
    return 0


def _cmd_reverse(registry: MapSessionRegistry, args: argparse.Namespace) -> int:
    point = Coordinate.checked(args.lon, args.lat)
    name = registry.reverse_geocode(point)
    _emit({"lon": point.lon, "lat": point.lat, "display_name": name})
    return 0 if name is not None else 1


def _cmd_route(registry: MapSessionRegistry, args: argparse.Namespace) -> int:
    start = Coordinate.checked(args.start_lon, args.start_lat)
    end = Coordinate.checked(args.end_lon, args.end_lat)
    route = registry.calculate_route(start, end, args.profile)
    _emit(_route_payload(route))
    if args.html:
        write_route_map(registry, route, args.html)
    return 0


def _load_fixes(path: str | Path) -> List[PositionFix]:
    """Read recorded fixes: a JSON list of ``{"lon", "lat", "accuracy"}`` objects."""

    with open(path, "r", encoding="utf-8") as fh:
        records = json.load(fh)
    fixes = []
    for record in records:
        point = Coordinate.checked(record["lon"], record["lat"])
        fixes.append(
            PositionFix(point, float(record.get("accuracy", 0.0)), record.get("timestamp"))
        )
    return fixes


def _cmd_track(registry: MapSessionRegistry, args: argparse.Namespace) -> int:
    provider = ReplayLocationProvider(_load_fixes(args.fixes))
    registry.stop_location_tracking()
    registry.tracker.provider = provider
    surface = registry.create_map(_TRACK_MAP_ID)
    updates: List[Dict[str, float]] = []
    try:
        registry.start_location_tracking(
            surface,
            lambda lon, lat, accuracy: updates.append(
                {"lon": lon, "lat": lat, "accuracy": accuracy}
            ),
        )
        provider.play()
        if args.html and isinstance(surface, FoliumSurface):
            if len(updates) >= 2:
                registry.display_route(
                    surface, [(u["lon"], u["lat"]) for u in updates], route_id="track"
                )
            surface.save(args.html)
    finally:
        registry.destroy_map(_TRACK_MAP_ID)
    _emit(updates)
    return 0 if updates else 1


def _cmd_styles(registry: MapSessionRegistry, _args: argparse.Namespace) -> int:
    _emit(registry.get_available_styles())
    return 0


def write_route_map(
    registry: MapSessionRegistry, route: RouteResult, output_html: str | Path
) -> Path:
    """Render ``route`` with start/end markers to a standalone HTML page."""

    surface = registry.create_map(_ROUTE_MAP_ID, center=route.start)
    try:
        if not isinstance(surface, FoliumSurface):
            raise TypeError("HTML export requires a folium-backed surface")
        registry.display_route(surface, route.coordinates)
        surface.add_marker(route.start, color="#1a9641", popup_html="Start")
        surface.add_marker(route.end, color="#d73027", popup_html="End")
        return surface.save(output_html)
    finally:
        registry.destroy_map(_ROUTE_MAP_ID)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fieldmap",
        description="Geocode addresses and plan routes for field visits.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    geocode = sub.add_parser("geocode", help="Resolve an address to a point")
    geocode.add_argument("address")
    geocode.set_defaults(handler=_cmd_geocode)

    reverse = sub.add_parser("reverse", help="Describe a point as an address")
    reverse.add_argument("lon", type=float)
    reverse.add_argument("lat", type=float)
    reverse.set_defaults(handler=_cmd_reverse)

    route = sub.add_parser("route", help="Plan a route between two points")
    route.add_argument("start_lon", type=float)
    route.add_argument("start_lat", type=float)
    route.add_argument("end_lon", type=float)
    route.add_argument("end_lat", type=float)
    route.add_argument(
        "--profile",
        choices=["driving", "walking", "cycling"],
        default="driving",
    )
    route.add_argument("--html", help="Optional path for an HTML route preview")
    route.set_defaults(handler=_cmd_route)

    track = sub.add_parser("track", help="Replay recorded location fixes on a map")
    track.add_argument("fixes", help="JSON file with a list of {lon, lat, accuracy} fixes")
    track.add_argument("--html", help="Optional path for an HTML track preview")
    track.set_defaults(handler=_cmd_track)

    styles = sub.add_parser("styles", help="List the available map styles")
    styles.set_defaults(handler=_cmd_styles)
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    registry: MapSessionRegistry | None = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    _setup_logging(args.verbose)
    owned = registry is None
    if registry is None:
        registry = MapSessionRegistry()
    try:
        return args.handler(registry, args)
    except InvalidCoordinateError as exc:
        LOGGER.error("%s", exc)
        return 2
    except (OSError, ValueError, KeyError) as exc:
        LOGGER.error("Invalid input: %s", exc)
        return 2
    finally:
        if owned:
            registry.close()


__all__: List[str] = ["main", "write_route_map"]
