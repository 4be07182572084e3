"""Map session registry.

Creates, indexes and destroys map surfaces by container identifier and wires
the per-surface collaborators: the icon resolver listens to every surface's
missing-image signal, the single location tracker can be bound to any one
surface, and the geocoding/routing clients feed results back in for display.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .clients.geocoding import GeocodingClient
from .clients.routing import RoutingClient
from .config import (
    DEFAULT_CENTER,
    DEFAULT_STYLE_URL,
    DEFAULT_ZOOM,
    MAP_STYLES,
    ROUTE_FIT_PADDING_PX,
    ROUTE_LAYOUT,
    ROUTE_PAINT,
)
from .geo import distance_km
from .icons import IconResolver
from .models import Bounds, GeocodeResult, LocationOptions, LonLat, RouteResult
from .surface.base import MapSurface
from .surface.folium_surface import FoliumSurface
from .tracking import ErrorCallback, LocationCallback, LocationTracker

LOGGER = logging.getLogger(__name__)

SurfaceFactory = Callable[[str, LonLat, float, str], MapSurface]

__all__ = ["MapSessionRegistry", "SessionEntry"]


@dataclass(slots=True)
class SessionEntry:
    identifier: str
    surface: MapSurface


def _default_surface_factory(
    container_id: str, center: LonLat, zoom: float, style_url: str
) -> MapSurface:
    return FoliumSurface(container_id, center=center, zoom=zoom, style_url=style_url)


class MapSessionRegistry:
    """Owns every live map surface, keyed by container identifier."""

    def __init__(
        self,
        *,
        surface_factory: SurfaceFactory = _default_surface_factory,
        tracker: LocationTracker | None = None,
        icon_resolver: IconResolver | None = None,
        geocoder: GeocodingClient | None = None,
        router: RoutingClient | None = None,
    ) -> None:
        self.surface_factory = surface_factory
        self.tracker = tracker or LocationTracker()
        self.icon_resolver = icon_resolver or IconResolver()
        self.geocoder = geocoder or GeocodingClient()
        self.router = router or RoutingClient()
        self._entries: Dict[str, SessionEntry] = {}
        self._lock = threading.RLock()

    # -- surfaces -------------------------------------------------------
    def create_map(
        self,
        container_id: str,
        center: LonLat = DEFAULT_CENTER,
        zoom: float = DEFAULT_ZOOM,
        style_url: str = DEFAULT_STYLE_URL,
    ) -> MapSurface:
        """Create a surface for ``container_id`` and register it.

        An existing surface under the same identifier is destroyed first.
        """

        if not container_id:
            raise ValueError("container_id must be a non-empty string")
        with self._lock:
            if container_id in self._entries:
                LOGGER.warning(
                    "Map %s already exists; destroying it before re-creating",
                    container_id,
                )
                self.destroy_map(container_id)
            surface = self.surface_factory(container_id, center, zoom, style_url)
            self.icon_resolver.attach(surface)
            self._entries[container_id] = SessionEntry(container_id, surface)
        LOGGER.info("Created map %s (zoom=%s, style=%s)", container_id, zoom, style_url)
        return surface

    def destroy_map(self, container_id: str) -> None:
        """Stop tracking, release the surface and forget it. Unknown ids are ignored."""

        with self._lock:
            entry = self._entries.pop(container_id, None)
            if entry is None:
                LOGGER.debug("destroy_map: no map registered as %s", container_id)
                return
            self.tracker.stop()
            entry.surface.remove()
        LOGGER.info("Destroyed map %s", container_id)

    def get_map(self, container_id: str) -> Optional[MapSurface]:
        with self._lock:
            entry = self._entries.get(container_id)
        return entry.surface if entry is not None else None

    def entries(self) -> List[SessionEntry]:
        with self._lock:
            return list(self._entries.values())

    def __contains__(self, container_id: object) -> bool:
        with self._lock:
            return container_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def close(self) -> None:
        """Destroy every surface and stop background icon fetching."""

        for entry in self.entries():
            self.destroy_map(entry.identifier)
        self.icon_resolver.shutdown(wait=False)

    # -- overlays -------------------------------------------------------
    def display_route(
        self,
        surface: MapSurface,
        coordinates: Sequence[LonLat],
        route_id: str = "route",
    ) -> None:
        """Draw (or redraw in place) the ``route_id`` line and fit the view to it."""

        if not coordinates:
            raise ValueError("Route coordinates must not be empty")
        if surface.has_line_layer(route_id):
            surface.update_line_layer(route_id, coordinates)
        else:
            surface.add_line_layer(
                route_id, coordinates, layout=dict(ROUTE_LAYOUT), paint=dict(ROUTE_PAINT)
            )
        surface.fit_bounds(
            Bounds.from_coordinates(coordinates), padding=ROUTE_FIT_PADDING_PX
        )

    @staticmethod
    def get_available_styles() -> Dict[str, str]:
        return dict(MAP_STYLES)

    # -- composed services ----------------------------------------------
    def start_location_tracking(
        self,
        surface: MapSurface,
        callback: LocationCallback,
        options: LocationOptions | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> bool:
        return self.tracker.start(surface, callback, options, on_error=on_error)

    def stop_location_tracking(self) -> None:
        self.tracker.stop()

    def geocode_address(self, address: str) -> Optional[GeocodeResult]:
        return self.geocoder.geocode_address(address)

    def reverse_geocode(self, coordinate: LonLat) -> Optional[str]:
        return self.geocoder.reverse_geocode(coordinate)

    def calculate_route(
        self, start: LonLat, end: LonLat, profile: str = "driving"
    ) -> RouteResult:
        return self.router.calculate_route(start, end, profile)

    @staticmethod
    def calculate_straight_line_distance(a: LonLat, b: LonLat) -> float:
        """Kilometres between two (lon, lat) points along the great circle."""

        return distance_km(a, b)
