"""Headless location-picker controller.

Holds the selected location for one map surface and keeps a draggable marker
in sync with it. Selections come from map clicks, address searches, marker
drags or programmatic writes; clicks and drags are labelled through reverse
geocoding when the service answers. Listeners are told about every change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import DEFAULT_STYLE_NAME, PICKER_FOCUS_ZOOM, PICKER_MARKER_COLOR
from .errors import InvalidCoordinateError
from .models import Coordinate
from .registry import MapSessionRegistry
from .surface.base import MapSurface, MarkerHandle

LOGGER = logging.getLogger(__name__)

__all__ = ["LocationPicker", "PickedLocation"]


@dataclass(slots=True, frozen=True)
class PickedLocation:
    lon: float
    lat: float
    address: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lon, self.lat)


ChangeListener = Callable[[Optional[PickedLocation]], object]


def _wrap_longitude(lon: float) -> float:
    if -180.0 <= lon <= 180.0:
        return lon
    return ((lon + 180.0) % 360.0) - 180.0


class LocationPicker:
    """Pick a point by click, search or drag on a registry-managed surface."""

    def __init__(
        self,
        registry: MapSessionRegistry,
        surface: MapSurface,
        *,
        enable_click_to_pick: bool = True,
        style_name: str = DEFAULT_STYLE_NAME,
    ) -> None:
        self.registry = registry
        self.surface = surface
        self.style_name = style_name
        self.value: Optional[PickedLocation] = None
        self._marker: Optional[MarkerHandle] = None
        self._listeners: List[ChangeListener] = []
        if enable_click_to_pick:
            surface.on_click(self._on_click)

    @property
    def marker(self) -> Optional[MarkerHandle]:
        return self._marker

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def select(self, lon: float, lat: float) -> PickedLocation:
        """Select a point, labelling it through reverse geocoding when possible."""

        point = Coordinate.checked(lon, lat)
        address = self.registry.reverse_geocode(point)
        return self._update(point, address)

    def search(self, query: str) -> bool:
        """Select the first match for ``query``; ``False`` when nothing matched."""

        if not query or not query.strip():
            return False
        result = self.registry.geocode_address(query)
        if result is None:
            LOGGER.info("Location not found for %r", query)
            return False
        self.surface.set_center(result.coordinate)
        self.surface.set_zoom(PICKER_FOCUS_ZOOM)
        self._update(result.coordinate, result.display_name)
        return True

    def write_value(self, value: Optional[PickedLocation]) -> None:
        """Show ``value`` without notifying listeners."""

        self.value = value
        if value is None:
            self._remove_marker()
            return
        self.surface.set_center(value.coordinate)
        self.surface.set_zoom(PICKER_FOCUS_ZOOM)
        self._set_marker(value.coordinate, value.address)

    def clear(self) -> None:
        self.value = None
        self._remove_marker()
        self._notify()

    def change_style(self, style_name: str) -> bool:
        """Switch the surface to a catalogued style; unknown names are ignored."""

        style_url = self.registry.get_available_styles().get(style_name)
        if style_url is None:
            LOGGER.warning("Unknown map style %r", style_name)
            return False
        self.surface.set_style(style_url)
        self.style_name = style_name
        return True

    def _on_click(self, point: Coordinate) -> None:
        self._select_from_map(point)

    def _on_drag_end(self, point: Coordinate) -> None:
        self._select_from_map(point)

    def _select_from_map(self, point: Coordinate) -> None:
        # Engines report unwrapped longitudes once the view crosses the antimeridian.
        lon = _wrap_longitude(point.lon)
        try:
            self.select(lon, point.lat)
        except InvalidCoordinateError as exc:
            LOGGER.warning("Ignoring map selection at %s: %s", tuple(point), exc)

    def _update(self, point: Coordinate, address: Optional[str]) -> PickedLocation:
        self.value = PickedLocation(point.lon, point.lat, address)
        self._set_marker(point, address)
        self._notify()
        return self.value

    def _set_marker(self, point: Coordinate, address: Optional[str]) -> None:
        self._remove_marker()
        self._marker = self.surface.add_marker(
            point,
            color=PICKER_MARKER_COLOR,
            popup_html=address,
            draggable=True,
            on_drag_end=self._on_drag_end,
        )

    def _remove_marker(self) -> None:
        if self._marker is not None:
            self._marker.remove()
            self._marker = None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.value)
