"""Map surface backed by folium (Leaflet).

The surface keeps its state (view, markers, line layers, images) in memory and
renders it into a :class:`folium.Map` on demand, so updates to a marker or a
route line mutate state in place instead of stacking new folium children.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import folium
from folium.plugins import BeautifyIcon

from ..config import (
    DEFAULT_CENTER,
    DEFAULT_STYLE_URL,
    DEFAULT_ZOOM,
    MAP_ATTRIBUTION,
    MAP_STYLES,
    RASTER_TILES_URL,
    ROUTE_LAYOUT,
    ROUTE_PAINT,
)
from ..models import Bounds, Coordinate, LonLat, as_coordinate
from .base import DragEndHandler, MapSurface, MarkerHandle

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

_MARKER_ICON_PX = 24


@dataclass(slots=True)
class LineLayer:
    layer_id: str
    coordinates: List[Coordinate]
    layout: Dict[str, object] = field(default_factory=dict)
    paint: Dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class RegisteredImage:
    data: bytes
    mime_type: str

    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def _latlon(point: Coordinate) -> Tuple[float, float]:
    return (point.lat, point.lon)


def _style_name(style_url: str) -> str:
    for name, url in MAP_STYLES.items():
        if url == style_url:
            return name
    return style_url


class FoliumSurface(MapSurface):
    """In-memory map state rendered through folium."""

    def __init__(
        self,
        container_id: str,
        center: LonLat = DEFAULT_CENTER,
        zoom: float = DEFAULT_ZOOM,
        style_url: str = DEFAULT_STYLE_URL,
    ) -> None:
        super().__init__(container_id)
        self.center = as_coordinate(center)
        self.zoom = float(zoom)
        self.style_url = style_url
        self.bounds: Optional[Bounds] = None
        self.bounds_padding = 0
        self.markers: Dict[int, MarkerHandle] = {}
        self.line_layers: Dict[str, LineLayer] = {}
        self.images: Dict[str, RegisteredImage] = {}

    # -- view -----------------------------------------------------------
    def set_center(self, center: LonLat) -> None:
        with self.lock:
            self._ensure_alive()
            self.center = as_coordinate(center)
            self.bounds = None

    def set_zoom(self, zoom: float) -> None:
        with self.lock:
            self._ensure_alive()
            self.zoom = float(zoom)
            self.bounds = None

    def set_style(self, style_url: str) -> None:
        with self.lock:
            self._ensure_alive()
            self.style_url = style_url

    def fit_bounds(self, bounds: Bounds, *, padding: int = 0) -> None:
        with self.lock:
            self._ensure_alive()
            self.bounds = bounds
            self.bounds_padding = padding
            self.center = Coordinate(
                (bounds.west + bounds.east) / 2, (bounds.south + bounds.north) / 2
            )

    # -- markers --------------------------------------------------------
    def add_marker(
        self,
        position: LonLat,
        *,
        color: Optional[str] = None,
        scale: float = 1.0,
        popup_html: Optional[str] = None,
        draggable: bool = False,
        icon_id: Optional[str] = None,
        on_drag_end: Optional[DragEndHandler] = None,
    ) -> MarkerHandle:
        with self.lock:
            self._ensure_alive()
            marker = MarkerHandle(
                self,
                self._next_marker_id(),
                as_coordinate(position),
                color=color,
                scale=scale,
                popup_html=popup_html,
                draggable=draggable,
                icon_id=icon_id,
                on_drag_end=on_drag_end,
            )
            self.markers[marker.marker_id] = marker
            missing = icon_id is not None and icon_id not in self.images
        if missing:
            self._emit_missing_image(icon_id)
        return marker

    def _discard_marker(self, marker: MarkerHandle) -> None:
        with self.lock:
            self.markers.pop(marker.marker_id, None)

    # -- line overlays --------------------------------------------------
    def has_line_layer(self, layer_id: str) -> bool:
        with self.lock:
            return layer_id in self.line_layers

    def add_line_layer(
        self,
        layer_id: str,
        coordinates: Sequence[LonLat],
        *,
        layout: Optional[dict] = None,
        paint: Optional[dict] = None,
    ) -> None:
        with self.lock:
            self._ensure_alive()
            if layer_id in self.line_layers:
                raise ValueError(f"Line layer {layer_id!r} already exists")
            self.line_layers[layer_id] = LineLayer(
                layer_id=layer_id,
                coordinates=[as_coordinate(c) for c in coordinates],
                layout=dict(layout if layout is not None else ROUTE_LAYOUT),
                paint=dict(paint if paint is not None else ROUTE_PAINT),
            )

    def update_line_layer(self, layer_id: str, coordinates: Sequence[LonLat]) -> None:
        with self.lock:
            self._ensure_alive()
            layer = self.line_layers.get(layer_id)
            if layer is None:
                raise KeyError(f"Unknown line layer {layer_id!r}")
            layer.coordinates = [as_coordinate(c) for c in coordinates]

    def line_layer_ids(self) -> List[str]:
        with self.lock:
            return list(self.line_layers)

    # -- images ---------------------------------------------------------
    def has_image(self, image_id: str) -> bool:
        with self.lock:
            return image_id in self.images

    def add_image(
        self, image_id: str, data: bytes, *, mime_type: str = "image/svg+xml"
    ) -> None:
        with self.lock:
            self._ensure_alive()
            self.images[image_id] = RegisteredImage(data=bytes(data), mime_type=mime_type)

    # -- lifecycle ------------------------------------------------------
    def remove(self) -> None:
        with self.lock:
            if self.removed:
                return
            for marker in list(self.markers.values()):
                marker.removed = True
            self.markers.clear()
            self.line_layers.clear()
            self.images.clear()
            self._missing_image_handlers.clear()
            self._click_handlers.clear()
            self.removed = True
        LOGGER.debug("Removed map surface %s", self.container_id)

    # -- rendering ------------------------------------------------------
    def render(self) -> folium.Map:
        """Build a :class:`folium.Map` reflecting the current surface state."""

        with self.lock:
            self._ensure_alive()
            folium_map = folium.Map(
                location=_latlon(self.center),
                zoom_start=self.zoom,
                tiles=None,
                control_scale=True,
            )
            # Leaflet cannot draw vector style documents; fall back to raster tiles.
            tiles = self.style_url if "{z}" in self.style_url else RASTER_TILES_URL
            folium.TileLayer(
                tiles=tiles,
                attr=MAP_ATTRIBUTION,
                name=_style_name(self.style_url),
            ).add_to(folium_map)

            for layer in self.line_layers.values():
                if len(layer.coordinates) < 2:
                    continue
                folium.PolyLine(
                    [_latlon(point) for point in layer.coordinates],
                    color=layer.paint.get("line-color", ROUTE_PAINT["line-color"]),
                    weight=layer.paint.get("line-width", ROUTE_PAINT["line-width"]),
                    opacity=layer.paint.get("line-opacity", ROUTE_PAINT["line-opacity"]),
                    line_join=layer.layout.get("line-join", ROUTE_LAYOUT["line-join"]),
                    line_cap=layer.layout.get("line-cap", ROUTE_LAYOUT["line-cap"]),
                    tooltip=layer.layer_id,
                ).add_to(folium_map)

            for marker in self.markers.values():
                self._render_marker(marker).add_to(folium_map)

            if self.bounds is not None:
                folium_map.fit_bounds(
                    [_latlon(self.bounds.south_west), _latlon(self.bounds.north_east)],
                    padding=(self.bounds_padding, self.bounds_padding),
                )
        return folium_map

    def _render_marker(self, marker: MarkerHandle) -> folium.Marker:
        size = int(round(_MARKER_ICON_PX * marker.scale))
        image = self.images.get(marker.icon_id) if marker.icon_id else None
        if image is not None:
            icon = folium.CustomIcon(image.data_url(), icon_size=(size, size))
        else:
            color = marker.color or "#3388ff"
            icon = BeautifyIcon(
                icon_shape="marker",
                border_color=color,
                background_color=color,
            )
        popup = folium.Popup(marker.popup_html, max_width=300) if marker.popup_html else None
        return folium.Marker(
            location=_latlon(marker.position),
            icon=icon,
            popup=popup,
            draggable=marker.draggable,
        )

    def save(self, output_html_path: PathLike) -> Path:
        """Render the surface and persist it as a standalone HTML page."""

        path = Path(output_html_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.render().save(str(path))
        LOGGER.info("Saved map %s to %s", self.container_id, path)
        return path
