"""Abstract map surface: the contract the location core drives.

A surface owns its markers, named line layers and registered images. Engines
raise the *missing image* signal when a marker references an icon identifier
that has not been registered yet; the icon resolver answers it by calling
:meth:`MapSurface.add_image`.
"""

from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from ..errors import SurfaceRemovedError
from ..models import Bounds, Coordinate, LonLat, as_coordinate

LOGGER = logging.getLogger(__name__)

MissingImageHandler = Callable[[str], object]
ClickHandler = Callable[[Coordinate], object]
DragEndHandler = Callable[[Coordinate], object]

__all__ = ["MapSurface", "MarkerHandle"]


class MarkerHandle:
    """A point marker living on one surface."""

    def __init__(
        self,
        surface: "MapSurface",
        marker_id: int,
        position: Coordinate,
        *,
        color: Optional[str] = None,
        scale: float = 1.0,
        popup_html: Optional[str] = None,
        draggable: bool = False,
        icon_id: Optional[str] = None,
        on_drag_end: Optional[DragEndHandler] = None,
    ) -> None:
        self.surface = surface
        self.marker_id = marker_id
        self._position = position
        self.color = color
        self.scale = scale
        self.popup_html = popup_html
        self.draggable = draggable
        self.icon_id = icon_id
        self._drag_end_handlers: List[DragEndHandler] = []
        if on_drag_end is not None:
            self._drag_end_handlers.append(on_drag_end)
        self.removed = False

    @property
    def position(self) -> Coordinate:
        return self._position

    def get_position(self) -> Coordinate:
        return self._position

    def set_position(self, position: LonLat) -> "MarkerHandle":
        with self.surface.lock:
            self._ensure_alive()
            self._position = as_coordinate(position)
        return self

    def set_popup(self, html: Optional[str]) -> "MarkerHandle":
        with self.surface.lock:
            self._ensure_alive()
            self.popup_html = html
        return self

    def on_drag_end(self, handler: DragEndHandler) -> None:
        self._drag_end_handlers.append(handler)

    def drag_to(self, position: LonLat) -> None:
        """Move the marker as the engine does at the end of a user drag."""

        if not self.draggable:
            raise ValueError(f"Marker {self.marker_id} is not draggable")
        self.set_position(position)
        for handler in list(self._drag_end_handlers):
            handler(self._position)

    def remove(self) -> None:
        """Detach the marker; removing twice or after the surface is gone is a no-op."""

        if self.removed:
            return
        self.surface._discard_marker(self)
        self.removed = True

    def _ensure_alive(self) -> None:
        if self.removed:
            raise SurfaceRemovedError(f"Marker {self.marker_id} was removed")
        self.surface._ensure_alive()

    def __repr__(self) -> str:
        return (
            f"MarkerHandle(id={self.marker_id}, position={tuple(self._position)}, "
            f"removed={self.removed})"
        )


class MapSurface(ABC):
    """One rendered map bound to a display container."""

    def __init__(self, container_id: str) -> None:
        self.container_id = container_id
        self.lock = threading.RLock()
        self.removed = False
        self._marker_ids = itertools.count(1)
        self._missing_image_handlers: List[MissingImageHandler] = []
        self._click_handlers: List[ClickHandler] = []

    # -- events ---------------------------------------------------------
    def on_missing_image(self, handler: MissingImageHandler) -> None:
        self._missing_image_handlers.append(handler)

    def on_click(self, handler: ClickHandler) -> None:
        self._click_handlers.append(handler)

    def click(self, position: LonLat) -> None:
        """Deliver a user click at ``position`` to registered handlers."""

        self._ensure_alive()
        point = as_coordinate(position)
        for handler in list(self._click_handlers):
            handler(point)

    def _emit_missing_image(self, icon_id: str) -> None:
        LOGGER.debug("Surface %s missing image %r", self.container_id, icon_id)
        for handler in list(self._missing_image_handlers):
            handler(icon_id)

    def _ensure_alive(self) -> None:
        if self.removed:
            raise SurfaceRemovedError(f"Map surface {self.container_id!r} was removed")

    def _next_marker_id(self) -> int:
        return next(self._marker_ids)

    # -- view -----------------------------------------------------------
    @abstractmethod
    def set_center(self, center: LonLat) -> None: ...

    @abstractmethod
    def set_zoom(self, zoom: float) -> None: ...

    @abstractmethod
    def set_style(self, style_url: str) -> None: ...

    @abstractmethod
    def fit_bounds(self, bounds: Bounds, *, padding: int = 0) -> None: ...

    # -- markers --------------------------------------------------------
    @abstractmethod
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
    ) -> MarkerHandle: ...

    @abstractmethod
    def _discard_marker(self, marker: MarkerHandle) -> None: ...

    # -- line overlays --------------------------------------------------
    @abstractmethod
    def has_line_layer(self, layer_id: str) -> bool: ...

    @abstractmethod
    def add_line_layer(
        self,
        layer_id: str,
        coordinates: Sequence[LonLat],
        *,
        layout: Optional[dict] = None,
        paint: Optional[dict] = None,
    ) -> None: ...

    @abstractmethod
    def update_line_layer(self, layer_id: str, coordinates: Sequence[LonLat]) -> None: ...

    @abstractmethod
    def line_layer_ids(self) -> List[str]: ...

    # -- images ---------------------------------------------------------
    @abstractmethod
    def has_image(self, image_id: str) -> bool: ...

    @abstractmethod
    def add_image(
        self, image_id: str, data: bytes, *, mime_type: str = "image/svg+xml"
    ) -> None: ...

    # -- lifecycle ------------------------------------------------------
    @abstractmethod
    def remove(self) -> None:
        """Release engine resources. Idempotent."""
