"""Map surface contract and the folium rendering engine."""

from .base import MapSurface, MarkerHandle  # noqa: F401
from .folium_surface import FoliumSurface  # noqa: F401
