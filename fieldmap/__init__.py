"""Field location core: map sessions, live tracking, geocoding and routing."""

from .clients import GeocodingClient, RoutingClient
from .errors import (
    FieldMapError,
    InvalidCoordinateError,
    LocationPermissionDeniedError,
    LocationTimeoutError,
    LocationTrackingError,
    LocationUnavailableError,
    LocationUnsupportedError,
)
from .geo import distance_km
from .icons import ICON_ALIASES, IconResolver, resolve_icon_name
from .models import Coordinate, GeocodeResult, LocationOptions, PositionFix, RouteResult
from .registry import MapSessionRegistry
from .surface import FoliumSurface, MapSurface
from .tracking import LocationTracker, ReplayLocationProvider, TrackerState

__all__ = [
    "Coordinate",
    "FieldMapError",
    "FoliumSurface",
    "GeocodeResult",
    "GeocodingClient",
    "ICON_ALIASES",
    "IconResolver",
    "InvalidCoordinateError",
    "LocationOptions",
    "LocationPermissionDeniedError",
    "LocationTimeoutError",
    "LocationTracker",
    "LocationTrackingError",
    "LocationUnavailableError",
    "LocationUnsupportedError",
    "MapSessionRegistry",
    "MapSurface",
    "PositionFix",
    "ReplayLocationProvider",
    "RouteResult",
    "RoutingClient",
    "TrackerState",
    "distance_km",
    "resolve_icon_name",
]
