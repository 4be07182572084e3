"""Central configuration for the fieldmap location core.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Overrides are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import os
from typing import Dict, Tuple

from dotenv import load_dotenv


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Load .env from the current directory or any parent folder.
load_dotenv()


# ---------------------------------------------------------------------------
# HTTP transport
# ---------------------------------------------------------------------------
# Request timeout in seconds. Timeouts are treated as ordinary service failures.
REQUEST_TIMEOUT = _env_float("FIELDMAP_REQUEST_TIMEOUT", 10.0)

# Retry/backoff behaviour for transient 5xx responses. Kept small because every
# caller is interactive and has a soft fallback.
HTTP_MAX_RETRIES = _env_int("FIELDMAP_HTTP_MAX_RETRIES", 2)
HTTP_BACKOFF_FACTOR = _env_float("FIELDMAP_HTTP_BACKOFF_FACTOR", 0.5)

# HTTP session pool sizes.
HTTP_POOL_CONNECTIONS = 10
HTTP_POOL_MAXSIZE = 10


# ---------------------------------------------------------------------------
# Geocoding (Photon)
# ---------------------------------------------------------------------------
GEOCODING_BASE_URL = os.getenv("FIELDMAP_GEOCODING_BASE_URL", "https://photon.komoot.io")

# Forward searches are restricted to this country. Business assumption: field
# staff operate in South Africa.
GEOCODING_COUNTRY_CODE = os.getenv("FIELDMAP_GEOCODING_COUNTRY_CODE", "za")
GEOCODING_RESULT_LIMIT = _env_int("FIELDMAP_GEOCODING_RESULT_LIMIT", 5)
GEOCODING_LANGUAGE = os.getenv("FIELDMAP_GEOCODING_LANGUAGE", "en")


# ---------------------------------------------------------------------------
# Routing (OpenRouteService)
# ---------------------------------------------------------------------------
ROUTING_BASE_URL = os.getenv(
    "FIELDMAP_ROUTING_BASE_URL", "https://api.openrouteservice.org"
)
# Optional key; sent as the `api_key` query parameter when present.
ROUTING_API_KEY = os.getenv("FIELDMAP_ROUTING_API_KEY", "")

# Public profile name -> directions service profile.
ROUTING_PROFILES: Dict[str, str] = {
    "driving": "driving-car",
    "walking": "foot-walking",
    "cycling": "cycling-regular",
}

# Average speed (km/h) used to estimate duration for straight-line fallback
# routes. Business assumption; do not change the default without sign-off.
FALLBACK_SPEED_KMH = _env_float("FIELDMAP_FALLBACK_SPEED_KMH", 50.0)


# ---------------------------------------------------------------------------
# Icons
# ---------------------------------------------------------------------------
# Filesystem directory or http(s) origin that serves the icon assets.
ICON_ASSET_ROOT = os.getenv("FIELDMAP_ICON_ASSET_ROOT", ".")
ICON_ASSET_PATH_TEMPLATE = "/assets/map-icons/{name}.svg"

# Maximum number of fetched icon payloads kept in memory.
ICON_CACHE_SIZE = _env_int("FIELDMAP_ICON_CACHE_SIZE", 128)

# Worker threads used for asynchronous icon fetches.
ICON_FETCH_MAX_WORKERS = _env_int("FIELDMAP_ICON_FETCH_MAX_WORKERS", 4)


# ---------------------------------------------------------------------------
# Map defaults and styling
# ---------------------------------------------------------------------------
# (lon, lat) - Johannesburg.
DEFAULT_CENTER: Tuple[float, float] = (28.0473, -26.2041)
DEFAULT_ZOOM = 10.0

MAP_STYLES: Dict[str, str] = {
    "liberty": "https://tiles.openfreemap.org/styles/liberty",
    "bright": "https://tiles.openfreemap.org/styles/bright",
    "positron": "https://tiles.openfreemap.org/styles/positron",
    "dark": "https://tiles.openfreemap.org/styles/dark-matter",
    "klokantech": "https://tiles.openfreemap.org/styles/klokantech-basic",
}
DEFAULT_STYLE_NAME = "liberty"
DEFAULT_STYLE_URL = MAP_STYLES[DEFAULT_STYLE_NAME]

MAP_ATTRIBUTION = (
    '&copy; <a href="https://openfreemap.org">OpenFreeMap</a> '
    '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a>'
)
# Raster tiles drawn by the folium engine when a style is a vector style URL.
RASTER_TILES_URL = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"

ROUTE_LAYOUT: Dict[str, str] = {"line-join": "round", "line-cap": "round"}
ROUTE_PAINT: Dict[str, object] = {
    "line-color": "#007cbf",
    "line-width": 4,
    "line-opacity": 0.8,
}
ROUTE_FIT_PADDING_PX = 50

# Live location marker.
TRACKING_MARKER_COLOR = "#007cbf"
TRACKING_MARKER_SCALE = 1.2
TRACKING_MARKER_POPUP = "<strong>Your Location</strong>"

# Location picker marker and zoom applied after a search/selection.
PICKER_MARKER_COLOR = "#FF0000"
PICKER_FOCUS_ZOOM = 15.0
