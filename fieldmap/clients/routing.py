"""Directions client with a deterministic straight-line fallback.

``calculate_route`` always returns a usable :class:`RouteResult`. When the
directions service cannot be reached, answers with a non-2xx status, or
returns a body we cannot parse, the route degrades to a two-point straight
line whose distance comes from the haversine formula and whose duration
assumes a flat average speed (``FALLBACK_SPEED_KMH``).
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping

from requests import Session

from ..config import (
    FALLBACK_SPEED_KMH,
    REQUEST_TIMEOUT,
    ROUTING_API_KEY,
    ROUTING_BASE_URL,
    ROUTING_PROFILES,
)
from ..errors import ServiceError, ServiceResponseError
from ..geo import distance_km
from ..models import Coordinate, LonLat, RouteResult, as_coordinate
from .response_handling import fetch_json
from .session import get_default_session

LOGGER = logging.getLogger(__name__)

__all__ = ["RoutingClient", "straight_line_route"]


def straight_line_route(
    start: LonLat, end: LonLat, *, speed_kmh: float = FALLBACK_SPEED_KMH
) -> RouteResult:
    """Approximate a route as the great-circle line between two points."""

    a = as_coordinate(start)
    b = as_coordinate(end)
    d_km = distance_km(a, b)
    return RouteResult(
        distance_m=d_km * 1000,
        duration_s=(d_km / speed_kmh) * 3600,
        coordinates=[a, b],
    )


def _parse_route(data: Any) -> RouteResult:
    """Build a route from an OpenRouteService GeoJSON response."""

    try:
        feature = data["features"][0]
        summary = feature["properties"]["summary"]
        distance_m = float(summary["distance"])
        duration_s = float(summary["duration"])
        coordinates: List[Coordinate] = [
            Coordinate(float(point[0]), float(point[1]))
            for point in feature["geometry"]["coordinates"]
        ]
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise ServiceResponseError(f"Malformed directions response: {exc!r}") from exc
    if len(coordinates) < 2:
        raise ServiceResponseError("Directions response has fewer than two points")
    if not (math.isfinite(distance_m) and math.isfinite(duration_s)):
        raise ServiceResponseError("Directions response has non-finite totals")
    if distance_m < 0 or duration_s < 0:
        raise ServiceResponseError("Directions response has negative totals")
    if not all(math.isfinite(value) for point in coordinates for value in point):
        raise ServiceResponseError("Directions response has non-finite coordinates")
    return RouteResult(
        distance_m=distance_m, duration_s=duration_s, coordinates=coordinates
    )


class RoutingClient:
    """Request travel routes for the ``driving``, ``walking`` and ``cycling`` profiles."""

    def __init__(
        self,
        session: Session | None = None,
        *,
        base_url: str = ROUTING_BASE_URL,
        api_key: str = ROUTING_API_KEY,
        profiles: Mapping[str, str] = ROUTING_PROFILES,
        fallback_speed_kmh: float = FALLBACK_SPEED_KMH,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        if fallback_speed_kmh <= 0:
            raise ValueError("fallback_speed_kmh must be > 0")
        self.session = session or get_default_session()
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.profiles = dict(profiles)
        self.fallback_speed_kmh = fallback_speed_kmh
        self.timeout = timeout

    def calculate_route(
        self, start: LonLat, end: LonLat, profile: str = "driving"
    ) -> RouteResult:
        """Return the service route, or a straight-line estimate on failure.

        Raises:
            ValueError: If ``profile`` is not a supported travel mode.
        """

        service_profile = self.profiles.get(profile)
        if service_profile is None:
            raise ValueError(
                f"Unsupported routing profile {profile!r}; "
                f"expected one of {sorted(self.profiles)}"
            )
        a = as_coordinate(start)
        b = as_coordinate(end)
        params: Dict[str, Any] = {
            "start": f"{a.lon},{a.lat}",
            "end": f"{b.lon},{b.lat}",
        }
        if self.api_key:
            params["api_key"] = self.api_key
        try:
            data = fetch_json(
                self.session,
                f"{self.base_url}/v2/directions/{service_profile}",
                params=params,
                timeout=self.timeout,
                context="Routing",
            )
            route = _parse_route(data)
        except ServiceError as exc:
            LOGGER.warning(
                "Routing %s -> %s (%s) failed, using straight-line estimate: %s",
                a,
                b,
                profile,
                exc,
            )
            return straight_line_route(a, b, speed_kmh=self.fallback_speed_kmh)
        LOGGER.debug(
            "Route %s -> %s (%s): %.0f m, %.0f s, %d points",
            a,
            b,
            profile,
            route.distance_m,
            route.duration_s,
            len(route.coordinates),
        )
        return route
