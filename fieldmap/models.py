"""Value types shared by the location core."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional, Tuple

from .errors import InvalidCoordinateError

LonLat = Tuple[float, float]


class Coordinate(NamedTuple):
    """Immutable (longitude, latitude) pair in degrees."""

    lon: float
    lat: float

    @classmethod
    def checked(cls, lon: float, lat: float) -> "Coordinate":
        """Build a coordinate, rejecting non-finite or out-of-range values."""

        try:
            lon_f = float(lon)
            lat_f = float(lat)
        except (TypeError, ValueError) as exc:
            raise InvalidCoordinateError(
                f"Coordinate values must be numeric: ({lon!r}, {lat!r})"
            ) from exc
        if not (math.isfinite(lon_f) and math.isfinite(lat_f)):
            raise InvalidCoordinateError(
                f"Coordinate values must be finite: ({lon_f}, {lat_f})"
            )
        if not -180.0 <= lon_f <= 180.0:
            raise InvalidCoordinateError(f"Longitude out of range: {lon_f}")
        if not -90.0 <= lat_f <= 90.0:
            raise InvalidCoordinateError(f"Latitude out of range: {lat_f}")
        return cls(lon_f, lat_f)


def as_coordinate(value: LonLat) -> Coordinate:
    """Return ``value`` as a :class:`Coordinate` without validation."""

    if isinstance(value, Coordinate):
        return value
    lon, lat = value
    return Coordinate(float(lon), float(lat))


@dataclass(slots=True)
class Address:
    """Structured address components returned by the geocoder."""

    house_number: Optional[str] = None
    road: Optional[str] = None
    suburb: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None


@dataclass(slots=True)
class GeocodeResult:
    coordinate: Coordinate
    display_name: str
    address: Address = field(default_factory=Address)


@dataclass(slots=True)
class RouteResult:
    """Distance (metres), duration (seconds) and geometry of a travel route.

    Remote and fallback routes share this shape; only their accuracy differs.
    """

    distance_m: float
    duration_s: float
    coordinates: List[Coordinate]

    @property
    def start(self) -> Coordinate:
        return self.coordinates[0]

    @property
    def end(self) -> Coordinate:
        return self.coordinates[-1]


@dataclass(slots=True)
class PositionFix:
    """One update from the device location service."""

    coordinate: Coordinate
    accuracy_m: float
    timestamp: Optional[float] = None


@dataclass(slots=True, frozen=True)
class LocationOptions:
    enable_high_accuracy: bool = True
    timeout_ms: int = 5000
    maximum_age_ms: int = 0


@dataclass(slots=True, frozen=True)
class Bounds:
    west: float
    south: float
    east: float
    north: float

    @classmethod
    def from_coordinates(cls, coordinates: Iterable[LonLat]) -> "Bounds":
        points = [as_coordinate(c) for c in coordinates]
        if not points:
            raise ValueError("At least one coordinate is required to build bounds")
        lons = [p.lon for p in points]
        lats = [p.lat for p in points]
        return cls(min(lons), min(lats), max(lons), max(lats))

    @property
    def south_west(self) -> Coordinate:
        return Coordinate(self.west, self.south)

    @property
    def north_east(self) -> Coordinate:
        return Coordinate(self.east, self.north)
