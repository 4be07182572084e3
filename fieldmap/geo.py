"""Great-circle distance helpers."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .models import LonLat

EARTH_RADIUS_KM = 6371.0


def distance_km(a: LonLat, b: LonLat) -> float:
    """Return the haversine distance in kilometres between two (lon, lat) points.

    Inputs are not validated; NaN or garbage values propagate to the result.
    """

    lon1, lat1 = a
    lon2, lat2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))
    return EARTH_RADIUS_KM * c


def path_length_km(coordinates: Sequence[LonLat]) -> float:
    """Return the summed leg distances of a polyline in kilometres."""

    if len(coordinates) < 2:
        return 0.0
    points = np.radians(np.asarray(coordinates, dtype=float))
    lon = points[:, 0]
    lat = points[:, 1]
    d_lat = np.diff(lat)
    d_lon = np.diff(lon)
    h = (
        np.sin(d_lat / 2) ** 2
        + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(d_lon / 2) ** 2
    )
    legs = 2 * np.arctan2(np.sqrt(h), np.sqrt(np.clip(1 - h, 0.0, None))) * EARTH_RADIUS_KM
    return float(legs.sum())


__all__ = ["EARTH_RADIUS_KM", "distance_km", "path_length_km"]
