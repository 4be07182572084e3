"""Forward and reverse geocoding against the Photon address search service.

Every public call is fail-soft: transport errors, timeouts, non-2xx answers,
malformed bodies and empty result sets all come back as ``None``. Nothing is
cached between calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from requests import Session

from ..config import (
    GEOCODING_BASE_URL,
    GEOCODING_COUNTRY_CODE,
    GEOCODING_LANGUAGE,
    GEOCODING_RESULT_LIMIT,
    REQUEST_TIMEOUT,
)
from ..errors import ServiceError, ServiceResponseError
from ..models import Address, Coordinate, GeocodeResult, LonLat, as_coordinate
from .response_handling import fetch_json
from .session import get_default_session

LOGGER = logging.getLogger(__name__)

__all__ = ["GeocodingClient", "build_display_name"]


def _first(properties: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = properties.get(key)
        if value:
            return str(value)
    return None


def build_display_name(properties: Mapping[str, Any]) -> str:
    """Compose a readable label from Photon feature properties."""

    parts = [
        _first(properties, "housenumber"),
        _first(properties, "street"),
        _first(properties, "district", "suburb"),
        _first(properties, "city", "town", "village"),
        _first(properties, "state", "county"),
        _first(properties, "country"),
    ]
    present = [part for part in parts if part]
    if present:
        return ", ".join(present)
    return _first(properties, "name") or "Unknown location"


def _build_address(properties: Mapping[str, Any]) -> Address:
    return Address(
        house_number=_first(properties, "housenumber"),
        road=_first(properties, "street"),
        suburb=_first(properties, "district", "suburb"),
        city=_first(properties, "city", "town", "village"),
        state=_first(properties, "state", "county"),
        postcode=_first(properties, "postcode"),
        country=_first(properties, "country"),
    )


def _parse_feature(feature: Mapping[str, Any]) -> GeocodeResult:
    """Convert one GeoJSON feature into a :class:`GeocodeResult`."""

    try:
        lon, lat = feature["geometry"]["coordinates"][:2]
        properties = feature.get("properties") or {}
        coordinate = Coordinate(float(lon), float(lat))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ServiceResponseError(f"Malformed geocoding feature: {exc}") from exc
    return GeocodeResult(
        coordinate=coordinate,
        display_name=build_display_name(properties),
        address=_build_address(properties),
    )


class GeocodingClient:
    """Resolve addresses to coordinates and back."""

    def __init__(
        self,
        session: Session | None = None,
        *,
        base_url: str = GEOCODING_BASE_URL,
        country_code: str = GEOCODING_COUNTRY_CODE,
        limit: int = GEOCODING_RESULT_LIMIT,
        language: str = GEOCODING_LANGUAGE,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.session = session or get_default_session()
        self.base_url = base_url.rstrip("/")
        self.country_code = country_code.lower()
        self.limit = limit
        self.language = language
        self.timeout = timeout

    def geocode_address(self, address: str) -> Optional[GeocodeResult]:
        """Return the first in-scope match for ``address`` or ``None``."""

        query = (address or "").strip()
        if not query:
            LOGGER.warning("Geocoding skipped: address is empty")
            return None
        params: Dict[str, Any] = {
            "q": query,
            "limit": self.limit,
            "lang": self.language,
        }
        if self.country_code:
            params["countrycodes"] = self.country_code
        try:
            data = fetch_json(
                self.session,
                f"{self.base_url}/api",
                params=params,
                timeout=self.timeout,
                context="Geocoding",
            )
            feature = self._first_in_scope(data)
            if feature is None:
                LOGGER.info("No geocoding results for %r", query)
                return None
            result = _parse_feature(feature)
        except ServiceError as exc:
            LOGGER.warning("Geocoding failed for %r: %s", query, exc)
            return None
        LOGGER.debug("Geocoded %r -> %s", query, result.coordinate)
        return result

    def reverse_geocode(self, coordinate: LonLat) -> Optional[str]:
        """Return a display name for ``coordinate`` or ``None``."""

        result = self.reverse_geocode_result(coordinate)
        return result.display_name if result is not None else None

    def reverse_geocode_result(self, coordinate: LonLat) -> Optional[GeocodeResult]:
        """Return the full reverse geocoding result for ``coordinate``."""

        point = as_coordinate(coordinate)
        params = {"lat": point.lat, "lon": point.lon, "limit": 1}
        try:
            data = fetch_json(
                self.session,
                f"{self.base_url}/reverse",
                params=params,
                timeout=self.timeout,
                context="Reverse geocoding",
            )
            features = _features(data)
            if not features:
                LOGGER.info("No reverse geocoding result for %s", point)
                return None
            parsed = _parse_feature(features[0])
        except ServiceError as exc:
            LOGGER.warning("Reverse geocoding failed for %s: %s", point, exc)
            return None
        # Keep the caller's point; the service answers with the nearest feature.
        return GeocodeResult(
            coordinate=point,
            display_name=parsed.display_name,
            address=parsed.address,
        )

    def _first_in_scope(self, data: Any) -> Optional[Mapping[str, Any]]:
        for feature in _features(data):
            if self._in_scope(feature):
                return feature
        return None

    def _in_scope(self, feature: Any) -> bool:
        if not self.country_code or not isinstance(feature, Mapping):
            return True
        properties = feature.get("properties") or {}
        code = properties.get("countrycode") if isinstance(properties, Mapping) else None
        # Features without a country code are kept; the service already filtered.
        return not code or str(code).lower() == self.country_code


def _features(data: Any) -> list:
    if not isinstance(data, Mapping):
        raise ServiceResponseError("Geocoding response is not a JSON object")
    features = data.get("features")
    if features is None:
        return []
    if not isinstance(features, list):
        raise ServiceResponseError("Geocoding response 'features' is not a list")
    return features
