"""Central error types used across the package."""

from __future__ import annotations


class FieldMapError(RuntimeError):
    """Base error for the location core."""


class InvalidCoordinateError(FieldMapError, ValueError):
    """Raised when a longitude/latitude pair is not finite or out of range."""


class SurfaceRemovedError(FieldMapError):
    """Raised when a map surface is used after it was removed."""


class ServiceError(FieldMapError):
    """Base error for geocoding, routing and asset service failures."""


class ServiceUnavailableError(ServiceError):
    """Raised when a remote service cannot be reached or times out."""


class ServiceResponseError(ServiceError):
    """Raised when a remote service answers with a non-2xx status or bad body."""


class LocationTrackingError(FieldMapError):
    """Base error for device location failures.

    ``code`` mirrors the geolocation error codes so hosts can pick the right
    remediation without string matching.
    """

    code = 0
    message = "Location tracking failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class LocationUnsupportedError(LocationTrackingError):
    """Raised when the device offers no location capability."""

    code = 0
    message = "Geolocation is not supported by this device."


class LocationPermissionDeniedError(LocationTrackingError):
    """Raised when the user refused location access."""

    code = 1
    message = "Location access denied by user."


class LocationUnavailableError(LocationTrackingError):
    """Raised when the device cannot determine a position."""

    code = 2
    message = "Location information is unavailable."


class LocationTimeoutError(LocationTrackingError):
    """Raised when a position was not obtained within the allowed time."""

    code = 3
    message = "Location request timed out."


__all__ = [
    "FieldMapError",
    "InvalidCoordinateError",
    "SurfaceRemovedError",
    "ServiceError",
    "ServiceUnavailableError",
    "ServiceResponseError",
    "LocationTrackingError",
    "LocationUnsupportedError",
    "LocationPermissionDeniedError",
    "LocationUnavailableError",
    "LocationTimeoutError",
]
