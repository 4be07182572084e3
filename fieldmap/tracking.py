"""Live device-location tracking bound to one map surface.

:class:`LocationTracker` is a two-state machine (``IDLE`` / ``TRACKING``)
that owns at most one provider subscription and at most one marker. Every
subscription carries its own :class:`SubscriptionToken`; callbacks holding a
cancelled token are ignored, so a fix delivered after :meth:`LocationTracker.stop`
can never recreate the marker.
"""

from __future__ import annotations

import enum
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from functools import partial
from typing import Callable, Deque, Dict, Hashable, Iterable, Optional, Tuple, Union

from .config import (
    TRACKING_MARKER_COLOR,
    TRACKING_MARKER_POPUP,
    TRACKING_MARKER_SCALE,
)
from .errors import (
    LocationPermissionDeniedError,
    LocationTimeoutError,
    LocationTrackingError,
    LocationUnavailableError,
    LocationUnsupportedError,
)
from .models import LocationOptions, PositionFix
from .surface.base import MapSurface, MarkerHandle

LOGGER = logging.getLogger(__name__)

LocationCallback = Callable[[float, float, float], object]
ErrorCallback = Callable[[LocationTrackingError], object]
FixHandler = Callable[[PositionFix], None]
FixErrorHandler = Callable[[Union[LocationTrackingError, int]], None]

_ERRORS_BY_CODE = {
    LocationPermissionDeniedError.code: LocationPermissionDeniedError,
    LocationUnavailableError.code: LocationUnavailableError,
    LocationTimeoutError.code: LocationTimeoutError,
}

__all__ = [
    "LocationProvider",
    "LocationTracker",
    "NullLocationProvider",
    "ReplayLocationProvider",
    "SubscriptionToken",
    "TrackerState",
    "classify_location_error",
]


def classify_location_error(error: Union[LocationTrackingError, int]) -> LocationTrackingError:
    """Normalise a provider error (exception or geolocation code) to our hierarchy."""

    if isinstance(error, LocationTrackingError):
        return error
    error_cls = _ERRORS_BY_CODE.get(int(error), LocationUnavailableError)
    return error_cls()


class TrackerState(enum.Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class SubscriptionToken:
    """Cancellation flag owned by exactly one provider subscription."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    @property
    def active(self) -> bool:
        return not self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()


class LocationProvider(ABC):
    """Device location service: a continuous, cancellable position subscription."""

    @abstractmethod
    def is_available(self) -> bool: ...

    @abstractmethod
    def watch_position(
        self,
        on_fix: FixHandler,
        on_error: FixErrorHandler,
        options: LocationOptions,
    ) -> Hashable: ...

    @abstractmethod
    def clear_watch(self, handle: Hashable) -> None: ...


class NullLocationProvider(LocationProvider):
    """Provider for hosts without any location capability."""

    def is_available(self) -> bool:
        return False

    def watch_position(self, on_fix, on_error, options) -> Hashable:
        raise LocationUnsupportedError()

    def clear_watch(self, handle: Hashable) -> None:
        return None


ReplayItem = Union[PositionFix, LocationTrackingError, int]


class ReplayLocationProvider(LocationProvider):
    """Deliver recorded fixes (and errors) to live watches in order.

    ``push`` delivers one item immediately; ``play`` drains the queue given at
    construction time. Cleared watches receive nothing further.
    """

    def __init__(self, items: Iterable[ReplayItem] = (), *, available: bool = True) -> None:
        self.available = available
        self._queue: Deque[ReplayItem] = deque(items)
        self._watches: Dict[int, Tuple[FixHandler, FixErrorHandler, LocationOptions]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        return self.available

    def watch_position(
        self,
        on_fix: FixHandler,
        on_error: FixErrorHandler,
        options: LocationOptions,
    ) -> int:
        with self._lock:
            handle = next(self._ids)
            self._watches[handle] = (on_fix, on_error, options)
        return handle

    def clear_watch(self, handle: Hashable) -> None:
        with self._lock:
            self._watches.pop(handle, None)  # type: ignore[arg-type]

    @property
    def active_watch_count(self) -> int:
        with self._lock:
            return len(self._watches)

    def push(self, item: ReplayItem) -> int:
        """Deliver ``item`` to every live watch; return how many received it."""

        with self._lock:
            watches = list(self._watches.values())
        for on_fix, on_error, _options in watches:
            if isinstance(item, PositionFix):
                on_fix(item)
            else:
                on_error(item)
        return len(watches)

    def play(self) -> int:
        """Drain the queued items in order; return how many were delivered."""

        delivered = 0
        while self._queue:
            self.push(self._queue.popleft())
            delivered += 1
        return delivered


class LocationTracker:
    """Owns at most one live location watch and its marker."""

    def __init__(self, provider: LocationProvider | None = None) -> None:
        self.provider = provider or NullLocationProvider()
        self._lock = threading.RLock()
        self._state = TrackerState.IDLE
        self._token: Optional[SubscriptionToken] = None
        self._handle: Optional[Hashable] = None
        self._marker: Optional[MarkerHandle] = None
        self._surface: Optional[MapSurface] = None

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def is_tracking(self) -> bool:
        return self._state is TrackerState.TRACKING

    @property
    def marker(self) -> Optional[MarkerHandle]:
        return self._marker

    @property
    def surface(self) -> Optional[MapSurface]:
        return self._surface

    def start(
        self,
        surface: MapSurface,
        callback: LocationCallback,
        options: LocationOptions | None = None,
        *,
        on_error: ErrorCallback | None = None,
    ) -> bool:
        """Begin tracking on ``surface``; replaces any running subscription.

        Returns ``False`` (and reports :class:`LocationUnsupportedError`) when
        the provider has no location capability.
        """

        if not self.provider.is_available():
            error = LocationUnsupportedError()
            LOGGER.error("%s", error)
            if on_error is not None:
                on_error(error)
            return False

        with self._lock:
            self.stop()
            token = SubscriptionToken()
            self._token = token
            self._surface = surface
            self._state = TrackerState.TRACKING
            try:
                self._handle = self.provider.watch_position(
                    partial(self._handle_fix, token, surface, callback),
                    partial(self._handle_error, token, on_error),
                    options or LocationOptions(),
                )
            except Exception as exc:
                self.stop()
                if isinstance(exc, LocationTrackingError):
                    error = exc
                else:
                    error = LocationUnavailableError()
                    error.__cause__ = exc
                LOGGER.error("Could not start location tracking: %s (%r)", error, exc)
                if on_error is not None:
                    on_error(error)
                return False
        LOGGER.info("Location tracking started on surface %s", surface.container_id)
        return True

    def stop(self) -> None:
        """Cancel the subscription and remove the marker. No-op when idle."""

        with self._lock:
            if self._state is TrackerState.IDLE and self._marker is None:
                return
            if self._token is not None:
                self._token.cancel()
            if self._handle is not None:
                self.provider.clear_watch(self._handle)
            if self._marker is not None:
                self._marker.remove()
            surface = self._surface
            self._token = None
            self._handle = None
            self._marker = None
            self._surface = None
            self._state = TrackerState.IDLE
        if surface is not None:
            LOGGER.info("Location tracking stopped on surface %s", surface.container_id)

    def _handle_fix(
        self,
        token: SubscriptionToken,
        surface: MapSurface,
        callback: LocationCallback,
        fix: PositionFix,
    ) -> None:
        lon, lat = fix.coordinate
        with self._lock:
            if not token.active:
                LOGGER.debug("Ignoring location fix for a cancelled subscription")
                return
            if self._marker is None:
                self._marker = surface.add_marker(
                    fix.coordinate,
                    color=TRACKING_MARKER_COLOR,
                    scale=TRACKING_MARKER_SCALE,
                    popup_html=TRACKING_MARKER_POPUP,
                )
            else:
                self._marker.set_position(fix.coordinate)
            surface.set_center(fix.coordinate)
        callback(lon, lat, fix.accuracy_m)

    def _handle_error(
        self,
        token: SubscriptionToken,
        on_error: ErrorCallback | None,
        error: Union[LocationTrackingError, int],
    ) -> None:
        if not token.active:
            LOGGER.debug("Ignoring location error for a cancelled subscription")
            return
        classified = classify_location_error(error)
        LOGGER.error("Error getting location: %s", classified)
        if on_error is not None:
            on_error(classified)
