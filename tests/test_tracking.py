"""Tests for the location tracker state machine."""

from __future__ import annotations

import logging

import pytest

from fieldmap.errors import (
    LocationPermissionDeniedError,
    LocationTimeoutError,
    LocationTrackingError,
    LocationUnavailableError,
    LocationUnsupportedError,
)
from fieldmap.models import Coordinate, LocationOptions, PositionFix
from fieldmap.tracking import (
    LocationProvider,
    LocationTracker,
    ReplayLocationProvider,
    TrackerState,
    classify_location_error,
)


def _fix(lon: float, lat: float, accuracy: float = 5.0) -> PositionFix:
    return PositionFix(Coordinate(lon, lat), accuracy)


class CapturingProvider(LocationProvider):
    """Keeps every watch's callbacks, even after the watch is cleared."""

    def __init__(self):
        self.watches = {}
        self.cleared = []
        self.options = []

    def is_available(self):
        return True

    def watch_position(self, on_fix, on_error, options):
        handle = len(self.watches) + 1
        self.watches[handle] = (on_fix, on_error)
        self.options.append(options)
        return handle

    def clear_watch(self, handle):
        self.cleared.append(handle)


def test_stop_while_idle_is_noop():
    tracker = LocationTracker(ReplayLocationProvider())
    tracker.stop()
    tracker.stop()
    assert tracker.state is TrackerState.IDLE
    assert tracker.marker is None


def test_first_fix_creates_marker_then_moves_it(surface):
    provider = ReplayLocationProvider()
    tracker = LocationTracker(provider)
    updates = []

    assert tracker.start(surface, lambda *args: updates.append(args))
    assert tracker.state is TrackerState.TRACKING
    provider.push(_fix(28.0, -26.0, 12.0))
    marker = tracker.marker
    provider.push(_fix(28.1, -26.1, 8.0))

    assert updates == [(28.0, -26.0, 12.0), (28.1, -26.1, 8.0)]
    assert tracker.marker is marker
    assert len(surface.markers) == 1
    assert marker.position == Coordinate(28.1, -26.1)
    assert marker.color == "#007cbf"
    assert marker.scale == 1.2
    assert "Your Location" in marker.popup_html
    assert surface.center == Coordinate(28.1, -26.1)


def test_callbacks_follow_provider_order(surface):
    fixes = [_fix(float(i), 0.0) for i in range(5)]
    provider = ReplayLocationProvider(fixes)
    tracker = LocationTracker(provider)
    seen = []
    tracker.start(surface, lambda lon, lat, acc: seen.append(lon))

    assert provider.play() == 5
    assert seen == [0.0, 1.0, 2.0, 3.0, 4.0]


def test_stop_cancels_watch_and_removes_marker(surface):
    provider = ReplayLocationProvider()
    tracker = LocationTracker(provider)
    tracker.start(surface, lambda *a: None)
    provider.push(_fix(28.0, -26.0))

    tracker.stop()

    assert tracker.state is TrackerState.IDLE
    assert tracker.marker is None
    assert surface.markers == {}
    assert provider.active_watch_count == 0


def test_start_twice_keeps_exactly_one_subscription(surface):
    provider = CapturingProvider()
    tracker = LocationTracker(provider)

    tracker.start(surface, lambda *a: None)
    tracker.start(surface, lambda *a: None)

    assert list(provider.watches) == [1, 2]
    assert provider.cleared == [1]
    assert tracker.state is TrackerState.TRACKING


def test_replay_provider_start_twice_single_watch(surface):
    provider = ReplayLocationProvider()
    tracker = LocationTracker(provider)
    tracker.start(surface, lambda *a: None)
    tracker.start(surface, lambda *a: None)
    assert provider.active_watch_count == 1


def test_late_fix_after_stop_is_ignored(surface):
    provider = CapturingProvider()
    tracker = LocationTracker(provider)
    seen = []
    tracker.start(surface, lambda *a: seen.append(a))
    on_fix, _on_error = provider.watches[1]

    tracker.stop()
    on_fix(_fix(28.0, -26.0))

    assert seen == []
    assert tracker.marker is None
    assert surface.markers == {}
    assert tracker.state is TrackerState.IDLE


def test_late_fix_from_replaced_subscription_is_ignored(surface):
    provider = CapturingProvider()
    tracker = LocationTracker(provider)
    first, second = [], []
    tracker.start(surface, lambda *a: first.append(a))
    stale_on_fix = provider.watches[1][0]
    tracker.start(surface, lambda *a: second.append(a))

    stale_on_fix(_fix(1.0, 1.0))
    provider.watches[2][0](_fix(2.0, 2.0))

    assert first == []
    assert second == [(2.0, 2.0, 5.0)]
    assert len(surface.markers) == 1


def test_unsupported_provider_reports_and_stays_idle(surface, caplog):
    tracker = LocationTracker(ReplayLocationProvider(available=False))
    errors = []

    with caplog.at_level(logging.ERROR):
        started = tracker.start(surface, lambda *a: None, on_error=errors.append)

    assert started is False
    assert tracker.state is TrackerState.IDLE
    assert len(errors) == 1 and isinstance(errors[0], LocationUnsupportedError)
    assert "not supported" in caplog.text


def test_default_tracker_has_no_location_capability(surface):
    tracker = LocationTracker()
    assert tracker.start(surface, lambda *a: None) is False
    assert tracker.state is TrackerState.IDLE


@pytest.mark.parametrize(
    "error, expected, message",
    [
        (1, LocationPermissionDeniedError, "Location access denied by user."),
        (2, LocationUnavailableError, "Location information is unavailable."),
        (3, LocationTimeoutError, "Location request timed out."),
        (LocationTimeoutError(), LocationTimeoutError, "Location request timed out."),
    ],
)
def test_subscription_errors_are_classified(surface, error, expected, message):
    provider = ReplayLocationProvider()
    tracker = LocationTracker(provider)
    errors = []
    tracker.start(surface, lambda *a: None, on_error=errors.append)

    provider.push(error)

    assert len(errors) == 1
    assert type(errors[0]) is expected
    assert str(errors[0]) == message
    assert tracker.state is TrackerState.TRACKING


def test_late_error_after_stop_is_ignored(surface):
    provider = CapturingProvider()
    tracker = LocationTracker(provider)
    errors = []
    tracker.start(surface, lambda *a: None, on_error=errors.append)
    _on_fix, on_error = provider.watches[1]
    tracker.stop()

    on_error(1)

    assert errors == []


def test_options_are_forwarded(surface):
    provider = CapturingProvider()
    tracker = LocationTracker(provider)
    options = LocationOptions(enable_high_accuracy=False, timeout_ms=1000)
    tracker.start(surface, lambda *a: None, options)
    tracker.start(surface, lambda *a: None)
    assert provider.options[0] is options
    assert provider.options[1] == LocationOptions()


def test_unknown_error_code_maps_to_unavailable():
    assert isinstance(classify_location_error(99), LocationUnavailableError)
    assert isinstance(classify_location_error(1), LocationTrackingError)


def test_callback_may_stop_tracking(surface):
    provider = ReplayLocationProvider([_fix(1.0, 1.0), _fix(2.0, 2.0)])
    tracker = LocationTracker(provider)
    seen = []

    def callback(lon, lat, accuracy):
        seen.append(lon)
        tracker.stop()

    tracker.start(surface, callback)
    provider.play()

    assert seen == [1.0]
    assert tracker.state is TrackerState.IDLE
    assert surface.markers == {}


class FailingProvider(CapturingProvider):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    def watch_position(self, on_fix, on_error, options):
        raise self.exc


@pytest.mark.parametrize(
    "exc, expected",
    [
        (OSError("device busy"), LocationUnavailableError),
        (RuntimeError("backend crashed"), LocationUnavailableError),
        (LocationPermissionDeniedError(), LocationPermissionDeniedError),
    ],
)
def test_failed_watch_rolls_back_to_idle(surface, exc, expected, caplog):
    tracker = LocationTracker(FailingProvider(exc))
    errors = []

    with caplog.at_level(logging.ERROR):
        started = tracker.start(surface, lambda *a: None, on_error=errors.append)

    assert started is False
    assert tracker.state is TrackerState.IDLE
    assert not tracker.is_tracking
    assert tracker.surface is None
    assert len(errors) == 1 and type(errors[0]) is expected
    assert "could not start location tracking" in caplog.text.lower()


class FailOnSecondWatchProvider(CapturingProvider):
    def watch_position(self, on_fix, on_error, options):
        if self.watches:
            raise OSError("gone")
        return super().watch_position(on_fix, on_error, options)


def test_failed_watch_replacing_live_subscription_leaves_idle(surface):
    provider = FailOnSecondWatchProvider()
    tracker = LocationTracker(provider)
    tracker.start(surface, lambda *a: None)
    provider.watches[1][0](_fix(1.0, 1.0))

    assert tracker.start(surface, lambda *a: None) is False

    assert provider.cleared == [1]
    assert tracker.state is TrackerState.IDLE
    assert tracker.marker is None
    assert surface.markers == {}
