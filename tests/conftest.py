"""Global pytest fixtures & helpers.

Adds project root to path and provides fake HTTP sessions, an inline executor
and map surface fixtures shared across the test modules.
"""
from __future__ import annotations

import json
import os
import sys
from concurrent.futures import Executor, Future

import pytest
import requests

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fieldmap.clients import GeocodingClient, RoutingClient
from fieldmap.icons import IconResolver
from fieldmap.registry import MapSessionRegistry
from fieldmap.surface import FoliumSurface
from fieldmap.tracking import LocationTracker, ReplayLocationProvider


class FakeResp:
    def __init__(self, status_code=200, data=None, text=None, content=b""):
        self.status_code = status_code
        self._data = data
        self._text = text
        self.content = content
        self.url = "http://fake"

    def json(self):
        if isinstance(self._data, Exception):  # force JSON error
            raise self._data
        return self._data

    @property
    def text(self):  # emulate .text attribute for snippet logging
        if self._text is not None:
            return self._text
        try:
            return json.dumps(self._data)
        except Exception:
            return str(self._data)


class FakeSession:
    """Session double returning queued responses (or raising queued errors)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if not self.responses:
            raise requests.ConnectionError("no response queued")
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


class InlineExecutor(Executor):
    """Run submitted work immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # pragma: no cover - surfaced via future
            future.set_exception(exc)
        return future


# --- Factory helpers -------------------------------------------------
def make_photon_feature(lon, lat, **properties):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": properties,
    }


def make_ors_route(coordinates, distance=1234.5, duration=321.0):
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"summary": {"distance": distance, "duration": duration}},
                "geometry": {"type": "LineString", "coordinates": coordinates},
            }
        ],
    }


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def surface():
    return FoliumSurface("map-test", center=(28.0473, -26.2041), zoom=10)


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def fake_resp():
    return FakeResp


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def photon_feature():
    return make_photon_feature


@pytest.fixture
def ors_route():
    return make_ors_route


def build_registry(geo_responses=(), route_responses=(), provider=None):
    """Registry wired to fake HTTP sessions, an inline icon executor and a replay provider."""

    geo_session = FakeSession(*geo_responses)
    route_session = FakeSession(*route_responses)
    registry = MapSessionRegistry(
        tracker=LocationTracker(provider or ReplayLocationProvider()),
        icon_resolver=IconResolver(session=FakeSession(), executor=InlineExecutor()),
        geocoder=GeocodingClient(geo_session, base_url="https://geo.test"),
        router=RoutingClient(route_session, base_url="https://ors.test"),
    )
    registry.geo_session = geo_session
    registry.route_session = route_session
    return registry


@pytest.fixture
def make_registry():
    return build_registry


@pytest.fixture
def registry():
    reg = build_registry()
    yield reg
    reg.close()
