"""Tests for the fail-soft geocoding client."""

from __future__ import annotations

import logging

import pytest
import requests

from fieldmap.clients.geocoding import GeocodingClient, build_display_name
from fieldmap.models import Coordinate


def _client(session) -> GeocodingClient:
    return GeocodingClient(session, base_url="https://geo.test/", timeout=3)


def test_geocode_returns_first_match(fake_session, fake_resp, photon_feature):
    features = [
        photon_feature(
            28.05,
            -26.1,
            housenumber="12",
            street="Main Rd",
            suburb="Rosebank",
            city="Johannesburg",
            state="Gauteng",
            country="South Africa",
            postcode="2196",
            countrycode="ZA",
        ),
        photon_feature(18.4, -33.9, name="Second", countrycode="ZA"),
    ]
    session = fake_session(fake_resp(200, {"features": features}))

    result = _client(session).geocode_address("  12 Main Rd  ")

    assert result is not None
    assert result.coordinate == Coordinate(28.05, -26.1)
    assert result.display_name == (
        "12, Main Rd, Rosebank, Johannesburg, Gauteng, South Africa"
    )
    assert result.address.postcode == "2196"
    call = session.calls[0]
    assert call["url"] == "https://geo.test/api"
    assert call["params"]["q"] == "12 Main Rd"
    assert call["params"]["countrycodes"] == "za"
    assert call["timeout"] == 3
    assert len(session.calls) == 1


def test_geocode_skips_matches_outside_country(fake_session, fake_resp, photon_feature):
    features = [
        photon_feature(-0.12, 51.5, name="London", countrycode="GB"),
        photon_feature(28.0, -26.2, name="Jozi", countrycode="ZA"),
    ]
    session = fake_session(fake_resp(200, {"features": features}))

    result = _client(session).geocode_address("somewhere")

    assert result is not None
    assert result.display_name == "Jozi"


def test_country_scope_is_configurable(fake_session, fake_resp, photon_feature):
    features = [photon_feature(-0.12, 51.5, name="London", countrycode="GB")]
    session = fake_session(fake_resp(200, {"features": features}))
    client = GeocodingClient(session, base_url="https://geo.test", country_code="GB")

    result = client.geocode_address("London")

    assert result is not None
    assert session.calls[0]["params"]["countrycodes"] == "gb"


def test_geocode_zero_results_is_none(fake_session, fake_resp):
    session = fake_session(fake_resp(200, {"features": []}))
    assert _client(session).geocode_address("nowhere") is None


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("down"),
        requests.Timeout("slow"),
        "http-500",
        "bad-json",
        "wrong-shape",
        "bad-feature",
    ],
)
def test_geocode_failures_are_soft(fake_session, fake_resp, response, caplog):
    if response == "http-500":
        response = fake_resp(500, {"message": "boom"})
    elif response == "bad-json":
        response = fake_resp(200, ValueError("not json"))
    elif response == "wrong-shape":
        response = fake_resp(200, ["not", "an", "object"])
    elif response == "bad-feature":
        response = fake_resp(200, {"features": [{"geometry": None}]})
    session = fake_session(response)

    with caplog.at_level(logging.WARNING):
        assert _client(session).geocode_address("Main Rd") is None
    assert "geocoding failed" in caplog.text.lower()


def test_blank_address_makes_no_request(fake_session):
    session = fake_session()
    assert _client(session).geocode_address("   ") is None
    assert session.calls == []


def test_reverse_geocode_returns_display_name(fake_session, fake_resp, photon_feature):
    feature = photon_feature(28.0, -26.0, street="Jan Smuts Ave", city="Johannesburg")
    session = fake_session(fake_resp(200, {"features": [feature]}))

    name = _client(session).reverse_geocode(Coordinate(28.01, -26.02))

    assert name == "Jan Smuts Ave, Johannesburg"
    params = session.calls[0]["params"]
    assert session.calls[0]["url"] == "https://geo.test/reverse"
    assert params == {"lat": -26.02, "lon": 28.01, "limit": 1}


def test_reverse_geocode_result_keeps_requested_point(
    fake_session, fake_resp, photon_feature
):
    feature = photon_feature(28.0, -26.0, name="Park")
    session = fake_session(fake_resp(200, {"features": [feature]}))

    result = _client(session).reverse_geocode_result((28.01, -26.02))

    assert result is not None
    assert result.coordinate == Coordinate(28.01, -26.02)
    assert result.display_name == "Park"


def test_reverse_geocode_failures_are_soft(fake_session, fake_resp):
    assert _client(fake_session(requests.ConnectionError())).reverse_geocode((0, 0)) is None
    assert _client(fake_session(fake_resp(404, None))).reverse_geocode((0, 0)) is None
    assert _client(fake_session(fake_resp(200, {"features": []}))).reverse_geocode((0, 0)) is None


def test_display_name_falls_back_to_name_then_unknown():
    assert build_display_name({"name": "Landmark"}) == "Landmark"
    assert build_display_name({}) == "Unknown location"
    assert build_display_name({"town": "Parys", "county": "Fezile Dabi"}) == (
        "Parys, Fezile Dabi"
    )
