import math

import pytest
from pydantic import ValidationError

from doctorfinder.core.geo import (
    EARTH_RADIUS_KM,
    central_angle_rad,
    equirectangular_km,
    haversine_km,
    wrap_lng_delta,
)
from doctorfinder.domain.errors import InvalidCoordinates
from doctorfinder.domain.models import GeoPoint

BANGALORE = GeoPoint(lat=12.9716, lng=77.5946)

POINTS = [
    BANGALORE,
    GeoPoint(lat=0.0, lng=0.0),
    GeoPoint(lat=51.5034, lng=-0.1276),
    GeoPoint(lat=-33.8688, lng=151.2093),
    GeoPoint(lat=89.9, lng=-179.9),
    GeoPoint(lat=-90.0, lng=180.0),
]


@pytest.mark.parametrize("a", POINTS)
@pytest.mark.parametrize("b", POINTS)
def test_haversine_is_symmetric_and_non_negative(a, b):
    d = haversine_km(a, b)
    assert d >= 0
    assert d == pytest.approx(haversine_km(b, a), abs=1e-9)


@pytest.mark.parametrize("p", POINTS)
def test_haversine_distance_to_self_is_zero(p):
    assert haversine_km(p, p) == pytest.approx(0.0, abs=1e-9)


def test_haversine_bangalore_sanity():
    north = GeoPoint(lat=BANGALORE.lat + 0.01, lng=BANGALORE.lng)
    assert round(haversine_km(BANGALORE, north), 2) == 1.11


def test_haversine_antipodes_is_half_circumference():
    d = haversine_km(GeoPoint(lat=0.0, lng=0.0), GeoPoint(lat=0.0, lng=180.0))
    assert d == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-12)


def test_index_metrics_agree_with_haversine_at_city_scale():
    other = GeoPoint(lat=12.98, lng=77.60)
    ref = haversine_km(BANGALORE, other)
    assert equirectangular_km(BANGALORE, other) == pytest.approx(ref, rel=1e-3)
    assert central_angle_rad(BANGALORE, other) * EARTH_RADIUS_KM == pytest.approx(ref, rel=1e-6)


def test_equirectangular_wraps_the_antimeridian():
    a = GeoPoint(lat=0.0, lng=179.95)
    b = GeoPoint(lat=0.0, lng=-179.95)
    assert equirectangular_km(a, b) == pytest.approx(haversine_km(a, b), rel=1e-6)
    assert wrap_lng_delta(359.0) == pytest.approx(-1.0)


@pytest.mark.parametrize(
    "lat,lng",
    [(91, 0), (-90.5, 0), (0, 180.01), (float("nan"), 0), (0, float("inf")), ("12.9", 77.5), (True, 1), (None, 1)],
)
def test_geopoint_rejects_invalid_coordinates(lat, lng):
    with pytest.raises(InvalidCoordinates):
        GeoPoint.of(lat, lng)


def test_geopoint_accepts_ints_and_is_frozen():
    p = GeoPoint.of(12, 77)
    assert (p.lat, p.lng) == (12.0, 77.0)
    with pytest.raises(ValidationError):
        p.lat = 1.0
