"""
Geospatial helpers.

All distances are kilometres on a sphere of mean Earth radius. `haversine_km` is the
reference metric behind every displayed distance; the other two helpers are the cheaper
(or differently-shaped) metrics used inside the spatial index.
"""

from __future__ import annotations

from math import acos, atan2, cos, radians, sin, sqrt

from doctorfinder.domain.models import GeoPoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in kilometres between two points (Haversine, atan2 form)."""
    d_lat = radians(b.lat - a.lat)
    d_lng = radians(b.lng - a.lng)
    h = sin(d_lat / 2) ** 2 + cos(radians(a.lat)) * cos(radians(b.lat)) * sin(d_lng / 2) ** 2
    # Rounding can push h a hair past 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * atan2(sqrt(h), sqrt(1 - h))


def wrap_lng_delta(d_lng: float) -> float:
    """Normalize a longitude difference into [-180, 180]."""
    return (d_lng + 180.0) % 360.0 - 180.0


def equirectangular_km(a: GeoPoint, b: GeoPoint) -> float:
    """Planar distance after an equirectangular projection around the mean latitude.

    Accurate to well under 1% at city scale; diverges from Haversine at large radii and
    near the poles.
    """
    mean_lat = radians((a.lat + b.lat) / 2)
    x = radians(wrap_lng_delta(b.lng - a.lng)) * cos(mean_lat)
    y = radians(b.lat - a.lat)
    return EARTH_RADIUS_KM * sqrt(x * x + y * y)


def unit_vector(p: GeoPoint) -> tuple[float, float, float]:
    """Position of `p` on the unit sphere (earth-centred, earth-fixed axes)."""
    lat = radians(p.lat)
    lng = radians(p.lng)
    return (cos(lat) * cos(lng), cos(lat) * sin(lng), sin(lat))


def central_angle_rad(a: GeoPoint, b: GeoPoint) -> float:
    """Angle subtended at the Earth's centre, from the dot product of unit vectors."""
    ax, ay, az = unit_vector(a)
    bx, by, bz = unit_vector(b)
    dot = ax * bx + ay * by + az * bz
    return acos(min(1.0, max(-1.0, dot)))
