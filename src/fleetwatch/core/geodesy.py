"""
FleetWatch Geodesy Kernel

Spherical-Earth primitives shared by the hotspot analytics and the proximity
tracker. Everything here is a pure function; no state.

The Haversine distance and the destination-point projection use the same
Earth radius, so projecting a point `d` metres away and measuring it back
returns `d` up to floating point error.
"""

from __future__ import annotations

import math

import numpy as np

from ..models import Coordinate


EARTH_RADIUS_METERS = 6_371_000.0
EARTH_RADIUS_KM = EARTH_RADIUS_METERS / 1000


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180)


def to_degrees(radians: float) -> float:
    return radians * (180 / math.pi)


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in meters
    """
    phi1 = to_radians(lat1)
    phi2 = to_radians(lat2)
    delta_phi = to_radians(lat2 - lat1)
    delta_lambda = to_radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # Rounding can push `a` a hair past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in meters."""
    return haversine_meters(a.latitude, a.longitude, b.latitude, b.longitude)


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    return distance_meters(a, b) / 1000


def destination_point(
    origin: Coordinate, distance_meters: float, bearing_degrees: float
) -> Coordinate:
    """
    Project a point along a great circle.

    Args:
        origin: Starting position
        distance_meters: Distance to travel in meters
        bearing_degrees: Initial bearing (0 = north, 90 = east, clockwise)

    Returns:
        Destination coordinate, longitude normalised to [-180, 180)
    """
    delta = distance_meters / EARTH_RADIUS_METERS  # angular distance
    theta = to_radians(bearing_degrees)

    phi1 = to_radians(origin.latitude)
    lambda1 = to_radians(origin.longitude)

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) +
        math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )

    latitude = max(-90.0, min(90.0, to_degrees(phi2)))
    longitude = (to_degrees(lambda2) + 540) % 360 - 180
    return Coordinate(latitude=latitude, longitude=longitude)


def distances_from_km(
    latitudes: np.ndarray, longitudes: np.ndarray, index: int
) -> np.ndarray:
    """
    Haversine distances from point `index` to every point, in kilometres.

    Args:
        latitudes, longitudes: Point coordinates in radians (convert the
            batch once with np.radians)
        index: Position of the reference point

    Returns:
        One distance per point; entry `index` is zero
    """
    phi = latitudes[index]
    dphi = latitudes - phi
    dlambda = longitudes - longitudes[index]

    a = (
        np.sin(dphi / 2) ** 2 +
        np.cos(phi) * np.cos(latitudes) * np.sin(dlambda / 2) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c
