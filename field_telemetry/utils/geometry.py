"""
Geodesic helpers shared by geofence verification.

All functions here are pure and safe to call from any thread.
"""

import math
from typing import Sequence

from field_telemetry.models import Point

EARTH_RADIUS_METERS = 6_371_000.0  # mean Earth radius


def validate_coordinates(lat: float, lng: float) -> bool:
    """Return True iff ``lat`` is in [-90, 90] and ``lng`` in [-180, 180], bounds inclusive.

    Never raises: NaN and non-numeric input simply fail the check.
    """
    try:
        return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0
    except TypeError:
        return False


def calculate_haversine_distance(p1: Point, p2: Point) -> float:
    """
    Great-circle distance between two points on a spherical Earth.

    Args:
        p1: First point in decimal degrees
        p2: Second point in decimal degrees

    Returns:
        Distance in meters (always >= 0)
    """
    phi1 = math.radians(p1.lat)
    phi2 = math.radians(p2.lat)
    d_phi = math.radians(p2.lat - p1.lat)
    d_lambda = math.radians(p2.lng - p1.lng)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # Rounding can push a just outside [0, 1] for near-antipodal points
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_METERS * c


def is_point_in_polygon(point: Point, vertices: Sequence[Point]) -> bool:
    """
    Even-odd ray casting test.

    Latitude and longitude are treated as planar (y, x) coordinates, which is
    only accurate for fences spanning a small area. The polygon is implicitly
    closed. Points exactly on an edge may fall either way.

    Args:
        point: Location to test
        vertices: Ordered polygon vertices (at least 3)

    Returns:
        True if the point lies inside the polygon
    """
    inside = False
    x, y = point.lng, point.lat
    j = len(vertices) - 1

    for i in range(len(vertices)):
        xi, yi = vertices[i].lng, vertices[i].lat
        xj, yj = vertices[j].lng, vertices[j].lat

        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i

    return inside
