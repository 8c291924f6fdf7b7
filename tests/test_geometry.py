"""
Tests for coordinate validation, haversine distance and point-in-polygon.

Property tests use hypothesis over the full valid coordinate range.
"""

import math

import pytest
from hypothesis import given, settings, strategies as st

from field_telemetry.models import Point
from field_telemetry.utils.geometry import (
    EARTH_RADIUS_METERS,
    calculate_haversine_distance,
    is_point_in_polygon,
    validate_coordinates
)

valid_latitude = st.floats(min_value=-90, max_value=90, allow_nan=False)
valid_longitude = st.floats(min_value=-180, max_value=180, allow_nan=False)
valid_point = st.builds(Point, lat=valid_latitude, lng=valid_longitude)

UNIT_SQUARE = [
    Point(lat=0, lng=0),
    Point(lat=0, lng=1),
    Point(lat=1, lng=1),
    Point(lat=1, lng=0),
]


class TestValidateCoordinates:
    """Test suite for validate_coordinates."""

    @given(valid_latitude, valid_longitude)
    def test_accepts_valid_coordinates(self, lat, lng):
        assert validate_coordinates(lat, lng) is True

    @given(
        st.one_of(
            st.floats(min_value=90.001, max_value=1000),
            st.floats(min_value=-1000, max_value=-90.001)
        ),
        valid_longitude
    )
    def test_rejects_invalid_latitudes(self, lat, lng):
        assert validate_coordinates(lat, lng) is False

    @given(
        valid_latitude,
        st.one_of(
            st.floats(min_value=180.001, max_value=1000),
            st.floats(min_value=-1000, max_value=-180.001)
        )
    )
    def test_rejects_invalid_longitudes(self, lat, lng):
        assert validate_coordinates(lat, lng) is False

    def test_boundary_values_are_valid(self):
        assert validate_coordinates(90, 180) is True
        assert validate_coordinates(-90, -180) is True
        assert validate_coordinates(0, 0) is True

    def test_never_raises_on_malformed_input(self):
        assert validate_coordinates(math.nan, 0) is False
        assert validate_coordinates(0, math.inf) is False
        assert validate_coordinates(None, 0) is False
        assert validate_coordinates("north", "east") is False


class TestHaversineDistance:
    """Test suite for calculate_haversine_distance."""

    @given(valid_point, valid_point)
    def test_non_negative(self, p1, p2):
        assert calculate_haversine_distance(p1, p2) >= 0

    @given(valid_point, valid_point)
    def test_symmetric(self, p1, p2):
        assert calculate_haversine_distance(p1, p2) == pytest.approx(
            calculate_haversine_distance(p2, p1), abs=1e-6
        )

    @given(valid_point)
    def test_zero_for_identical_points(self, p):
        assert calculate_haversine_distance(p, p) == 0

    @settings(max_examples=50)
    @given(valid_point, valid_point, valid_point)
    def test_triangle_inequality(self, a, b, c):
        d_ab = calculate_haversine_distance(a, b)
        d_bc = calculate_haversine_distance(b, c)
        d_ac = calculate_haversine_distance(a, c)
        assert d_ac <= d_ab + d_bc + 0.001

    def test_known_distances(self):
        # One degree of longitude on the equator
        one_degree = calculate_haversine_distance(Point(lat=0, lng=0), Point(lat=0, lng=1))
        assert one_degree == pytest.approx(EARTH_RADIUS_METERS * math.pi / 180)

        # Pole to pole is half the circumference
        pole_to_pole = calculate_haversine_distance(Point(lat=90, lng=0), Point(lat=-90, lng=0))
        assert pole_to_pole == pytest.approx(EARTH_RADIUS_METERS * math.pi)

    def test_antipodal_points_do_not_produce_nan(self):
        distance = calculate_haversine_distance(Point(lat=0, lng=0), Point(lat=0, lng=180))
        assert distance == pytest.approx(EARTH_RADIUS_METERS * math.pi)


class TestPointInPolygon:
    """Test suite for is_point_in_polygon."""

    @given(
        st.floats(min_value=0.01, max_value=0.99),
        st.floats(min_value=0.01, max_value=0.99)
    )
    def test_points_inside_square(self, lat, lng):
        assert is_point_in_polygon(Point(lat=lat, lng=lng), UNIT_SQUARE) is True

    def test_points_outside_square(self):
        assert is_point_in_polygon(Point(lat=2, lng=2), UNIT_SQUARE) is False
        assert is_point_in_polygon(Point(lat=-1, lng=0.5), UNIT_SQUARE) is False
        assert is_point_in_polygon(Point(lat=0.5, lng=-1), UNIT_SQUARE) is False

    def test_vertex_order_does_not_matter(self):
        reversed_square = list(reversed(UNIT_SQUARE))
        assert is_point_in_polygon(Point(lat=0.5, lng=0.5), reversed_square) is True
        assert is_point_in_polygon(Point(lat=1.5, lng=0.5), reversed_square) is False

    def test_concave_polygon(self):
        # L-shape: the notch at the upper right is outside
        l_shape = [
            Point(lat=0, lng=0),
            Point(lat=0, lng=2),
            Point(lat=1, lng=2),
            Point(lat=1, lng=1),
            Point(lat=2, lng=1),
            Point(lat=2, lng=0),
        ]
        assert is_point_in_polygon(Point(lat=0.5, lng=1.5), l_shape) is True
        assert is_point_in_polygon(Point(lat=1.5, lng=0.5), l_shape) is True
        assert is_point_in_polygon(Point(lat=1.5, lng=1.5), l_shape) is False
