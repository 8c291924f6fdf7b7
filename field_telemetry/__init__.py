"""
Field Telemetry Pipeline

Ingestion, verification and aggregation of readings from IoT sensors and
field-worker check-ins: per-reading validation, fixed-window rate limiting,
geofence verification and hourly/daily rollups.
"""

__version__ = "1.0.0"

from field_telemetry.components import (
    aggregate_readings,
    check_rate_limit,
    check_thresholds,
    resolve_check_in_status,
    validate_ingestion,
    verify_location_in_geofence,
    verify_point_in_circle
)
from field_telemetry.utils.geometry import (
    calculate_haversine_distance,
    is_point_in_polygon,
    validate_coordinates
)
from field_telemetry.utils.timeutils import get_period_end, get_period_start

__all__ = [
    "aggregate_readings",
    "calculate_haversine_distance",
    "check_rate_limit",
    "check_thresholds",
    "get_period_end",
    "get_period_start",
    "is_point_in_polygon",
    "resolve_check_in_status",
    "validate_coordinates",
    "validate_ingestion",
    "verify_location_in_geofence",
    "verify_point_in_circle"
]
