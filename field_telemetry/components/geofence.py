"""
Geofence verification for sensor and worker location claims.

Circle fences support a tolerance band: a point beyond the radius but within
radius + tolerance is reported as ``within_tolerance`` and is not verified.
Polygon fences have no tolerance band and use a planar ray-casting test, so
they are only accurate for fences covering a small area.

"Not verified" is a normal outcome. Nothing here raises for a bad location.
"""

import math
from typing import Optional

import pandas as pd

from field_telemetry.components.base import VerificationComponent
from field_telemetry.config import PipelineConfig
from field_telemetry.models import (
    CheckInStatus,
    CircleGeofence,
    Geofence,
    Point,
    PolygonGeofence,
    VerificationResult,
    VerificationStatus
)
from field_telemetry.utils import VerificationError, get_logger, log_stats_summary
from field_telemetry.utils.geometry import (
    calculate_haversine_distance,
    is_point_in_polygon,
    validate_coordinates
)

MANUAL_STATUS = CheckInStatus.MANUAL.value


def verify_point_in_circle(
    point: Point,
    center: Point,
    radius_meters: float,
    tolerance_meters: float = 0.0
) -> VerificationResult:
    """
    Verify a point against a circular fence.

    Args:
        point: Location claim
        center: Fence center
        radius_meters: Strict boundary radius
        tolerance_meters: Extra margin reported as within tolerance

    Returns:
        Verification result including the distance to the center
    """
    distance = calculate_haversine_distance(point, center)

    if distance <= radius_meters:
        return VerificationResult(
            verified=True,
            distance_meters=distance,
            within_tolerance=False,
            status=VerificationStatus.VERIFIED
        )

    if distance <= radius_meters + tolerance_meters:
        return VerificationResult(
            verified=False,
            distance_meters=distance,
            within_tolerance=True,
            status=VerificationStatus.WITHIN_TOLERANCE
        )

    return VerificationResult(
        verified=False,
        distance_meters=distance,
        within_tolerance=False,
        status=VerificationStatus.OUTSIDE_GEOFENCE
    )


def verify_point_in_polygon(point: Point, fence: PolygonGeofence) -> VerificationResult:
    """Verify a point against a polygon fence. No tolerance band applies."""
    if is_point_in_polygon(point, fence.vertices):
        return VerificationResult(verified=True, status=VerificationStatus.VERIFIED)
    return VerificationResult(verified=False, status=VerificationStatus.OUTSIDE_GEOFENCE)


def verify_location_in_geofence(point: Point, fence: Geofence) -> VerificationResult:
    """
    Verify a location claim against either kind of fence.

    Malformed coordinates are reported as ``outside_geofence`` rather than raised.
    """
    if not validate_coordinates(point.lat, point.lng):
        return VerificationResult(verified=False, status=VerificationStatus.OUTSIDE_GEOFENCE)

    if isinstance(fence, CircleGeofence):
        return verify_point_in_circle(point, fence.center, fence.radius_meters, fence.tolerance_meters)

    return verify_point_in_polygon(point, fence)


def resolve_check_in_status(point: Point, fence: Optional[Geofence]) -> CheckInStatus:
    """
    Status to record for a worker check-in.

    Within-tolerance check-ins are recorded as outside the geofence; only a
    verified location counts. Without a fence the check-in is manual.
    """
    if fence is None:
        return CheckInStatus.MANUAL

    result = verify_location_in_geofence(point, fence)
    return CheckInStatus.VERIFIED if result.verified else CheckInStatus.OUTSIDE_GEOFENCE


class GeofenceVerificationComponent(VerificationComponent):
    """Verifies per-reading location claims against each sensor's configured fence."""

    def __init__(self, config: PipelineConfig):
        super().__init__(config)
        self.logger = get_logger(__name__)

        self.stats = {
            "records_checked": 0,
            "verified": 0,
            "within_tolerance": 0,
            "outside_geofence": 0,
            "manual": 0
        }

    def execute(self, readings: pd.DataFrame) -> pd.DataFrame:
        """
        Verify location claims.

        Rows without lat/lng, or whose sensor has no fence, are marked ``manual``.

        Args:
            readings: Readings, optionally with lat and lng columns

        Returns:
            Readings with verification_status and distance_meters columns
        """
        self.reset_stats()

        try:
            verified = readings.copy()
            has_location = {"lat", "lng"}.issubset(verified.columns)

            statuses = []
            distances = []
            for row in verified.itertuples(index=False):
                fence = self.config.get_geofence(row.sensor_id)
                point = self._location_of(row) if has_location else None

                if fence is None or point is None:
                    statuses.append(MANUAL_STATUS)
                    distances.append(None)
                    continue

                result = verify_location_in_geofence(point, fence)
                statuses.append(result.status.value)
                distances.append(result.distance_meters)

                if result.status is VerificationStatus.OUTSIDE_GEOFENCE:
                    self.logger.warning(f"Location claim from {row.sensor_id} is outside its geofence")

            verified["verification_status"] = pd.Series(statuses, index=verified.index, dtype=object)
            verified["distance_meters"] = pd.Series(distances, index=verified.index, dtype=float)

            self.stats["records_checked"] = len(verified)
            for status in statuses:
                self.stats[status] += 1

            log_stats_summary(self.logger, "Geofence Verification", self.stats)
            return verified

        except Exception as e:
            self.logger.error(f"Geofence verification failed: {str(e)}")
            raise VerificationError(f"Geofence verification failed: {str(e)}") from e

    @staticmethod
    def _location_of(row) -> Optional[Point]:
        """Build a Point from a row, or None if the row carries no location."""
        lat, lng = row.lat, row.lng
        if lat is None or lng is None:
            return None
        try:
            lat, lng = float(lat), float(lng)
        except (TypeError, ValueError):
            # Unparseable coordinates are reported as outside, like out-of-range ones
            return Point(lat=math.nan, lng=math.nan)
        if math.isnan(lat) and math.isnan(lng):
            return None
        return Point(lat=lat, lng=lng)
