"""
Pydantic models for data structures used throughout the pipeline.

These models carry readings, geofence definitions and the structured results
that every pipeline stage returns instead of raising.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """A latitude/longitude pair in decimal degrees.

    Range checks are left to ``validate_coordinates`` so that a malformed
    location claim can still be represented and reported as not verified.
    """
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., description="Latitude in degrees")
    lng: float = Field(..., description="Longitude in degrees")


class CircleGeofence(BaseModel):
    """Circular monitored area with an optional tolerance band."""
    model_config = ConfigDict(frozen=True)

    type: Literal["circle"] = "circle"
    center_lat: float = Field(..., description="Center latitude in degrees")
    center_lng: float = Field(..., description="Center longitude in degrees")
    radius_meters: float = Field(..., ge=0, description="Strict boundary radius")
    tolerance_meters: float = Field(0.0, ge=0, description="Extra margin flagged as within tolerance")

    @property
    def center(self) -> Point:
        return Point(lat=self.center_lat, lng=self.center_lng)


class PolygonGeofence(BaseModel):
    """Polygonal monitored area, implicitly closed.

    Polygon fences have no tolerance band. The field is accepted so stored
    fence rows load unchanged, but verification ignores it.
    """
    model_config = ConfigDict(frozen=True)

    type: Literal["polygon"] = "polygon"
    vertices: List[Point] = Field(..., min_length=3, description="Ordered vertices, last connects to first")
    tolerance_meters: float = Field(0.0, ge=0, description="Stored but not applied to polygons")


Geofence = Annotated[Union[CircleGeofence, PolygonGeofence], Field(discriminator="type")]


class VerificationStatus(str, Enum):
    """Outcome of checking a location against a geofence."""
    VERIFIED = "verified"
    WITHIN_TOLERANCE = "within_tolerance"
    OUTSIDE_GEOFENCE = "outside_geofence"


class CheckInStatus(str, Enum):
    """Status recorded against a worker check-in."""
    VERIFIED = "verified"
    OUTSIDE_GEOFENCE = "outside_geofence"
    MANUAL = "manual"


class VerificationResult(BaseModel):
    """Result of a single geofence verification."""
    verified: bool = Field(..., description="Whether the point is inside the strict boundary")
    distance_meters: Optional[float] = Field(None, description="Distance to circle center (circle fences only)")
    within_tolerance: bool = Field(False, description="Whether the point falls in the tolerance band")
    status: VerificationStatus = Field(..., description="Three-way verification status")


class Reading(BaseModel):
    """A single sensor measurement as submitted by a device."""
    model_config = ConfigDict(frozen=True)

    sensor_id: str = Field(..., description="Sensor UUID")
    value: float = Field(..., description="Measured value")
    recorded_at: datetime = Field(..., description="Time of measurement")


class IngestionErrorCode(str, Enum):
    """Categories a reading can be rejected under, in check order."""
    INVALID_VALUE = "invalid_value"
    FUTURE_TIMESTAMP = "future_timestamp"
    STALE_READING = "stale_reading"
    INVALID_SOURCE_ID = "invalid_source_id"


class IngestionValidationResult(BaseModel):
    """Results from validating a single reading."""
    valid: bool = Field(..., description="Whether the reading was accepted")
    error: Optional[IngestionErrorCode] = Field(None, description="Rejection category")
    message: Optional[str] = Field(None, description="Human readable rejection reason")


class RateLimitState(BaseModel):
    """Fixed-window admission counter for one source."""
    model_config = ConfigDict(frozen=True)

    request_count: int = Field(0, ge=0, description="Admissions in the current window")
    window_start: datetime = Field(..., description="Start of the current window")


class RateLimitDecision(BaseModel):
    """Admission decision together with the state to persist for the source."""
    allowed: bool = Field(..., description="Whether the request was admitted")
    new_state: RateLimitState = Field(..., description="State after this decision")


class Granularity(str, Enum):
    """Calendar bucket used for period rollups."""
    HOURLY = "hourly"
    DAILY = "daily"


class AggregationResult(BaseModel):
    """Summary statistics over one period's readings."""
    avg_value: float = Field(..., description="Arithmetic mean")
    min_value: float = Field(..., description="Smallest value")
    max_value: float = Field(..., description="Largest value")
    reading_count: int = Field(..., ge=1, description="Number of readings summarized")


class ThresholdConfig(BaseModel):
    """Critical and warning bounds for a sensor. Unset bounds are ignored."""
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    warning_min_value: Optional[float] = None
    warning_max_value: Optional[float] = None


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class AlertType(str, Enum):
    THRESHOLD_HIGH = "threshold_high"
    THRESHOLD_LOW = "threshold_low"


class AlertResult(BaseModel):
    """Outcome of checking one value against a sensor's thresholds."""
    should_alert: bool = Field(..., description="Whether any bound was crossed")
    severity: Optional[AlertSeverity] = Field(None, description="Severity of the crossed bound")
    alert_type: Optional[AlertType] = Field(None, description="Direction of the crossed bound")
    threshold_value: Optional[float] = Field(None, description="The bound that was crossed")


class IngestionBatchResult(BaseModel):
    """Overall result of ingesting one batch of readings."""
    received: int = Field(..., description="Rows in the submitted batch")
    accepted: int = Field(..., description="Rows validated, admitted and stored")
    duplicates: int = Field(0, description="Rows dropped as duplicate (sensor_id, recorded_at)")
    rejected: Dict[str, int] = Field(default_factory=dict, description="Rejected rows per error code")
    rate_limited: int = Field(0, description="Valid rows denied by the rate limiter")
    geofence: Dict[str, int] = Field(default_factory=dict, description="Rows per verification status")
    alerts: int = Field(0, description="Threshold alerts raised")
    anomalies: int = Field(0, description="Readings flagged as statistical outliers")
