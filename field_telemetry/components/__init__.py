"""Pipeline components for field telemetry processing."""

from .base import (
    PipelineComponent,
    ValidationComponent,
    AdmissionComponent,
    VerificationComponent,
    AlertComponent,
    AggregationComponentBase,
    LoadingComponent
)

from .validation import IngestionValidationComponent, validate_ingestion
from .rate_limiting import RateLimitingComponent, RateLimitStateStore, check_rate_limit
from .geofence import (
    GeofenceVerificationComponent,
    resolve_check_in_status,
    verify_location_in_geofence,
    verify_point_in_circle
)
from .alerting import AlertingComponent, check_thresholds
from .aggregation import AggregationComponent, aggregate_readings
from .loading import ReadingStoreComponent, AggregateStoreComponent

__all__ = [
    "PipelineComponent",
    "ValidationComponent",
    "AdmissionComponent",
    "VerificationComponent",
    "AlertComponent",
    "AggregationComponentBase",
    "LoadingComponent",
    "IngestionValidationComponent",
    "validate_ingestion",
    "RateLimitingComponent",
    "RateLimitStateStore",
    "check_rate_limit",
    "GeofenceVerificationComponent",
    "resolve_check_in_status",
    "verify_location_in_geofence",
    "verify_point_in_circle",
    "AlertingComponent",
    "check_thresholds",
    "AggregationComponent",
    "aggregate_readings",
    "ReadingStoreComponent",
    "AggregateStoreComponent"
]
