"""Data models for the field telemetry pipeline."""

from .data import (
    Point,
    CircleGeofence,
    PolygonGeofence,
    Geofence,
    VerificationStatus,
    CheckInStatus,
    VerificationResult,
    Reading,
    IngestionErrorCode,
    IngestionValidationResult,
    RateLimitState,
    RateLimitDecision,
    Granularity,
    AggregationResult,
    ThresholdConfig,
    AlertSeverity,
    AlertType,
    AlertResult,
    IngestionBatchResult
)

__all__ = [
    "Point",
    "CircleGeofence",
    "PolygonGeofence",
    "Geofence",
    "VerificationStatus",
    "CheckInStatus",
    "VerificationResult",
    "Reading",
    "IngestionErrorCode",
    "IngestionValidationResult",
    "RateLimitState",
    "RateLimitDecision",
    "Granularity",
    "AggregationResult",
    "ThresholdConfig",
    "AlertSeverity",
    "AlertType",
    "AlertResult",
    "IngestionBatchResult"
]
