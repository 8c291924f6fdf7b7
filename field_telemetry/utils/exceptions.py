"""
Custom exceptions for the field telemetry pipeline.

Rejections, denials and "not verified" outcomes are ordinary results and are
never raised. These exceptions cover request-shape errors, configuration
problems and unexpected failures inside a component.
"""


class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""
    pass


class IngestionError(PipelineError):
    """Raised when a reading batch cannot be ingested."""
    pass


class VerificationError(PipelineError):
    """Raised when geofence verification of a batch fails."""
    pass


class AggregationError(PipelineError):
    """Raised when period aggregation fails."""
    pass


class LoadingError(PipelineError):
    """Raised when readings or rollups cannot be stored or read back."""
    pass


class ConfigurationError(PipelineError):
    """Raised when configuration is invalid or missing."""
    pass


class AlertingError(PipelineError):
    """Raised when threshold alerting fails."""
    pass
