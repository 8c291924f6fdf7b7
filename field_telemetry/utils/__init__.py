"""Utility modules for the field telemetry pipeline."""

from .logging import setup_logging, get_logger, log_stats_summary
from .exceptions import (
    PipelineError,
    IngestionError,
    VerificationError,
    AggregationError,
    LoadingError,
    ConfigurationError,
    AlertingError
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_stats_summary",
    "PipelineError",
    "IngestionError",
    "VerificationError",
    "AggregationError",
    "LoadingError",
    "ConfigurationError",
    "AlertingError"
]
