"""Configuration models for the field telemetry pipeline."""

from .models import (
    PipelineConfig,
    PipelineInfo,
    StoragePaths,
    IngestionSettings,
    RateLimitSettings,
    LoggingSettings,
    AggregationSettings,
    WriteSettings
)

__all__ = [
    "PipelineConfig",
    "PipelineInfo",
    "StoragePaths",
    "IngestionSettings",
    "RateLimitSettings",
    "LoggingSettings",
    "AggregationSettings",
    "WriteSettings"
]
